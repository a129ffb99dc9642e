"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import select

from hostwp.api.v1 import v1_router
from hostwp.core.config import get_settings
from hostwp.core.database import async_session_factory, init_db
from hostwp.core.security import hash_password
from hostwp.models.admin_user import AdminUser
from hostwp.services.config_events import ConfigChange, ConfigEventBus, RedisConfigRelay
from hostwp.services.config_store import ApiConfigStore
from hostwp.services.errors import (
    ConfigNotFoundError,
    ConfigStoreError,
    ConfigurationMissingError,
    ConfigValidationError,
    HostWPError,
    PayloadValidationError,
    PlanNotFoundError,
)
from hostwp.services.upmind_client import ActiveConnection

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def bootstrap_admin() -> None:
    """Create the configured admin account if it does not exist yet."""
    if not (_settings.admin_email and _settings.admin_password):
        return
    email = _settings.admin_email.lower()
    async with async_session_factory() as session:
        existing = (await session.execute(select(AdminUser).where(AdminUser.email == email))).first()
        if existing is not None:
            return
        session.add(AdminUser(email=email, password_hash=hash_password(_settings.admin_password)))
        await session.commit()
    logger.info("Created bootstrap admin account %s", email)


async def reload_active_config(app: FastAPI) -> None:
    async with async_session_factory() as session:
        store = ApiConfigStore(session, app.state.connection, app.state.config_events)
        try:
            await store.reload()
        except ConfigStoreError:
            logger.exception("Could not load the active API configuration")
            app.state.connection.clear()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: ensure tables exist (use Alembic in production)
    await init_db()
    await bootstrap_admin()

    app.state.connection = ActiveConnection(transport=getattr(app.state, "upmind_transport", None))
    app.state.config_events = ConfigEventBus()
    await reload_active_config(app)

    async def _on_foreign_change(event: ConfigChange) -> None:
        if event.origin is not None:
            await reload_active_config(app)

    app.state.config_events.subscribe(_on_foreign_change)

    relay = None
    if _settings.redis_url:
        relay = RedisConfigRelay(app.state.config_events, _settings.redis_url)
        relay.start()

    yield

    if relay is not None:
        await relay.stop()


app = FastAPI(
    title="HostWP Admin",
    version="0.1.0",
    description="Back-office API for the HostWP hosting storefront and its Upmind integration",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping ────────────────────────────────────────────

@app.exception_handler(HostWPError)
async def hostwp_error_handler(_request: Request, exc: HostWPError) -> JSONResponse:
    if isinstance(exc, (ConfigNotFoundError, PlanNotFoundError)):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})
    if isinstance(exc, (ConfigValidationError, PayloadValidationError)):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "errors": exc.errors},
        )
    if isinstance(exc, ConfigurationMissingError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})
    logger.error("Unhandled application error: %s", exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)})


# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
