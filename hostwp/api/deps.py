"""FastAPI dependencies: admin authentication and per-request services."""

import uuid
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from hostwp.core.database import get_session
from hostwp.core.security import decode_jwt
from hostwp.models.admin_user import AdminUser
from hostwp.services.config_events import ConfigEventBus
from hostwp.services.config_store import ApiConfigStore
from hostwp.services.plan_sync import PlanSyncService
from hostwp.services.upmind_client import ActiveConnection
from hostwp.services.upmind_service import UpmindService

bearer_scheme = HTTPBearer()

Session = Annotated[AsyncSession, Depends(get_session)]


async def get_current_admin(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    session: Session,
) -> AdminUser:
    """Resolve an admin JWT to its account."""
    try:
        payload = decode_jwt(credentials.credentials)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired JWT",
        ) from exc

    try:
        if payload.get("scope") != "admin":
            raise ValueError("not an admin token")
        admin_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed JWT payload",
        ) from exc

    admin = await session.get(AdminUser, admin_id)
    if admin is None or not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin account is disabled",
        )
    return admin


Admin = Annotated[AdminUser, Depends(get_current_admin)]


# ── Application-scoped collaborators ─────────────────────────

def get_connection(request: Request) -> ActiveConnection:
    return request.app.state.connection


def get_events(request: Request) -> ConfigEventBus:
    return request.app.state.config_events


def get_upstream_transport(request: Request) -> httpx.AsyncBaseTransport | None:
    """Transport override for outbound Upmind calls; ``None`` in production."""
    return getattr(request.app.state, "upmind_transport", None)


Connection = Annotated[ActiveConnection, Depends(get_connection)]


def get_config_store(
    session: Session,
    connection: Connection,
    events: Annotated[ConfigEventBus, Depends(get_events)],
) -> ApiConfigStore:
    return ApiConfigStore(session, connection, events)


def get_upmind_service(connection: Connection) -> UpmindService:
    return UpmindService(connection)


Store = Annotated[ApiConfigStore, Depends(get_config_store)]
Upmind = Annotated[UpmindService, Depends(get_upmind_service)]


def get_plan_sync(session: Session, service: Upmind) -> PlanSyncService:
    return PlanSyncService(session, service)


PlanSync = Annotated[PlanSyncService, Depends(get_plan_sync)]
UpstreamTransport = Annotated[httpx.AsyncBaseTransport | None, Depends(get_upstream_transport)]
