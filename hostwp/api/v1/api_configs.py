"""Upmind API profiles — CRUD plus switching the active profile."""

import uuid

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from hostwp.api.deps import Admin, Store, Upmind
from hostwp.core.config import get_settings
from hostwp.core.security import mask_secret
from hostwp.models.api_config import (
    DEFAULT_BRAND_ID,
    ApiConfig,
    ApiConfigCreate,
    ApiConfigRead,
    ApiConfigUpdate,
)
from hostwp.services.config_store import ApiConfigStore
from hostwp.services.results import RequestResult
from hostwp.services.upmind_client import ConnectionSettings

router = APIRouter(prefix="/api-configs", tags=["api-configs"])


class ConnectionTestRequest(BaseModel):
    """Either a saved profile id or unsaved credentials to check."""

    config_id: uuid.UUID | None = None
    base_url: str = ""
    token: str = ""
    brand_id: str = DEFAULT_BRAND_ID
    timeout: float = Field(default_factory=lambda: get_settings().upmind_default_timeout, gt=0, le=600)
    retry_attempts: int = Field(
        default_factory=lambda: get_settings().upmind_default_retry_attempts, ge=1, le=10
    )


class DeleteResponse(BaseModel):
    deleted: uuid.UUID
    active: ApiConfigRead | None


def _to_read(store: ApiConfigStore, cfg: ApiConfig, active_id: uuid.UUID | None) -> ApiConfigRead:
    token = store.to_settings(cfg).token
    return ApiConfigRead(
        id=cfg.id,
        label=cfg.label,
        base_url=cfg.base_url,
        brand_id=cfg.brand_id,
        environment=cfg.environment,
        timeout=cfg.timeout,
        retry_attempts=cfg.retry_attempts,
        has_token=bool(token),
        token_hint=mask_secret(token),
        is_active=cfg.id == active_id,
        created_at=cfg.created_at,
        updated_at=cfg.updated_at,
    )


@router.get("", response_model=list[ApiConfigRead])
async def list_api_configs(admin: Admin, store: Store) -> list[ApiConfigRead]:
    active_id = await store.active_id()
    return [_to_read(store, cfg, active_id) for cfg in await store.list()]


@router.post("", response_model=ApiConfigRead, status_code=status.HTTP_201_CREATED)
async def add_api_config(body: ApiConfigCreate, admin: Admin, store: Store) -> ApiConfigRead:
    cfg = await store.add(body)
    return _to_read(store, cfg, await store.active_id())


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_api_configs(admin: Admin, store: Store) -> None:
    await store.clear()


@router.get("/active", response_model=ApiConfigRead | None)
async def get_active_api_config(admin: Admin, store: Store) -> ApiConfigRead | None:
    cfg = await store.get_active()
    if cfg is None:
        return None
    return _to_read(store, cfg, cfg.id)


@router.post("/test", response_model=RequestResult)
async def check_api_config_connection(
    body: ConnectionTestRequest,
    admin: Admin,
    store: Store,
    upmind: Upmind,
) -> RequestResult:
    if body.config_id is not None:
        settings = store.to_settings(await store.get(body.config_id))
    else:
        settings = ConnectionSettings(
            base_url=body.base_url,
            token=body.token,
            brand_id=body.brand_id,
            timeout=body.timeout,
            retry_attempts=body.retry_attempts,
        )
    return await upmind.test_connection(settings)


@router.get("/{config_id}", response_model=ApiConfigRead)
async def get_api_config(config_id: uuid.UUID, admin: Admin, store: Store) -> ApiConfigRead:
    cfg = await store.get(config_id)
    return _to_read(store, cfg, await store.active_id())


@router.patch("/{config_id}", response_model=ApiConfigRead)
async def update_api_config(
    config_id: uuid.UUID,
    body: ApiConfigUpdate,
    admin: Admin,
    store: Store,
) -> ApiConfigRead:
    cfg = await store.update(config_id, body)
    return _to_read(store, cfg, await store.active_id())


@router.delete("/{config_id}", response_model=DeleteResponse)
async def delete_api_config(config_id: uuid.UUID, admin: Admin, store: Store) -> DeleteResponse:
    promoted = await store.delete(config_id)
    return DeleteResponse(
        deleted=config_id,
        active=_to_read(store, promoted, promoted.id) if promoted is not None else None,
    )


@router.post("/{config_id}/activate", response_model=ApiConfigRead)
async def activate_api_config(config_id: uuid.UUID, admin: Admin, store: Store) -> ApiConfigRead:
    cfg = await store.set_active(config_id)
    return _to_read(store, cfg, cfg.id)
