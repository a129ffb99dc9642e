"""Durable store of Upmind API profiles and the single "active" pointer.

Every mutation that changes which credentials are live (adding the first
profile, editing or deleting the active one, switching) reconfigures the
shared :class:`ActiveConnection` in the same call, so the next request uses
the new credentials without a separate "apply" step. Subscribers on the
:class:`ConfigEventBus` are told about every change after it is committed.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from cryptography.fernet import InvalidToken
from sqlalchemy import delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from hostwp.core.security import decrypt_value, encrypt_value
from hostwp.models.api_config import ApiConfig, ApiConfigCreate, ApiConfigUpdate
from hostwp.models.app_state import ACTIVE_API_CONFIG_KEY, AppState
from hostwp.models.base import utcnow
from hostwp.services.config_events import ChangeKind, ConfigChange, ConfigEventBus
from hostwp.services.config_validator import validate_config
from hostwp.services.errors import ConfigNotFoundError, ConfigStoreError, ConfigValidationError
from hostwp.services.upmind_client import ActiveConnection, ConnectionSettings

logger = logging.getLogger(__name__)


class ApiConfigStore:
    def __init__(
        self,
        session: AsyncSession,
        connection: ActiveConnection,
        events: ConfigEventBus | None = None,
    ) -> None:
        self.session = session
        self.connection = connection
        self.events = events or ConfigEventBus()

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        try:
            yield
        except (SQLAlchemyError, InvalidToken) as exc:
            logger.exception("API configuration storage failure")
            await self.session.rollback()
            raise ConfigStoreError(exc) from exc

    # ── Reads ────────────────────────────────────────────────

    async def list(self) -> list[ApiConfig]:
        async with self._guard():
            stmt = select(ApiConfig).order_by(ApiConfig.position, ApiConfig.created_at)
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def get(self, config_id: uuid.UUID) -> ApiConfig:
        async with self._guard():
            cfg = await self.session.get(ApiConfig, config_id)
        if cfg is None:
            raise ConfigNotFoundError(config_id)
        return cfg

    async def active_id(self) -> uuid.UUID | None:
        async with self._guard():
            state = await self.session.get(AppState, ACTIVE_API_CONFIG_KEY)
        if state is None or not state.value:
            return None
        try:
            return uuid.UUID(state.value)
        except ValueError as exc:
            raise ConfigStoreError(exc) from exc

    async def get_active(self) -> ApiConfig | None:
        active_id = await self.active_id()
        if active_id is None:
            return None
        async with self._guard():
            return await self.session.get(ApiConfig, active_id)

    def to_settings(self, cfg: ApiConfig) -> ConnectionSettings:
        """Decrypt a stored profile into connection settings."""
        try:
            token = decrypt_value(cfg.encrypted_token)
        except InvalidToken as exc:
            raise ConfigStoreError(exc) from exc
        return ConnectionSettings(
            base_url=cfg.base_url,
            token=token,
            brand_id=cfg.brand_id,
            timeout=cfg.timeout,
            retry_attempts=cfg.retry_attempts,
            config_id=str(cfg.id),
            label=cfg.label,
        )

    # ── Mutations ────────────────────────────────────────────

    async def add(self, data: ApiConfigCreate) -> ApiConfig:
        validate_config(data)

        async with self._guard():
            count = (await self.session.execute(select(func.count()).select_from(ApiConfig))).scalar_one()
            max_position = (await self.session.execute(select(func.max(ApiConfig.position)))).scalar_one()

            cfg = ApiConfig(
                label=data.label,
                base_url=data.base_url.strip(),
                encrypted_token=encrypt_value(data.token),
                brand_id=data.brand_id,
                environment=data.environment,
                timeout=data.timeout,
                retry_attempts=data.retry_attempts,
                position=(max_position or 0) + 1,
            )
            self.session.add(cfg)
            first = count == 0
            if first:
                await self._write_active(cfg.id)
            await self.session.commit()
            await self.session.refresh(cfg)

        logger.info("Added API configuration %s (%s)", cfg.id, cfg.label)
        if first:
            self.connection.configure(self.to_settings(cfg))
        await self.events.publish(ConfigChange(ChangeKind.ADDED, str(cfg.id)))
        if first:
            await self.events.publish(ConfigChange(ChangeKind.ACTIVATED, str(cfg.id)))
        return cfg

    async def update(self, config_id: uuid.UUID, data: ApiConfigUpdate) -> ApiConfig:
        cfg = await self.get(config_id)
        changes = data.model_dump(exclude_unset=True)
        new_token = changes.pop("token", None)

        merged = {
            "base_url": changes.get("base_url", cfg.base_url),
            "token": new_token if new_token is not None else self.to_settings(cfg).token,
            "brand_id": changes.get("brand_id", cfg.brand_id),
        }
        validate_config(merged)

        async with self._guard():
            for field, value in changes.items():
                if value is not None:
                    setattr(cfg, field, value)
            if new_token is not None:
                cfg.encrypted_token = encrypt_value(new_token)
            cfg.updated_at = utcnow()
            self.session.add(cfg)
            await self.session.commit()
            await self.session.refresh(cfg)

        if await self.active_id() == cfg.id:
            self.connection.configure(self.to_settings(cfg))
        logger.info("Updated API configuration %s", cfg.id)
        await self.events.publish(ConfigChange(ChangeKind.UPDATED, str(cfg.id)))
        return cfg

    async def delete(self, config_id: uuid.UUID) -> ApiConfig | None:
        """Remove a profile. Returns the newly promoted active profile, if any."""
        cfg = await self.get(config_id)
        was_active = await self.active_id() == cfg.id
        promoted: ApiConfig | None = None

        async with self._guard():
            await self.session.delete(cfg)
            await self.session.flush()
            if was_active:
                remaining = await self.list()
                promoted = remaining[0] if remaining else None
                if promoted is not None:
                    await self._write_active(promoted.id)
                else:
                    await self._clear_active()
            await self.session.commit()

        logger.info("Deleted API configuration %s", config_id)
        if was_active:
            if promoted is not None:
                self._configure_or_clear(promoted)
            else:
                self.connection.clear()
        await self.events.publish(ConfigChange(ChangeKind.DELETED, str(config_id)))
        if promoted is not None:
            await self.events.publish(ConfigChange(ChangeKind.ACTIVATED, str(promoted.id)))
        return promoted

    async def set_active(self, config_id: uuid.UUID) -> ApiConfig:
        cfg = await self.get(config_id)
        settings = self.to_settings(cfg)
        validate_config(settings)  # pointer stays untouched on failure

        async with self._guard():
            await self._write_active(cfg.id)
            await self.session.commit()

        self.connection.configure(settings)
        logger.info("Switched active API configuration to %s (%s)", cfg.id, cfg.label)
        await self.events.publish(ConfigChange(ChangeKind.ACTIVATED, str(cfg.id)))
        return cfg

    async def clear(self) -> None:
        """Remove every profile and the active pointer."""
        async with self._guard():
            await self.session.execute(delete(ApiConfig))
            await self._clear_active()
            await self.session.commit()
        self.connection.clear()
        logger.info("Cleared all API configurations")
        await self.events.publish(ConfigChange(ChangeKind.CLEARED))

    async def reload(self) -> ApiConfig | None:
        """Re-read the active profile from storage and reconfigure the connection."""
        active = await self.get_active()
        if active is None:
            self.connection.clear()
            return None
        self._configure_or_clear(active)
        return active

    # ── Internal helpers ─────────────────────────────────────

    def _configure_or_clear(self, cfg: ApiConfig) -> None:
        try:
            self.connection.configure(self.to_settings(cfg))
        except ConfigValidationError as exc:
            logger.warning("Active API configuration %s is invalid: %s", cfg.id, exc)
            self.connection.clear()

    async def _write_active(self, config_id: uuid.UUID) -> None:
        state = await self.session.get(AppState, ACTIVE_API_CONFIG_KEY)
        if state is None:
            state = AppState(key=ACTIVE_API_CONFIG_KEY, value=str(config_id))
        else:
            state.value = str(config_id)
            state.updated_at = utcnow()
        self.session.add(state)

    async def _clear_active(self) -> None:
        state = await self.session.get(AppState, ACTIVE_API_CONFIG_KEY)
        if state is not None:
            await self.session.delete(state)
