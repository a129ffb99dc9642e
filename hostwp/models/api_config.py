"""ApiConfig model — a named set of Upmind API credentials."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from hostwp.core.config import get_settings
from hostwp.models.base import TimestampMixin, new_uuid

DEFAULT_BRAND_ID = "default"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_ATTEMPTS = 3


class Environment(StrEnum):
    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"


class ApiConfig(TimestampMixin, SQLModel, table=True):
    __tablename__ = "api_configs"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    # Display order; the first remaining profile is promoted when the active one is deleted
    position: int = Field(default=0, nullable=False, index=True)

    label: str = Field(max_length=255, nullable=False)
    base_url: str = Field(max_length=2048, nullable=False)
    # Fernet ciphertext of the bearer token
    encrypted_token: str = Field(sa_column=Column(Text, nullable=False))
    brand_id: str = Field(default=DEFAULT_BRAND_ID, max_length=255)
    environment: Environment = Field(default=Environment.PRODUCTION)

    timeout: float = Field(default=DEFAULT_TIMEOUT)
    retry_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS)


# ── Pydantic schemas ─────────────────────────────────────────

class ApiConfigCreate(SQLModel):
    label: str = Field(min_length=1, max_length=255)
    # Presence of base_url / token / brand_id is checked by the config
    # validator so that every missing field is reported at once.
    base_url: str = Field(default="", max_length=2048)
    token: str = ""
    brand_id: str = Field(default=DEFAULT_BRAND_ID, max_length=255)
    environment: Environment = Environment.PRODUCTION
    timeout: float = Field(default_factory=lambda: get_settings().upmind_default_timeout, gt=0, le=600)
    retry_attempts: int = Field(
        default_factory=lambda: get_settings().upmind_default_retry_attempts, ge=1, le=10
    )


class ApiConfigUpdate(SQLModel):
    label: str | None = Field(default=None, min_length=1, max_length=255)
    base_url: str | None = Field(default=None, max_length=2048)
    token: str | None = None
    brand_id: str | None = Field(default=None, max_length=255)
    environment: Environment | None = None
    timeout: float | None = Field(default=None, gt=0, le=600)
    retry_attempts: int | None = Field(default=None, ge=1, le=10)


class ApiConfigRead(SQLModel):
    id: uuid.UUID
    label: str
    base_url: str
    brand_id: str
    environment: Environment
    timeout: float
    retry_attempts: int
    has_token: bool
    token_hint: str = Field(description="Masked token, last four characters only")
    is_active: bool
    created_at: datetime
    updated_at: datetime
