"""AdminUser model — staff accounts for the back-office."""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from hostwp.models.base import TimestampMixin, new_uuid


class AdminUser(TimestampMixin, SQLModel, table=True):
    __tablename__ = "admin_users"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    email: str = Field(max_length=320, nullable=False, unique=True, index=True)
    password_hash: str = Field(nullable=False)
    display_name: str = Field(default="", max_length=255)
    is_active: bool = Field(default=True)


# ── Pydantic schemas ─────────────────────────────────────────

class AdminUserRead(SQLModel):
    id: uuid.UUID
    email: str
    display_name: str
    is_active: bool
    created_at: datetime
