"""HostingPlan model — a plan shown on the marketing site, optionally mirrored to Upmind."""

import json
import re
import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from hostwp.models.base import TimestampMixin, new_uuid, timestamp_field

DEFAULT_ICON = "🚀"


class PlanPeriod(StrEnum):
    MONTH = "month"
    YEAR = "year"


class HostingPlan(TimestampMixin, SQLModel, table=True):
    __tablename__ = "hosting_plans"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)

    # Shared with the Upmind product
    name: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    price: float = Field(default=0.0)
    period: PlanPeriod = Field(default=PlanPeriod.MONTH)
    features: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))  # JSON array
    is_active: bool = Field(default=True)

    # Local only, never overwritten by a sync
    slug: str = Field(max_length=255, nullable=False, unique=True, index=True)
    icon_emoji: str = Field(default=DEFAULT_ICON, max_length=16)
    is_popular: bool = Field(default=False)
    sort_order: int = Field(default=1, index=True)
    upmind_url: str = Field(default="", max_length=2048)

    # Upmind linkage
    upmind_product_id: str | None = Field(default=None, max_length=255, index=True)
    upmind_sync_enabled: bool = Field(default=False)
    upmind_last_synced: datetime | None = timestamp_field(default=None)

    def feature_list(self) -> list[str]:
        return json.loads(self.features) if self.features else []


def slugify(name: str) -> str:
    """Derive a plan slug: lower-case, whitespace dropped, non-alphanumerics dropped."""
    return re.sub(r"[^a-z0-9]", "", re.sub(r"\s+", "", name.lower()))


# ── Pydantic schemas ─────────────────────────────────────────

class HostingPlanCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str = ""
    price: float = Field(default=0.0, ge=0)
    period: PlanPeriod = PlanPeriod.MONTH
    features: list[str] = Field(default_factory=list)
    icon_emoji: str = Field(default=DEFAULT_ICON, max_length=16)
    is_popular: bool = False
    is_active: bool = True
    sort_order: int | None = Field(default=None, ge=1)
    upmind_url: str = Field(default="", max_length=2048)


class HostingPlanUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    period: PlanPeriod | None = None
    features: list[str] | None = None
    icon_emoji: str | None = Field(default=None, max_length=16)
    is_popular: bool | None = None
    is_active: bool | None = None
    sort_order: int | None = Field(default=None, ge=1)
    upmind_url: str | None = Field(default=None, max_length=2048)


class HostingPlanRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str
    price: float
    period: PlanPeriod
    features: list[str]
    icon_emoji: str
    is_popular: bool
    is_active: bool
    sort_order: int
    upmind_url: str
    upmind_product_id: str | None
    upmind_sync_enabled: bool
    upmind_last_synced: datetime | None
    created_at: datetime
    updated_at: datetime
