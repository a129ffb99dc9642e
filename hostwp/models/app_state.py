"""AppState model — small key/value table for process-wide pointers."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from hostwp.models.base import timestamp_field, utcnow

ACTIVE_API_CONFIG_KEY = "active_api_config"


class AppState(SQLModel, table=True):
    __tablename__ = "app_state"

    key: str = Field(primary_key=True, max_length=100)
    value: str = Field(max_length=255)
    updated_at: datetime = timestamp_field(default_factory=utcnow, nullable=False)
