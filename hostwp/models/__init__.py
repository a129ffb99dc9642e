"""Import all models so SQLModel.metadata picks them up."""

from hostwp.models.admin_user import AdminUser, AdminUserRead
from hostwp.models.api_config import (
    ApiConfig,
    ApiConfigCreate,
    ApiConfigRead,
    ApiConfigUpdate,
    Environment,
)
from hostwp.models.app_state import AppState
from hostwp.models.hosting_plan import (
    HostingPlan,
    HostingPlanCreate,
    HostingPlanRead,
    HostingPlanUpdate,
    PlanPeriod,
)

__all__ = [
    "AdminUser",
    "AdminUserRead",
    "ApiConfig",
    "ApiConfigCreate",
    "ApiConfigRead",
    "ApiConfigUpdate",
    "AppState",
    "Environment",
    "HostingPlan",
    "HostingPlanCreate",
    "HostingPlanRead",
    "HostingPlanUpdate",
    "PlanPeriod",
]
