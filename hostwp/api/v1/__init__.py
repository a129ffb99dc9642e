"""V1 API router aggregation."""

from fastapi import APIRouter

from hostwp.api.v1.api_configs import router as api_configs_router
from hostwp.api.v1.auth import router as auth_router
from hostwp.api.v1.hosting_plans import router as hosting_plans_router
from hostwp.api.v1.upmind import router as upmind_router
from hostwp.api.v1.upmind_proxy import router as upmind_proxy_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(auth_router)
v1_router.include_router(api_configs_router)
v1_router.include_router(hosting_plans_router)
v1_router.include_router(upmind_router)
v1_router.include_router(upmind_proxy_router)
