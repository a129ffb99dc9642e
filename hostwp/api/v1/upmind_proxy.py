"""Admin-only relay for raw Upmind requests."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from hostwp.api.deps import Admin, UpstreamTransport
from hostwp.services.upmind_proxy import ProxyRequest, forward

router = APIRouter(prefix="/upmind-proxy", tags=["upmind"])


@router.post("")
async def proxy_upmind_request(
    body: ProxyRequest,
    admin: Admin,
    transport: UpstreamTransport,
) -> JSONResponse:
    status_code, payload = await forward(body, transport=transport)
    return JSONResponse(status_code=status_code, content=payload)
