"""Single-shot passthrough to an arbitrary Upmind endpoint.

Used by admin tooling that needs to hit an endpoint the facade does not
cover, or to try out credentials that are not saved yet. No retries: the
caller sees exactly what Upmind returned.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from hostwp.core.config import get_settings
from hostwp.models.api_config import DEFAULT_BRAND_ID
from hostwp.services.upmind_client import ConnectionSettings, parse_body

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


class ProxyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = ""
    base_url: str = Field(default="", alias="baseUrl")
    token: str = ""
    brand_id: str | None = Field(default=None, alias="brandId")
    method: str = "GET"
    body: Any = None

    def missing(self) -> list[str]:
        return [
            name
            for name, value in (("baseUrl", self.base_url), ("token", self.token), ("endpoint", self.endpoint))
            if not value
        ]


async def forward(
    req: ProxyRequest,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[int, dict[str, Any]]:
    """Forward one request upstream. Returns ``(http_status, envelope)``."""
    missing = req.missing()
    if missing:
        return 400, {"success": False, "error": f"Missing required parameters: {', '.join(missing)}"}

    conn = ConnectionSettings(
        base_url=req.base_url,
        token=req.token,
        brand_id=req.brand_id or DEFAULT_BRAND_ID,
    )
    endpoint = req.endpoint if req.endpoint.startswith("/") else "/" + req.endpoint
    url = f"{conn.root}{endpoint}"
    method = req.method.upper()

    logger.info("[Upmind proxy] %s %s", method, url)
    try:
        async with httpx.AsyncClient(
            timeout=get_settings().upmind_default_timeout, transport=transport
        ) as client:
            response = await client.request(
                method,
                url,
                headers=conn.headers(),
                json=req.body if method in BODY_METHODS and req.body is not None else None,
            )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("[Upmind proxy] %s %s failed: %s", method, url, exc)
        return 500, {"success": False, "error": f"Proxy Error: {str(exc) or exc.__class__.__name__}"}

    data = parse_body(response)
    if not response.is_success:
        return response.status_code, {
            "success": False,
            "error": f"Upmind API Error: {response.status_code} {response.reason_phrase}".rstrip(),
            "data": data,
            "status": response.status_code,
        }
    return 200, {"success": True, "data": data, "status": response.status_code}
