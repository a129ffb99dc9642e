"""HTTP client for the Upmind REST API.

Every call resolves to a :class:`RequestResult`; transport failures, 4xx/5xx
responses and malformed bodies are all folded into the envelope so callers
never need a ``try`` around a request. Network failures and 5xx responses are
retried according to the connection's :class:`RetryPolicy`; 4xx responses are
returned on the first attempt.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from hostwp.core.config import get_settings
from hostwp.core.security import mask_secret
from hostwp.models.api_config import DEFAULT_BRAND_ID, DEFAULT_RETRY_ATTEMPTS, DEFAULT_TIMEOUT
from hostwp.services.config_validator import validate_config
from hostwp.services.errors import ConfigurationMissingError
from hostwp.services.results import RequestResult
from hostwp.services.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, repr=False)
class ConnectionSettings:
    """A validated, decrypted view of one API profile."""

    base_url: str
    token: str
    brand_id: str = DEFAULT_BRAND_ID
    timeout: float = DEFAULT_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    config_id: str | None = None
    label: str = ""

    @property
    def root(self) -> str:
        return self.base_url.rstrip("/")

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Brand-ID": self.brand_id or DEFAULT_BRAND_ID,
        }

    def __repr__(self) -> str:
        return (
            f"ConnectionSettings(label={self.label!r}, base_url={self.base_url!r}, "
            f"token={mask_secret(self.token)!r}, brand_id={self.brand_id!r})"
        )


# ── Error analysis ────────────────────────────────────────────

def analyze_error(exc: Exception) -> dict[str, Any]:
    """Classify a transport failure into a type, likely cause and suggestions."""
    message = str(exc).lower()

    if isinstance(exc, httpx.TimeoutException) or "timeout" in message:
        return {
            "type": "Timeout error",
            "likely_cause": "Request took too long to complete",
            "suggestions": ["Check API server performance", "Verify network stability"],
        }
    if "ssl" in message or "certificate" in message:
        return {
            "type": "SSL/Certificate error",
            "likely_cause": "SSL certificate issue with the API server",
            "suggestions": ["Check SSL certificate validity", "Verify HTTPS configuration"],
        }
    if isinstance(exc, httpx.NetworkError):
        return {
            "type": "Network error",
            "likely_cause": "API server unreachable or connection refused",
            "suggestions": [
                "Verify the API server is running and accessible",
                "Check network connectivity",
            ],
        }
    return {
        "type": "Unknown network error",
        "likely_cause": "Unspecified network or connectivity issue",
        "suggestions": ["Check network connectivity", "Verify API server status"],
    }


def _is_json(response: httpx.Response) -> bool:
    return "application/json" in response.headers.get("content-type", "")


def parse_body(response: httpx.Response) -> Any:
    """JSON when the content-type says so and it parses, otherwise raw text."""
    if _is_json(response):
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Malformed JSON body from %s, falling back to text", response.url)
    return response.text


def error_result(response: httpx.Response) -> RequestResult:
    """Build the failure envelope for a non-2xx response."""
    reason = response.reason_phrase
    try:
        if _is_json(response):
            error_data = response.json()
        else:
            error_data = {"message": response.text or reason}
    except (json.JSONDecodeError, UnicodeDecodeError):
        error_data = {"message": reason or "Unknown error"}

    message = error_data.get("message") if isinstance(error_data, dict) else None
    return RequestResult.fail(
        error=message or f"API error: {response.status_code} {reason}".rstrip(),
        status=response.status_code,
        details=error_data,
    )


# ── Client ────────────────────────────────────────────────────

class UpmindClient:
    def __init__(
        self,
        settings: ConnectionSettings,
        policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        validate_config(settings)
        self.settings = settings
        self.policy = policy or RetryPolicy(max_attempts=settings.retry_attempts)
        self._transport = transport

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.settings.root}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> RequestResult:
        method = method.upper()
        url = self.url_for(path)

        async def _attempt(attempt: int) -> RequestResult:
            return await self._send(method, url, json, params, attempt)

        result = await self.policy.execute(_attempt, lambda r: r.is_transient_failure)
        if not result.success:
            logger.warning(
                "[Upmind API] %s %s failed: status=%s error=%s",
                method, url, result.status, result.error,
            )
        return result

    async def get(self, path: str, params: dict[str, Any] | None = None) -> RequestResult:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> RequestResult:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> RequestResult:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> RequestResult:
        return await self.request("DELETE", path)

    async def _send(
        self,
        method: str,
        url: str,
        body: Any,
        params: dict[str, Any] | None,
        attempt: int,
    ) -> RequestResult:
        logger.debug("[Upmind API] %s %s (attempt %d)", method, url, attempt)
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    json=body,
                    params=params,
                    headers=self.settings.headers(),
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            analysis = analyze_error(exc)
            return RequestResult.fail(
                error=f"{analysis['type']}: {str(exc) or exc.__class__.__name__}",
                details=analysis,
            )

        if response.is_success:
            return RequestResult.ok(parse_body(response), status=response.status_code)
        return error_result(response)


class ActiveConnection:
    """Holds the currently active, validated connection settings.

    One instance is created per application and handed to the config store
    (which reconfigures it on every relevant change) and to the service
    facade (which asks it for a client on every call).
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        base_delay: float | None = None,
        sleep=None,
    ) -> None:
        self._settings: ConnectionSettings | None = None
        self._transport = transport
        self._base_delay = (
            base_delay if base_delay is not None else get_settings().upmind_retry_base_delay
        )
        self._sleep = sleep

    @property
    def settings(self) -> ConnectionSettings | None:
        return self._settings

    @property
    def is_configured(self) -> bool:
        return self._settings is not None

    def configure(self, settings: ConnectionSettings) -> None:
        validate_config(settings)
        self._settings = settings
        logger.info(
            "[Upmind API] Configured: base_url=%s brand_id=%s token=%s",
            settings.root, settings.brand_id, mask_secret(settings.token),
        )

    def clear(self) -> None:
        if self._settings is not None:
            logger.info("[Upmind API] Active configuration cleared")
        self._settings = None

    def client_for(self, settings: ConnectionSettings) -> UpmindClient:
        policy = RetryPolicy(
            max_attempts=settings.retry_attempts,
            base_delay=self._base_delay,
            sleep=self._sleep,
        )
        return UpmindClient(settings, policy=policy, transport=self._transport)

    def client(self) -> UpmindClient:
        if self._settings is None:
            raise ConfigurationMissingError()
        return self.client_for(self._settings)
