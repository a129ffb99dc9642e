"""Typed operations over the Upmind API: domains, products, clients and orders.

Each operation validates its input locally (a failure never reaches the
network), delegates to :class:`UpmindClient` through the active connection,
and normalises the remote response into a fixed local shape.
"""

from __future__ import annotations

import logging
from typing import Any

from hostwp.services.errors import (
    ConfigurationMissingError,
    ConfigValidationError,
    PayloadValidationError,
)
from hostwp.services.payloads import (
    is_blank,
    to_float,
    to_int,
    validate_client,
    validate_order,
    validate_product,
)
from hostwp.services.results import RequestResult
from hostwp.services.upmind_client import ActiveConnection, ConnectionSettings

logger = logging.getLogger(__name__)

# Probed in order by test_connection
PRODUCT_ENDPOINTS = ("/products", "/services", "/hosting-plans", "/plans")


# ── Normalisation ────────────────────────────────────────────

def unwrap_list(data: Any) -> list | None:
    """Accept a bare list or a ``{data|products|services: [...]}`` wrapper."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("data", "products", "services"):
            if isinstance(data.get(key), list):
                return data[key]
    return None


def unwrap_item(data: Any) -> Any:
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        return data["data"]
    return data


def normalize_product(product: dict) -> dict:
    return {
        "id": product.get("id"),
        "name": product.get("name"),
        "description": product.get("description") or "",
        "price": to_float(product.get("price")) or 0.0,
        "currency": product.get("currency") or "USD",
        "billing_cycle": product.get("billing_cycle") or "monthly",
        "category": product.get("category") or "hosting",
        "features": product.get("features") or [],
        "visible": product.get("visible") is not False,
        "created_at": product.get("created_at"),
        "updated_at": product.get("updated_at"),
    }


def normalize_client(client: dict) -> dict:
    first, last = client.get("first_name"), client.get("last_name")
    return {
        "id": client.get("id"),
        "email": client.get("email"),
        "first_name": first,
        "last_name": last,
        "full_name": " ".join(part for part in (first, last) if part),
        "company": client.get("company") or "",
        "phone": client.get("phone") or "",
        "status": client.get("status") or "active",
        "created_at": client.get("created_at"),
        "updated_at": client.get("updated_at"),
    }


def normalize_order(order: dict) -> dict:
    return {
        "id": order.get("id"),
        "client_id": order.get("client_id"),
        "product_id": order.get("product_id"),
        "status": order.get("status") or "pending",
        "quantity": to_int(order.get("quantity")) or 1,
        "total": to_float(order.get("total")) or 0.0,
        "currency": order.get("currency") or "USD",
        "billing_cycle": order.get("billing_cycle") or "monthly",
        "created_at": order.get("created_at"),
        "updated_at": order.get("updated_at"),
    }


def normalize_domain(domain: dict) -> dict:
    return {
        "domain": domain.get("name") or domain.get("domain"),
        "available": bool(domain.get("available")),
        "price": domain.get("price") or None,
        "currency": domain.get("currency") or "USD",
        "period": domain.get("period") or "1 year",
        "premium": bool(domain.get("premium")),
    }


def _normalize_many(result: RequestResult, normalize) -> RequestResult:
    if not result.success:
        return result
    items = unwrap_list(result.data)
    if items is None:
        return result
    data = [normalize(item) for item in items if isinstance(item, dict)]
    return result.model_copy(update={"data": data, "count": len(data)})


def _clean_filters(filters: dict[str, Any] | None) -> dict[str, Any]:
    return {k: v for k, v in (filters or {}).items() if v is not None and v != ""}


def _invalid(prefix: str, exc: PayloadValidationError | ConfigValidationError) -> RequestResult:
    return RequestResult.fail(f"{prefix}: {exc}", details={"errors": exc.errors})


# ── Facade ───────────────────────────────────────────────────

class UpmindService:
    def __init__(self, connection: ActiveConnection) -> None:
        self.connection = connection

    async def _call(
        self,
        prefix: str,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> RequestResult:
        try:
            client = self.connection.client()
        except ConfigurationMissingError as exc:
            return RequestResult.fail(str(exc))
        result = await client.request(method, path, json=json, params=params)
        return result.with_error_prefix(prefix)

    # ── Domains ──────────────────────────────────────────────

    async def search_domain(self, domain: Any) -> RequestResult:
        if not isinstance(domain, str) or not domain.strip():
            return RequestResult.fail("Domain parameter is required and must be a string")
        result = await self._call(
            "Domain search failed", "POST", "/domains/search",
            json={"domain": domain.strip().lower()},
        )
        return _normalize_many(result, normalize_domain)

    async def renew_domain(self, domain_id: Any) -> RequestResult:
        if is_blank(domain_id):
            return RequestResult.fail("Domain ID is required")
        return await self._call("Domain renewal failed", "POST", f"/domains/{domain_id}/renew")

    # ── Products ─────────────────────────────────────────────

    async def get_products(self) -> RequestResult:
        result = await self._call("Failed to fetch products", "GET", "/products")
        return _normalize_many(result, normalize_product)

    async def get_product(self, product_id: Any) -> RequestResult:
        if is_blank(product_id):
            return RequestResult.fail("Product ID is required")
        result = await self._call("Failed to fetch product", "GET", f"/products/{product_id}")
        if result.success:
            item = unwrap_item(result.data)
            if isinstance(item, dict):
                return result.model_copy(update={"data": normalize_product(item)})
        return result

    async def create_product(self, data: Any) -> RequestResult:
        prefix = "Product creation failed"
        try:
            payload = validate_product(data)
        except PayloadValidationError as exc:
            return _invalid(prefix, exc)
        return await self._call(prefix, "POST", "/products", json=payload.to_json())

    async def update_product(self, product_id: Any, data: Any) -> RequestResult:
        prefix = "Product update failed"
        if is_blank(product_id):
            return RequestResult.fail(f"{prefix}: Product ID is required")
        try:
            payload = validate_product(data, require_all=False)
        except PayloadValidationError as exc:
            return _invalid(prefix, exc)
        return await self._call(prefix, "PUT", f"/products/{product_id}", json=payload.to_json())

    async def delete_product(self, product_id: Any) -> RequestResult:
        prefix = "Product deletion failed"
        if is_blank(product_id):
            return RequestResult.fail(f"{prefix}: Product ID is required")
        return await self._call(prefix, "DELETE", f"/products/{product_id}")

    # ── Clients ──────────────────────────────────────────────

    async def create_client(self, data: Any) -> RequestResult:
        prefix = "Client creation failed"
        try:
            payload = validate_client(data)
        except PayloadValidationError as exc:
            return _invalid(prefix, exc)
        return await self._call(prefix, "POST", "/clients", json=payload.to_json())

    async def get_clients(self, filters: dict[str, Any] | None = None) -> RequestResult:
        result = await self._call(
            "Failed to fetch clients", "GET", "/clients", params=_clean_filters(filters) or None,
        )
        return _normalize_many(result, normalize_client)

    async def update_client(self, client_id: Any, data: Any) -> RequestResult:
        prefix = "Client update failed"
        if is_blank(client_id):
            return RequestResult.fail(f"{prefix}: Client ID is required")
        try:
            payload = validate_client(data, require_all=False)
        except PayloadValidationError as exc:
            return _invalid(prefix, exc)
        return await self._call(prefix, "PUT", f"/clients/{client_id}", json=payload.to_json())

    async def delete_client(self, client_id: Any) -> RequestResult:
        prefix = "Client deletion failed"
        if is_blank(client_id):
            return RequestResult.fail(f"{prefix}: Client ID is required")
        return await self._call(prefix, "DELETE", f"/clients/{client_id}")

    # ── Orders ───────────────────────────────────────────────

    async def create_order(self, data: Any) -> RequestResult:
        prefix = "Order creation failed"
        try:
            payload = validate_order(data)
        except PayloadValidationError as exc:
            return _invalid(prefix, exc)
        return await self._call(prefix, "POST", "/orders", json=payload.to_json())

    async def get_orders(self, filters: dict[str, Any] | None = None) -> RequestResult:
        result = await self._call(
            "Failed to fetch orders", "GET", "/orders", params=_clean_filters(filters) or None,
        )
        return _normalize_many(result, normalize_order)

    async def update_order(self, order_id: Any, data: Any) -> RequestResult:
        prefix = "Order update failed"
        if is_blank(order_id):
            return RequestResult.fail(f"{prefix}: Order ID is required")
        try:
            payload = validate_order(data, require_all=False)
        except PayloadValidationError as exc:
            return _invalid(prefix, exc)
        return await self._call(prefix, "PUT", f"/orders/{order_id}", json=payload.to_json())

    async def delete_order(self, order_id: Any) -> RequestResult:
        prefix = "Order deletion failed"
        if is_blank(order_id):
            return RequestResult.fail(f"{prefix}: Order ID is required")
        return await self._call(prefix, "DELETE", f"/orders/{order_id}")

    # ── Connection testing ───────────────────────────────────

    async def test_connection(self, settings: ConnectionSettings) -> RequestResult:
        """Probe a candidate profile without touching the active connection."""
        prefix = "Connection test failed"
        try:
            client = self.connection.client_for(settings)
        except ConfigValidationError as exc:
            return _invalid(prefix, exc)

        last: RequestResult | None = None
        for endpoint in PRODUCT_ENDPOINTS:
            last = await client.get(endpoint)
            if last.success and last.data:
                items = unwrap_list(last.data)
                logger.info("Connection test for %s succeeded on %s", settings.root, endpoint)
                return RequestResult.ok(
                    {
                        "working_endpoint": endpoint,
                        "data_available": True,
                        "data_count": len(items) if items is not None else 0,
                    },
                    status=last.status,
                )

        error = last.error if last is not None and last.error else "no product endpoint returned data"
        return RequestResult.fail(
            f"{prefix}: {error}",
            status=last.status if last is not None else None,
            details={"endpoints_tried": list(PRODUCT_ENDPOINTS)},
        )
