"""Typed request payloads for Upmind resources and their local validation.

Each ``validate_*`` function collects every violation before raising
:class:`PayloadValidationError`, then returns the typed payload with unknown
fields dropped.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from hostwp.services.errors import PayloadValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ProductPayload(_Payload):
    name: str | None = None
    price: float | None = None
    description: str | None = None
    billing_cycle: str | None = None
    category: str | None = None
    features: list[str] | None = None
    visible: bool | None = None


class ClientPayload(_Payload):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None


class OrderPayload(_Payload):
    client_id: str | int | None = None
    product_id: str | int | None = None
    quantity: int | None = None
    billing_cycle: str | None = None
    notes: str | None = None
    custom_fields: dict[str, Any] | None = None


# ── Helpers ──────────────────────────────────────────────────

def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_float(value: Any) -> float | None:
    """Parse a number from an int, float or numeric string; None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _require_mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise PayloadValidationError([f"{what} data is required and must be an object"])
    return data


def _missing(data: Mapping, fields: tuple[str, ...]) -> list[str]:
    return [name for name in fields if is_blank(data.get(name))]


def _build(model: type[_Payload], data: Mapping) -> Any:
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        raise PayloadValidationError(
            [f"Invalid value for {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        ) from exc


# ── Validators ───────────────────────────────────────────────

def validate_product(data: Any, require_all: bool = True) -> ProductPayload:
    data = _require_mapping(data, "Product")
    errors: list[str] = []
    if require_all:
        missing = _missing(data, ("name", "price"))
        if missing:
            errors.append(f"Missing required product fields: {', '.join(missing)}")
    price = data.get("price")
    if not is_blank(price) and to_float(price) is None:
        errors.append("Product price must be a valid number")
    if errors:
        raise PayloadValidationError(errors)
    return _build(ProductPayload, data)


def validate_client(data: Any, require_all: bool = True) -> ClientPayload:
    data = _require_mapping(data, "Client")
    errors: list[str] = []
    if require_all:
        missing = _missing(data, ("email", "first_name", "last_name"))
        if missing:
            errors.append(f"Missing required client fields: {', '.join(missing)}")
    email = data.get("email")
    if not is_blank(email) and (not isinstance(email, str) or not EMAIL_RE.match(email)):
        errors.append("Invalid email format")
    if errors:
        raise PayloadValidationError(errors)
    return _build(ClientPayload, data)


def validate_order(data: Any, require_all: bool = True) -> OrderPayload:
    data = _require_mapping(data, "Order")
    errors: list[str] = []
    if require_all:
        missing = _missing(data, ("client_id", "product_id"))
        if missing:
            errors.append(f"Missing required order fields: {', '.join(missing)}")
    quantity = data.get("quantity")
    if quantity is not None:
        parsed = to_int(quantity)
        if parsed is None or parsed < 1:
            errors.append("Order quantity must be a positive integer")
    if errors:
        raise PayloadValidationError(errors)
    return _build(OrderPayload, data)
