"""Validation of Upmind connection profiles before they are used."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from hostwp.services.errors import ConfigValidationError

REQUIRED_FIELDS = ("base_url", "token", "brand_id")


def _field(profile: Any, name: str) -> Any:
    if isinstance(profile, dict):
        return profile.get(name)
    return getattr(profile, name, None)


def is_absolute_url(value: str) -> bool:
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def validate_config(profile: Any) -> None:
    """Check a profile (mapping or object) and raise with every violation at once.

    The label is a UI concern and is not checked here.
    """
    errors: list[str] = []

    missing = [
        name for name in REQUIRED_FIELDS
        if not isinstance(_field(profile, name), str) or not _field(profile, name).strip()
    ]
    if missing:
        errors.append(f"Missing required configuration fields: {', '.join(missing)}")

    base_url = _field(profile, "base_url")
    if "base_url" not in missing and not is_absolute_url(base_url):
        errors.append("Invalid base URL format in API configuration")

    if errors:
        raise ConfigValidationError(errors)
