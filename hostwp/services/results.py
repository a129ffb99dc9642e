"""Uniform success / failure envelope returned by every Upmind call."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class RequestResult(BaseModel):
    success: bool
    data: Any = None
    status: int | None = None
    error: str | None = None
    details: Any = None
    count: int | None = None

    @classmethod
    def ok(cls, data: Any = None, status: int | None = None, **extra: Any) -> RequestResult:
        return cls(success=True, data=data, status=status, **extra)

    @classmethod
    def fail(
        cls,
        error: str,
        status: int | None = None,
        details: Any = None,
    ) -> RequestResult:
        return cls(success=False, error=error, status=status, details=details)

    def with_error_prefix(self, prefix: str) -> RequestResult:
        """Prefix a failure message with the operation that produced it."""
        if self.success:
            return self
        return self.model_copy(update={"error": f"{prefix}: {self.error}"})

    @property
    def is_transient_failure(self) -> bool:
        """Network-level failure (no status) or a 5xx from the platform."""
        return not self.success and (self.status is None or self.status >= 500)
