"""Exceptions raised by the configuration store, validators and sync layer."""


class HostWPError(Exception):
    """Base class for expected, user-reportable failures."""


class ConfigurationMissingError(HostWPError):
    """No API configuration exists, or none is marked active."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "No API configuration found. Please configure your Upmind API credentials in Settings."
        )


class ConfigNotFoundError(HostWPError):
    def __init__(self, config_id: object) -> None:
        super().__init__(f"Configuration {config_id} not found")
        self.config_id = config_id


class ConfigValidationError(HostWPError):
    """A profile failed field checks. ``errors`` lists every violation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class PayloadValidationError(HostWPError):
    """A request payload failed local checks before reaching the network."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class ConfigStoreError(HostWPError):
    """Unexpected storage failure (corrupt row, undecryptable token, DB error)."""

    def __init__(self, original: Exception) -> None:
        super().__init__(f"Failed to load configurations: {original}")
        self.original = original


class PlanNotFoundError(HostWPError):
    def __init__(self, plan_id: object) -> None:
        super().__init__(f"Hosting plan {plan_id} not found")
        self.plan_id = plan_id
