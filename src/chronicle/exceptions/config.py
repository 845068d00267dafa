"""Configuration and input exceptions: settings, date ranges, conflicts."""

from typing import Any, Optional

from .base import ChronicleError


class ConfigurationError(ChronicleError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError, ValueError):
    """Raised when a configuration section rejects a value.

    Also a ValueError, so building a section directly fails the usual way.
    """

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class InputError(ChronicleError):
    """Raised for malformed run input such as an inverted date range.

    Always fatal: raised before any planning or execution work starts.
    """

    def __init__(self, reason: str, since: Optional[str] = None, until: Optional[str] = None):
        details = {"reason": reason}
        if since is not None:
            details["since"] = since
        if until is not None:
            details["until"] = until
        super().__init__(f"Invalid input: {reason}", details=details)
        self.reason = reason


class ConfigConflict(ChronicleError):
    """An explicit directive disagrees with what was observed.

    Never raised: instances are logged as warnings and recorded in the
    execution summary, and the explicit configuration wins.
    """

    def __init__(self, setting: str, explicit: str, observed: str):
        super().__init__(
            f"Configured {setting}={explicit!r} conflicts with observed {observed!r}",
            details={"setting": setting, "explicit": explicit, "observed": observed},
        )
        self.setting = setting
        self.explicit = explicit
        self.observed = observed
