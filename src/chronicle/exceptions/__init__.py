"""Exception hierarchy for Chronicle."""

from .base import ChronicleError
from .config import (
    ConfigConflict,
    ConfigurationError,
    InputError,
    InvalidConfigError,
)
from .runtime import DataGap, RetriesExhausted, TransientError

__all__ = [
    "ChronicleError",
    "ConfigurationError",
    "InvalidConfigError",
    "InputError",
    "ConfigConflict",
    "TransientError",
    "RetriesExhausted",
    "DataGap",
]
