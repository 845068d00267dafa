"""Runtime exceptions: collaborator failures and degraded data."""

from typing import Optional

from .base import ChronicleError


class TransientError(ChronicleError):
    """Raised when an external collaborator fails in a retryable way.

    Covers network errors, rate limiting and call timeouts.
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Transient failure in {operation}",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason


class RetriesExhausted(ChronicleError):
    """Raised when a transient failure persists past the retry budget."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(
            f"Gave up after {attempts} attempts",
            details={"last_error": str(last_error)},
        )
        self.attempts = attempts
        self.last_error = last_error


class DataGap(ChronicleError):
    """Artifact data is unavailable, so matching is skipped for the run."""

    def __init__(self, reason: str, kind: Optional[str] = None):
        details = {"reason": reason}
        if kind is not None:
            details["kind"] = kind
        super().__init__(f"Artifact data unavailable: {reason}", details=details)
        self.reason = reason
        self.kind = kind
