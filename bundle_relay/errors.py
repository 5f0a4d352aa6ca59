from typing import Any, Optional


class RelayError(Exception):
    """Base error for everything the relay engine raises.

    ``code`` is machine readable: ``HTTP_<status>``, the relay's JSON-RPC
    error code as a string, or a synthetic code such as ``TIMEOUT``.
    """

    default_code = "UNKNOWN_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ConfigurationError(RelayError):
    default_code = "CONFIGURATION_ERROR"


class SubmissionError(RelayError):
    """A single submission attempt failed."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        retriable: bool = False,
    ):
        super().__init__(message, code, details)
        self.retriable = retriable


class SubmissionTransportError(SubmissionError):
    """Timeout or connection-level failure; no usable HTTP response."""


class SubmissionRelayError(SubmissionError):
    """The relay answered with a non-2xx status or a JSON-RPC error."""


class SubmissionExhaustedError(SubmissionError):
    """Retries ran out. Keeps the code of the last failure it wraps."""

    def __init__(self, attempts: int, cause: SubmissionError):
        super().__init__(
            f"Bundle submission failed after {attempts} attempts: {cause.message}",
            cause.code,
            {**cause.details, "attempts": attempts},
            retriable=False,
        )
        self.attempts = attempts
        self.cause = cause


class StatusQueryError(RelayError):
    default_code = "STATUS_CHECK_FAILED"


class ConfirmationFailedError(RelayError):
    """The relay reported a terminal non-landed state (FAILED or INVALID)."""


class ConfirmationTimeoutError(RelayError):
    default_code = "CONFIRMATION_TIMEOUT"


class SimulationFailedError(RelayError):
    default_code = "SIMULATION_FAILED"
