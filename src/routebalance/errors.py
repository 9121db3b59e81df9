"""Exception hierarchy for routebalance.

Oracle failures carry a structured ``ErrorCategory`` (and the HTTP status code
when there is one) so that callers branch on the category, never on the text
of the message.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    NETWORK = "network"
    SERVER = "server"
    CLIENT = "client"
    PROCESSING = "processing"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    VALIDATION = "validation"


class RouteBalanceError(Exception):
    """Base class for all errors raised by routebalance."""


class ValidationError(RouteBalanceError, ValueError):
    """A problem instance is malformed or internally inconsistent.

    ``errors`` holds every problem found in a single pass, not just the first.
    """

    category = ErrorCategory.VALIDATION

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Input validation failed:\n" + "\n".join(self.errors))


class OracleError(RouteBalanceError):
    """Any failure reported by, or while talking to, the optimization oracle."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.status_code = status_code


class OracleSubmissionError(OracleError):
    """Transient network/server fault. Retried; fatal for the run once exhausted."""


class OracleTimeoutError(OracleSubmissionError):
    """The oracle did not finish within the overall wait bound."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.TIMEOUT)


class OracleRejectedError(OracleError):
    """The oracle refused the request as a client error. Never retried."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, ErrorCategory.CLIENT, status_code)


class OracleProcessingFailure(OracleError):
    """The oracle accepted the job but reported it failed or was cancelled."""
