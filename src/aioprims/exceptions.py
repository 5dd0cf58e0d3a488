"""Exception hierarchy for aioprims.

Every failure path of the queue, the retry controller and the wrappers ends in
one of these exceptions (or the wrapped operation's own exception, which is
propagated verbatim).
"""

from enum import Enum


class ErrorKind(Enum):
    """Kinds of primitive errors."""

    CONFIGURATION = "configuration"
    CANCELLATION = "cancellation"
    TIMEOUT = "timeout"
    RETRY_EXHAUSTED = "retry_exhausted"
    INVALID_STATE = "invalid_state"


class AioPrimsError(Exception):
    """Base exception for all aioprims errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        """Initialize AioPrimsError.

        Args:
            message: Error description.
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(AioPrimsError, ValueError):
    """Invalid constructor or setter argument. Never retried."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Error description.
            field: Name of the offending option, if known.
        """
        self.field = field
        super().__init__(message)


class CancellationError(AioPrimsError):
    """Operation aborted through a cancellation signal."""

    kind = ErrorKind.CANCELLATION

    def __init__(self, message: str = "This operation was aborted") -> None:
        super().__init__(message)


class TaskTimeoutError(AioPrimsError, TimeoutError):
    """Operation exceeded its allotted time."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str = "Operation timed out",
        timeout: float | None = None,
    ) -> None:
        """Initialize TaskTimeoutError.

        Args:
            message: Error description.
            timeout: The timeout that elapsed, in seconds.
        """
        self.timeout = timeout
        super().__init__(message)


class RetryExhaustedError(AioPrimsError):
    """Raised when retry attempts or the retry deadline are used up."""

    kind = ErrorKind.RETRY_EXHAUSTED

    def __init__(
        self,
        message: str,
        attempts: int,
        main_error: BaseException | None = None,
        errors: list[BaseException] | None = None,
    ) -> None:
        """Initialize RetryExhaustedError.

        Args:
            message: Error description.
            attempts: Number of attempts made.
            main_error: The dominant error of the retry session.
            errors: Error history of the retry session.
        """
        self.attempts = attempts
        self.main_error = main_error
        self.errors = list(errors or [])
        super().__init__(message)


class RetryTimeoutError(RetryExhaustedError):
    """Synthesized when the overall retry deadline has passed."""

    def __init__(self, attempts: int, message: str = "Retry timeout") -> None:
        super().__init__(message, attempts=attempts)


class InvalidStateError(AioPrimsError):
    """Operation not allowed in the object's current state."""

    kind = ErrorKind.INVALID_STATE
