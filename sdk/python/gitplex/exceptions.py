"""GitPlex exception classes and error codes.

Exceptions are raised inside the transport and adapters and converted to
``OperationResult`` errors at the adapter boundary; callers of adapters and
of ``GitService`` never see them for expected failure modes.
"""

from typing import Any


class ErrorCode:
    """Stable machine-readable error codes carried by ``GitError.code``."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNSUPPORTED_PLATFORM = "UNSUPPORTED_PLATFORM"
    NO_AUTHENTICATED_PLATFORMS = "NO_AUTHENTICATED_PLATFORMS"
    ALL_PLATFORMS_FAILED = "ALL_PLATFORMS_FAILED"
    NO_REPOSITORY = "NO_REPOSITORY"
    BRANCH_NOT_FOUND = "BRANCH_NOT_FOUND"
    CANNOT_DELETE_DEFAULT_BRANCH = "CANNOT_DELETE_DEFAULT_BRANCH"
    AUTH_ERROR = "AUTH_ERROR"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_OPTIONS = "INVALID_OPTIONS"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    UNSUPPORTED_MERGE_METHOD = "UNSUPPORTED_MERGE_METHOD"

    # Keys under which business-logic components record their last failure
    LOAD_REPOSITORIES_ERROR = "LOAD_REPOSITORIES_ERROR"
    LOAD_BRANCHES_ERROR = "LOAD_BRANCHES_ERROR"
    CREATE_BRANCH_ERROR = "CREATE_BRANCH_ERROR"
    DELETE_BRANCH_ERROR = "DELETE_BRANCH_ERROR"
    COMPARISON_ERROR = "COMPARISON_ERROR"
    MERGE_REQUESTS_ERROR = "MERGE_REQUESTS_ERROR"
    LOAD_STATS_ERROR = "LOAD_STATS_ERROR"


class GitPlexError(Exception):
    """Base exception for all GitPlex errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(f"[{code}] {message}")


class ConfigurationError(GitPlexError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message)


class UnsupportedPlatformError(GitPlexError):
    """Raised when no adapter exists for a platform."""

    def __init__(self, platform: Any) -> None:
        value = getattr(platform, "value", platform)
        super().__init__(ErrorCode.UNSUPPORTED_PLATFORM, f"Unsupported platform: {value}")
        self.platform = platform


class AuthenticationError(GitPlexError):
    """Raised when the platform rejects the credential (401)."""

    pass


class AuthorizationError(GitPlexError):
    """Raised when access is denied (403)."""

    pass


class NotFoundError(GitPlexError):
    """Raised when a resource is not found."""

    pass


class ConflictError(GitPlexError):
    """Raised on conflicts (existing branch, unmergeable request, etc.)."""

    pass


class ValidationError(GitPlexError):
    """Raised on validation errors, remote (422) or local (bad options)."""

    pass


class RateLimitedError(GitPlexError):
    """Raised when rate limited."""

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: float | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message, status_code)
        self.retry_after = retry_after


class ServerError(GitPlexError):
    """Raised on server errors (5xx)."""

    pass


class TransportError(GitPlexError):
    """Raised when the request never produced a response (network, timeout)."""

    pass


TRANSIENT_ERRORS: tuple[type[GitPlexError], ...] = (
    ServerError,
    RateLimitedError,
    TransportError,
)


def is_transient(error: BaseException) -> bool:
    """Return True if ``error`` is worth retrying."""
    return isinstance(error, TRANSIENT_ERRORS)
