"""Platform-neutral envelope and identity types.

Every adapter and service call returns an ``OperationResult``; list calls wrap
their payload in an ``ApiResponse`` carrying normalized pagination.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class GitPlatform(str, Enum):
    """Supported (and declared) Git hosting platforms."""

    GITHUB = "github"
    GITLAB = "gitlab"
    GITEE = "gitee"


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    MAINTAIN = "maintain"


class TokenType(str, Enum):
    PERSONAL = "personal"
    OAUTH = "oauth"
    APP = "app"


@dataclass
class GitUser:
    """An account on a platform."""

    id: str | int
    username: str
    display_name: str
    email: str | None = None
    avatar_url: str | None = None
    profile_url: str | None = None


@dataclass
class GitAuth:
    """Credential for one platform."""

    platform: GitPlatform
    token: str
    token_type: TokenType = TokenType.PERSONAL
    scopes: list[str] = field(default_factory=list)
    expires_at: datetime | None = None
    user: GitUser | None = None

    def __repr__(self) -> str:
        # never expose the token through repr()/logging
        return (
            f"GitAuth(platform={self.platform.value!r}, token='[REDACTED]', "
            f"token_type={self.token_type.value!r}, scopes={self.scopes!r}, "
            f"user={self.user.username if self.user else None!r})"
        )


@dataclass
class GitError:
    """Machine-readable failure record carried by ``OperationResult.error``."""

    code: str
    message: str
    details: Any = None
    platform: GitPlatform | None = None
    repository: str | None = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class OperationResult(Generic[T]):
    """Uniform success/error envelope returned instead of raising."""

    success: bool
    data: T | None = None
    error: GitError | None = None
    message: str | None = None
    platform: GitPlatform | None = None
    timestamp: datetime = field(default_factory=utcnow)

    @classmethod
    def ok(
        cls,
        data: T | None = None,
        message: str | None = None,
        platform: GitPlatform | None = None,
    ) -> "OperationResult[T]":
        return cls(success=True, data=data, message=message, platform=platform)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        details: Any = None,
        platform: GitPlatform | None = None,
        repository: str | None = None,
    ) -> "OperationResult[T]":
        return cls(
            success=False,
            platform=platform,
            error=GitError(
                code=code,
                message=message,
                details=details,
                platform=platform,
                repository=repository,
            ),
        )

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None


@dataclass
class Pagination:
    """Pagination normalized across link-header and numeric-header styles.

    ``total`` and ``total_pages`` are 0 when the platform does not report them.
    """

    page: int
    per_page: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


@dataclass
class RateLimit:
    limit: int
    remaining: int
    reset: datetime


@dataclass
class ApiResponse(Generic[T]):
    """A page of results plus normalized pagination and rate-limit info."""

    data: T
    pagination: Pagination | None = None
    rate_limit: RateLimit | None = None
