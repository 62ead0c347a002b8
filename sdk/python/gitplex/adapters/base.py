"""
Adapter contract and shared base class.

Every platform adapter implements ``GitPlatformAdapter``. Methods return
``OperationResult`` and never raise for expected failures; the
``adapter_operation`` decorator converts exceptions (typed or not) into
error results at the adapter boundary.
"""

import asyncio
import functools
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, ClassVar, TypeVar

import httpx

from gitplex.config import PlatformConfig
from gitplex.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ErrorCode,
    GitPlexError,
    RateLimitedError,
    is_transient,
)
from gitplex.logging import get_logger, mask_token
from gitplex.transport import AsyncHTTPTransport
from gitplex.types.branches import Branch, BranchComparison, BranchProtection
from gitplex.types.commits import CodeSearchResult, Commit, FileChange
from gitplex.types.common import (
    ApiResponse,
    GitAuth,
    GitPlatform,
    GitUser,
    OperationResult,
    RateLimit,
)
from gitplex.types.merge_requests import MergeRequest
from gitplex.types.options import (
    BranchListOptions,
    CommitListOptions,
    CreateBranchOptions,
    CreateMergeRequestOptions,
    DeleteFileOptions,
    FileOperationOptions,
    GetFileContentOptions,
    MergeBranchOptions,
    MergeRequestListOptions,
    PaginationOptions,
    RepositoryListOptions,
    SearchOptions,
    UpdateMergeRequestOptions,
)
from gitplex.types.repos import Repository

T = TypeVar("T")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as sent by the platforms (``Z`` suffix allowed)."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class GitPlatformAdapter(ABC):
    """Platform-neutral capability set of a Git hosting platform."""

    platform: GitPlatform
    config: PlatformConfig

    # Authentication

    @abstractmethod
    def set_auth(self, auth: GitAuth) -> None: ...

    @abstractmethod
    def clear_auth(self) -> None: ...

    @abstractmethod
    async def get_current_user(self) -> OperationResult[GitUser]: ...

    @abstractmethod
    async def validate_auth(self) -> OperationResult[bool]: ...

    # Repositories

    @abstractmethod
    async def list_repositories(
        self, options: RepositoryListOptions | None = None
    ) -> OperationResult[ApiResponse[list[Repository]]]: ...

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> OperationResult[Repository]: ...

    @abstractmethod
    async def search_repositories(
        self, query: str, options: SearchOptions | None = None
    ) -> OperationResult[ApiResponse[list[Repository]]]: ...

    # Branches

    @abstractmethod
    async def list_branches(
        self, owner: str, repo: str, options: BranchListOptions | None = None
    ) -> OperationResult[ApiResponse[list[Branch]]]: ...

    @abstractmethod
    async def get_branch(self, owner: str, repo: str, branch: str) -> OperationResult[Branch]: ...

    @abstractmethod
    async def create_branch(
        self, owner: str, repo: str, options: CreateBranchOptions
    ) -> OperationResult[Branch]: ...

    @abstractmethod
    async def delete_branch(self, owner: str, repo: str, branch: str) -> OperationResult[None]: ...

    @abstractmethod
    async def compare_branches(
        self, owner: str, repo: str, base: str, head: str
    ) -> OperationResult[BranchComparison]: ...

    @abstractmethod
    async def get_branch_protection(
        self, owner: str, repo: str, branch: str
    ) -> OperationResult[BranchProtection]: ...

    @abstractmethod
    async def set_branch_protection(
        self, owner: str, repo: str, branch: str, protection: BranchProtection
    ) -> OperationResult[BranchProtection]: ...

    @abstractmethod
    async def remove_branch_protection(
        self, owner: str, repo: str, branch: str
    ) -> OperationResult[None]: ...

    # Commits

    @abstractmethod
    async def list_commits(
        self, owner: str, repo: str, options: CommitListOptions | None = None
    ) -> OperationResult[ApiResponse[list[Commit]]]: ...

    @abstractmethod
    async def get_commit(self, owner: str, repo: str, sha: str) -> OperationResult[Commit]: ...

    @abstractmethod
    async def get_commit_changes(
        self, owner: str, repo: str, sha: str
    ) -> OperationResult[list[FileChange]]: ...

    # Merge requests

    @abstractmethod
    async def list_merge_requests(
        self, owner: str, repo: str, options: MergeRequestListOptions | None = None
    ) -> OperationResult[ApiResponse[list[MergeRequest]]]: ...

    @abstractmethod
    async def get_merge_request(
        self, owner: str, repo: str, number: int
    ) -> OperationResult[MergeRequest]: ...

    @abstractmethod
    async def create_merge_request(
        self, owner: str, repo: str, options: CreateMergeRequestOptions
    ) -> OperationResult[MergeRequest]: ...

    @abstractmethod
    async def update_merge_request(
        self, owner: str, repo: str, number: int, options: UpdateMergeRequestOptions
    ) -> OperationResult[MergeRequest]: ...

    @abstractmethod
    async def merge_merge_request(
        self, owner: str, repo: str, number: int, options: MergeBranchOptions | None = None
    ) -> OperationResult[MergeRequest]: ...

    @abstractmethod
    async def close_merge_request(
        self, owner: str, repo: str, number: int
    ) -> OperationResult[MergeRequest]: ...

    # Files

    @abstractmethod
    async def get_file_content(
        self, owner: str, repo: str, path: str, options: GetFileContentOptions | None = None
    ) -> OperationResult[str]: ...

    @abstractmethod
    async def create_file(
        self, owner: str, repo: str, path: str, options: FileOperationOptions
    ) -> OperationResult[Commit]: ...

    @abstractmethod
    async def update_file(
        self, owner: str, repo: str, path: str, options: FileOperationOptions
    ) -> OperationResult[Commit]: ...

    @abstractmethod
    async def delete_file(
        self, owner: str, repo: str, path: str, options: DeleteFileOptions
    ) -> OperationResult[Commit]: ...

    # Search

    @abstractmethod
    async def search_code(
        self, query: str, options: SearchOptions | None = None
    ) -> OperationResult[ApiResponse[list[CodeSearchResult]]]: ...

    @abstractmethod
    async def search_commits(
        self, query: str, options: SearchOptions | None = None
    ) -> OperationResult[ApiResponse[list[Commit]]]: ...

    # Diagnostics

    @abstractmethod
    async def get_rate_limit(self) -> OperationResult[RateLimit]: ...

    @abstractmethod
    async def check_connection(self) -> OperationResult[bool]: ...

    @abstractmethod
    async def close(self) -> None: ...


def adapter_operation(
    failure_message: str, *, scoped: bool = True
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[OperationResult[Any]]]]:
    """
    Wrap an adapter coroutine so it returns an ``OperationResult``.

    The wrapped coroutine returns plain data (or an ``OperationResult``, which
    is passed through). ``GitPlexError`` becomes an error result carrying its
    code; anything else is logged and becomes ``UNKNOWN_ERROR``.

    Args:
        failure_message: Prefix of the error message
        scoped: The first two positional arguments are ``owner`` and ``repo``
    """

    def decorator(
        func: Callable[..., Awaitable[Any]],
    ) -> Callable[..., Awaitable[OperationResult[Any]]]:
        @functools.wraps(func)
        async def wrapper(self: "BaseGitPlatformAdapter", *args: Any, **kwargs: Any) -> OperationResult[Any]:
            repository = f"{args[0]}/{args[1]}" if scoped and len(args) >= 2 else None
            try:
                data = await func(self, *args, **kwargs)
            except GitPlexError as e:
                details: dict[str, Any] = {}
                if e.status_code is not None:
                    details["status_code"] = e.status_code
                if e.details is not None:
                    details["context"] = e.details
                self.logger.debug("%s failed: %s", func.__name__, e)
                return self.error_result(
                    e.code,
                    f"{failure_message}: {e.message}",
                    details=details or None,
                    repository=repository,
                )
            except Exception as e:
                self.logger.exception("Unexpected error in %s", func.__name__)
                return self.error_result(
                    ErrorCode.UNKNOWN_ERROR,
                    f"{failure_message}: {e}",
                    details={"exception": type(e).__name__},
                    repository=repository,
                )
            if isinstance(data, OperationResult):
                return data
            return self.success_result(data)

        return wrapper

    return decorator


class BaseGitPlatformAdapter(GitPlatformAdapter):
    """
    Shared plumbing for HTTP-backed adapters.

    Provides the authenticated transport, retry with exponential backoff for
    transient failures, and result constructors that stamp the platform.
    """

    auth_scheme: ClassVar[str] = "Bearer"
    user_path: ClassVar[str] = "/user"

    def __init__(
        self,
        config: PlatformConfig,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            config: Merged platform configuration
            http_transport: Custom httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.config = config
        self.platform = config.platform
        self.auth: GitAuth | None = None
        self.logger = get_logger(f"adapters.{self.platform.value}")
        self._transport = AsyncHTTPTransport(
            config.base_url,
            timeout=config.timeout,
            headers={"User-Agent": config.user_agent, **self.default_headers()},
            auth_scheme=self.auth_scheme,
            http_transport=http_transport,
        )

    def default_headers(self) -> dict[str, str]:
        return {}

    @property
    def transport(self) -> AsyncHTTPTransport:
        return self._transport

    @property
    def is_authenticated(self) -> bool:
        return self.auth is not None

    def set_auth(self, auth: GitAuth) -> None:
        if auth.platform != self.platform:
            raise ConfigurationError(
                f"Credential for {auth.platform.value} given to {self.platform.value} adapter"
            )
        self.auth = auth
        self._transport.set_token(auth.token)
        self.logger.debug("Credential set (token=%s)", mask_token(auth.token))

    def clear_auth(self) -> None:
        self.auth = None
        self._transport.set_token(None)

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> "BaseGitPlatformAdapter":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def success_result(self, data: T, message: str | None = None) -> OperationResult[T]:
        return OperationResult.ok(data, message, platform=self.platform)

    def error_result(
        self,
        code: str,
        message: str,
        details: Any = None,
        repository: str | None = None,
    ) -> OperationResult[Any]:
        return OperationResult.fail(
            code, message, details=details, platform=self.platform, repository=repository
        )

    def not_implemented(self, capability: str) -> OperationResult[Any]:
        """Structured result for a capability this platform does not offer."""
        return self.error_result(
            ErrorCode.NOT_IMPLEMENTED,
            f"{capability} is not implemented for {self.platform.value}",
            details={"capability": capability},
        )

    def require_auth(self) -> GitAuth:
        if self.auth is None:
            raise AuthenticationError(
                ErrorCode.AUTHENTICATION_FAILED,
                f"No credential set for {self.platform.value}",
            )
        return self.auth

    def page_params(self, options: PaginationOptions | None) -> tuple[int, int]:
        """``(page, per_page)`` with platform defaults and the page-size cap applied."""
        if options is None:
            return 1, self.config.default_per_page
        return options.page or 1, self.config.clamp_per_page(options.per_page)

    async def validate_auth(self) -> OperationResult[bool]:
        """True when the platform accepts the credential; rejected credentials are not errors."""
        if self.auth is None:
            return self.success_result(False, "No credential set")
        try:
            await self._get(self.user_path)
        except (AuthenticationError, AuthorizationError):
            return self.success_result(False, "Credential rejected")
        except GitPlexError as e:
            return self.error_result(e.code, f"Failed to validate credential: {e.message}")
        return self.success_result(True)

    async def check_connection(self) -> OperationResult[bool]:
        try:
            await self._transport.get(self.user_path)
        except AuthenticationError:
            # the API answered, so the platform is reachable
            return self.success_result(True, "Reachable, credential rejected")
        except GitPlexError as e:
            self.logger.info("Connection check failed: %s", e)
            return self.success_result(False, e.message)
        return self.success_result(True)

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None = None,
        delay: float | None = None,
    ) -> T:
        """
        Run ``operation``, retrying transient failures with exponential backoff.

        Only idempotent calls go through here. Waits ``delay * 2**(n-1)`` after
        the n-th failure (with jitter, capped at ``max_backoff``), or the
        platform's Retry-After when rate limited.

        Raises:
            GitPlexError: The last error once attempts are exhausted, or the
                first non-transient error
        """
        attempts = max_attempts if max_attempts is not None else self.config.retry_attempts
        base_delay = delay if delay is not None else self.config.retry_delay

        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except GitPlexError as e:
                if not is_transient(e) or attempt >= attempts:
                    raise
                wait_time = self._get_backoff_time(attempt, base_delay, e)
                self.logger.warning(
                    "Transient error (%s), retrying in %.2fs (attempt %d/%d)",
                    e.code,
                    wait_time,
                    attempt,
                    attempts,
                )
                await asyncio.sleep(wait_time)

        raise GitPlexError(ErrorCode.UNKNOWN_ERROR, "Retry loop exited without a result")

    def _get_backoff_time(self, attempt: int, base_delay: float, error: GitPlexError) -> float:
        if isinstance(error, RateLimitedError) and error.retry_after is not None:
            return min(error.retry_after, self.config.max_backoff)

        base_wait = base_delay * (2 ** (attempt - 1))
        jitter_range = base_wait * self.config.jitter
        wait_time = base_wait + random.uniform(-jitter_range, jitter_range)
        return max(0.0, min(wait_time, self.config.max_backoff))

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Idempotent GET with retry; returns the full ``HTTPResult``."""
        return await self.with_retry(lambda: self._transport.get(path, params))
