"""
Orchestration service.

``GitService`` is the single entry point for business logic. It owns the
per-platform credential table, lazily created adapters, and a TTL response
cache, and it fans out across platforms with settle-all semantics.
"""

import asyncio
import functools
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, TypeVar

import httpx

from gitplex.adapters.base import GitPlatformAdapter
from gitplex.adapters.factory import AdapterFactory
from gitplex.cache import ResponseCache, cache_key, options_key
from gitplex.config import GitServiceConfig
from gitplex.exceptions import ErrorCode, GitPlexError, UnsupportedPlatformError
from gitplex.logging import get_logger
from gitplex.types.branches import Branch, BranchComparison, BranchProtection, BranchStatus
from gitplex.types.commits import CodeSearchResult, Commit, FileChange
from gitplex.types.common import (
    ApiResponse,
    GitAuth,
    GitError,
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
    RepositoryListOptions,
    SearchOptions,
    UpdateMergeRequestOptions,
    coerce_options,
)
from gitplex.types.repos import Repository
from gitplex.types.stats import GitStats

T = TypeVar("T")

# Cache key namespaces; every key is "<namespace>-<platform>-..."
REPOS = "repos"
REPO = "repo"
BRANCHES = "branches"
MERGE_REQUESTS = "merge-requests"

# Page sizes used when sampling for statistics
STATS_REPOSITORY_PAGE = 100
STATS_BRANCH_PAGE = 50
STATS_MERGE_REQUEST_PAGE = 20


def _as_platform(value: Any) -> GitPlatform | None:
    try:
        return GitPlatform(value)
    except (ValueError, TypeError):
        return None


def service_operation(func: Callable[..., Awaitable[OperationResult[Any]]]) -> Callable[..., Awaitable[OperationResult[Any]]]:
    """Convert exceptions raised at the service boundary into error results."""

    @functools.wraps(func)
    async def wrapper(self: "GitService", *args: Any, **kwargs: Any) -> OperationResult[Any]:
        platform = _as_platform(args[0] if args else kwargs.get("platform"))
        try:
            return await func(self, *args, **kwargs)
        except GitPlexError as e:
            return OperationResult.fail(e.code, e.message, details=e.details, platform=platform)
        except Exception as e:
            self.logger.exception("Unexpected error in %s", func.__name__)
            return OperationResult.fail(
                ErrorCode.UNKNOWN_ERROR,
                str(e) or type(e).__name__,
                details={"exception": type(e).__name__},
                platform=platform,
            )

    return wrapper


class GitService:
    """
    Platform-independent facade over the adapters.

    Example:
        >>> async with GitService() as service:
        ...     service.set_auth(GitPlatform.GITHUB, GitAuth(GitPlatform.GITHUB, token))
        ...     result = await service.list_branches(GitPlatform.GITHUB, "octo", "hello")
        ...     if result.success:
        ...         names = [b.name for b in result.data.data]
    """

    def __init__(
        self,
        config: GitServiceConfig | None = None,
        factory: AdapterFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
        http_transports: Mapping[GitPlatform, httpx.AsyncBaseTransport] | None = None,
    ) -> None:
        """
        Args:
            config: Service configuration (defaults to ``GitServiceConfig()``)
            factory: Adapter factory (defaults to one built from ``config``)
            clock: Monotonic time source for the response cache
            http_transports: Per-platform httpx transports passed to adapters
        """
        self.config = config or GitServiceConfig()
        self._factory = factory or AdapterFactory(self.config.platform_configs, http_transports)
        self._adapters: dict[GitPlatform, GitPlatformAdapter] = {}
        self._auths: dict[GitPlatform, GitAuth] = {}
        self._cache = ResponseCache(
            default_ttl=self.config.cache_ttl,
            clock=clock,
            scheduled_eviction=self.config.scheduled_eviction,
        )
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)
        self.last_aggregate_errors: dict[GitPlatform, GitError] = {}
        self.logger = get_logger("service")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **kwargs: Any) -> "GitService":
        return cls(GitServiceConfig.from_env(environ), **kwargs)

    async def close(self) -> None:
        """Close every adapter's HTTP client."""
        for adapter in self._adapters.values():
            await adapter.close()
        self._adapters.clear()

    async def __aenter__(self) -> "GitService":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    # Adapters and credentials

    def get_adapter(self, platform: GitPlatform | str) -> GitPlatformAdapter | None:
        """The adapter for ``platform``, created on first use; None if unsupported."""
        try:
            return self._adapter(platform)
        except GitPlexError as e:
            self.logger.warning("No adapter for %s: %s", platform, e.message)
            return None

    def register_adapter(self, platform: GitPlatform | str, adapter: GitPlatformAdapter) -> None:
        """Use ``adapter`` for ``platform`` instead of a factory-built one."""
        platform = self._platform(platform)
        self._adapters[platform] = adapter
        auth = self._auths.get(platform)
        if auth is not None:
            adapter.set_auth(auth)

    def set_auth(self, platform: GitPlatform | str, auth: GitAuth) -> None:
        """
        Store the credential and propagate it to the platform's adapter.

        Raises:
            UnsupportedPlatformError: If the platform has no adapter
        """
        platform = self._platform(platform)
        adapter = self._adapter(platform)
        self._auths[platform] = auth
        adapter.set_auth(auth)

    def get_auth(self, platform: GitPlatform | str) -> GitAuth | None:
        platform = _as_platform(platform)
        return self._auths.get(platform) if platform else None

    def has_auth(self, platform: GitPlatform | str) -> bool:
        return self.get_auth(platform) is not None

    def remove_auth(self, platform: GitPlatform | str) -> None:
        """Forget the credential and purge every cached response of the platform."""
        platform = self._platform(platform)
        self._auths.pop(platform, None)
        adapter = self._adapters.get(platform)
        if adapter is not None:
            adapter.clear_auth()
        for namespace in (REPOS, REPO, BRANCHES, MERGE_REQUESTS):
            self._cache.clear_by_prefix(f"{cache_key(namespace, platform)}-")
        self.logger.info("Removed credential for %s", platform.value)

    def get_authenticated_platforms(self) -> list[GitPlatform]:
        return list(self._auths)

    def get_supported_platforms(self) -> list[GitPlatform]:
        return self._factory.get_supported_platforms()

    def is_platform_supported(self, platform: GitPlatform | str) -> bool:
        return self._factory.is_platform_supported(platform)

    # Cache

    def clear_cache(self) -> None:
        self._cache.clear()

    def clear_cache_by_prefix(self, prefix: str) -> int:
        return self._cache.clear_by_prefix(prefix)

    def invalidate_repository(self, platform: GitPlatform | str, owner: str, repo: str) -> None:
        """Drop cached branch and merge request listings of one repository."""
        platform = self._platform(platform)
        for namespace in (BRANCHES, MERGE_REQUESTS):
            self._cache.clear_by_prefix(f"{cache_key(namespace, platform, owner, repo)}-")

    # Authentication

    @service_operation
    async def get_current_user(self, platform: GitPlatform | str) -> OperationResult[GitUser]:
        return await self._adapter(platform).get_current_user()

    @service_operation
    async def validate_auth(self, platform: GitPlatform | str) -> OperationResult[bool]:
        return await self._adapter(platform).validate_auth()

    # Repositories

    @service_operation
    async def list_all_repositories(
        self,
        platforms: Iterable[GitPlatform | str] | None = None,
        options: RepositoryListOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[list[Repository]]:
        """
        List repositories on several platforms concurrently.

        Succeeds when at least one platform succeeded; failed platforms are
        dropped from the result and recorded in ``last_aggregate_errors``.
        The merged list is sorted by ``updated_at``, most recent first.
        """
        targets = self._targets(platforms)
        if not targets:
            return OperationResult.fail(
                ErrorCode.NO_AUTHENTICATED_PLATFORMS, "No authenticated platforms available"
            )
        options = coerce_options(RepositoryListOptions, options)

        outcomes = await self._fan_out(targets, lambda p: self.list_repositories(p, options))
        repositories: list[Repository] = []
        succeeded, errors = self._settle(targets, outcomes)
        for page in succeeded.values():
            repositories.extend(page.data)

        if not succeeded:
            return self._all_failed("Failed to fetch repositories", errors)
        repositories.sort(key=lambda r: r.updated_at, reverse=True)
        return OperationResult.ok(repositories)

    @service_operation
    async def list_repositories(
        self,
        platform: GitPlatform | str,
        options: RepositoryListOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[Repository]]]:
        platform = self._platform(platform)
        options = coerce_options(RepositoryListOptions, options)
        return await self._cached(
            cache_key(REPOS, platform, options_key(options)),
            self.config.cache_ttl,
            lambda: self._adapter(platform).list_repositories(options),
        )

    @service_operation
    async def get_repository(self, platform: GitPlatform | str, owner: str, repo: str) -> OperationResult[Repository]:
        platform = self._platform(platform)
        return await self._cached(
            cache_key(REPO, platform, owner, repo),
            self.config.cache_ttl,
            lambda: self._adapter(platform).get_repository(owner, repo),
        )

    @service_operation
    async def search_repositories(
        self,
        platform: GitPlatform | str,
        query: str,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[Repository]]]:
        options = coerce_options(SearchOptions, options)
        return await self._adapter(platform).search_repositories(query, options)

    # Branches

    @service_operation
    async def list_branches(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        options: BranchListOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[Branch]]]:
        platform = self._platform(platform)
        options = coerce_options(BranchListOptions, options)
        return await self._cached(
            cache_key(BRANCHES, platform, owner, repo, options_key(options)),
            self.config.branch_cache_ttl,
            lambda: self._adapter(platform).list_branches(owner, repo, options),
        )

    @service_operation
    async def get_branch(self, platform: GitPlatform | str, owner: str, repo: str, branch: str) -> OperationResult[Branch]:
        return await self._adapter(platform).get_branch(owner, repo, branch)

    @service_operation
    async def create_branch(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        options: CreateBranchOptions | Mapping[str, Any],
    ) -> OperationResult[Branch]:
        options = coerce_options(CreateBranchOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.create_branch(owner, repo, options)
        )

    @service_operation
    async def delete_branch(self, platform: GitPlatform | str, owner: str, repo: str, branch: str) -> OperationResult[None]:
        return await self._mutate(platform, owner, repo, lambda a: a.delete_branch(owner, repo, branch))

    @service_operation
    async def compare_branches(
        self, platform: GitPlatform | str, owner: str, repo: str, base: str, head: str
    ) -> OperationResult[BranchComparison]:
        return await self._adapter(platform).compare_branches(owner, repo, base, head)

    @service_operation
    async def get_branch_protection(
        self, platform: GitPlatform | str, owner: str, repo: str, branch: str
    ) -> OperationResult[BranchProtection]:
        return await self._adapter(platform).get_branch_protection(owner, repo, branch)

    @service_operation
    async def set_branch_protection(
        self, platform: GitPlatform | str, owner: str, repo: str, branch: str, protection: BranchProtection
    ) -> OperationResult[BranchProtection]:
        return await self._mutate(
            platform, owner, repo, lambda a: a.set_branch_protection(owner, repo, branch, protection)
        )

    @service_operation
    async def remove_branch_protection(
        self, platform: GitPlatform | str, owner: str, repo: str, branch: str
    ) -> OperationResult[None]:
        return await self._mutate(
            platform, owner, repo, lambda a: a.remove_branch_protection(owner, repo, branch)
        )

    # Commits

    @service_operation
    async def list_commits(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        options: CommitListOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[Commit]]]:
        options = coerce_options(CommitListOptions, options)
        return await self._adapter(platform).list_commits(owner, repo, options)

    @service_operation
    async def get_commit(self, platform: GitPlatform | str, owner: str, repo: str, sha: str) -> OperationResult[Commit]:
        return await self._adapter(platform).get_commit(owner, repo, sha)

    @service_operation
    async def get_commit_changes(
        self, platform: GitPlatform | str, owner: str, repo: str, sha: str
    ) -> OperationResult[list[FileChange]]:
        return await self._adapter(platform).get_commit_changes(owner, repo, sha)

    # Merge requests

    @service_operation
    async def list_merge_requests(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        options: MergeRequestListOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[MergeRequest]]]:
        platform = self._platform(platform)
        options = coerce_options(MergeRequestListOptions, options)
        return await self._cached(
            cache_key(MERGE_REQUESTS, platform, owner, repo, options_key(options)),
            self.config.branch_cache_ttl,
            lambda: self._adapter(platform).list_merge_requests(owner, repo, options),
        )

    @service_operation
    async def get_merge_request(
        self, platform: GitPlatform | str, owner: str, repo: str, number: int
    ) -> OperationResult[MergeRequest]:
        return await self._adapter(platform).get_merge_request(owner, repo, number)

    @service_operation
    async def create_merge_request(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        options: CreateMergeRequestOptions | Mapping[str, Any],
    ) -> OperationResult[MergeRequest]:
        options = coerce_options(CreateMergeRequestOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.create_merge_request(owner, repo, options)
        )

    @service_operation
    async def update_merge_request(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        number: int,
        options: UpdateMergeRequestOptions | Mapping[str, Any],
    ) -> OperationResult[MergeRequest]:
        options = coerce_options(UpdateMergeRequestOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.update_merge_request(owner, repo, number, options)
        )

    @service_operation
    async def merge_merge_request(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        number: int,
        options: MergeBranchOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[MergeRequest]:
        options = coerce_options(MergeBranchOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.merge_merge_request(owner, repo, number, options)
        )

    @service_operation
    async def close_merge_request(
        self, platform: GitPlatform | str, owner: str, repo: str, number: int
    ) -> OperationResult[MergeRequest]:
        return await self._mutate(
            platform, owner, repo, lambda a: a.close_merge_request(owner, repo, number)
        )

    # Files

    @service_operation
    async def get_file_content(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        path: str,
        options: GetFileContentOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[str]:
        options = coerce_options(GetFileContentOptions, options)
        return await self._adapter(platform).get_file_content(owner, repo, path, options)

    @service_operation
    async def create_file(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        path: str,
        options: FileOperationOptions | Mapping[str, Any],
    ) -> OperationResult[Commit]:
        options = coerce_options(FileOperationOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.create_file(owner, repo, path, options)
        )

    @service_operation
    async def update_file(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        path: str,
        options: FileOperationOptions | Mapping[str, Any],
    ) -> OperationResult[Commit]:
        options = coerce_options(FileOperationOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.update_file(owner, repo, path, options)
        )

    @service_operation
    async def delete_file(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        path: str,
        options: DeleteFileOptions | Mapping[str, Any],
    ) -> OperationResult[Commit]:
        options = coerce_options(DeleteFileOptions, options)
        return await self._mutate(
            platform, owner, repo, lambda a: a.delete_file(owner, repo, path, options)
        )

    # Search

    @service_operation
    async def search_code(
        self,
        platform: GitPlatform | str,
        query: str,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[CodeSearchResult]]]:
        options = coerce_options(SearchOptions, options)
        return await self._adapter(platform).search_code(query, options)

    @service_operation
    async def search_commits(
        self,
        platform: GitPlatform | str,
        query: str,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> OperationResult[ApiResponse[list[Commit]]]:
        options = coerce_options(SearchOptions, options)
        return await self._adapter(platform).search_commits(query, options)

    # Diagnostics

    @service_operation
    async def get_rate_limit(self, platform: GitPlatform | str) -> OperationResult[RateLimit]:
        return await self._adapter(platform).get_rate_limit()

    @service_operation
    async def check_connection(self, platform: GitPlatform | str) -> OperationResult[bool]:
        return await self._adapter(platform).check_connection()

    # Statistics

    @service_operation
    async def get_git_stats(
        self, platforms: Iterable[GitPlatform | str] | None = None
    ) -> OperationResult[GitStats]:
        """
        Roll up repository, branch and merge request counts.

        Repositories are counted from one page of up to 100 per platform.
        Branch and merge request counts come from the first
        ``stats_sample_size`` repositories of each platform only, so they
        under-report on large accounts in exchange for a bounded number of
        API calls.
        """
        targets = self._targets(platforms)
        stats = GitStats()
        if not targets:
            return OperationResult.ok(stats)

        outcomes = await self._fan_out(targets, self._platform_stats)
        succeeded, errors = self._settle(targets, outcomes)
        if not succeeded:
            return self._all_failed("Failed to collect statistics", errors)
        for platform_stats in succeeded.values():
            stats.add(platform_stats)
        return OperationResult.ok(stats)

    async def _platform_stats(self, platform: GitPlatform) -> OperationResult[GitStats]:
        repos_result = await self.list_repositories(
            platform, RepositoryListOptions(per_page=STATS_REPOSITORY_PAGE)
        )
        if not repos_result.success:
            return repos_result

        repositories = repos_result.data.data
        stats = GitStats(total_repositories=len(repositories))
        auth = self._auths.get(platform)
        username = auth.user.username if auth and auth.user else None

        for repository in repositories[: self.config.stats_sample_size]:
            owner, name = repository.split_full_name()

            branches_result = await self.list_branches(
                platform, owner, name, BranchListOptions(per_page=STATS_BRANCH_PAGE)
            )
            if branches_result.success:
                branches = branches_result.data.data
                stats.total_branches += len(branches)
                stats.active_branches += sum(1 for b in branches if b.status is BranchStatus.ACTIVE)
                stats.stale_branches += sum(1 for b in branches if b.status is BranchStatus.STALE)

            mrs_result = await self.list_merge_requests(
                platform, owner, name, MergeRequestListOptions(per_page=STATS_MERGE_REQUEST_PAGE)
            )
            if mrs_result.success:
                merge_requests = mrs_result.data.data
                pending = [mr for mr in merge_requests if not mr.state.is_terminal]
                stats.total_merge_requests += len(merge_requests)
                stats.open_merge_requests += len(pending)
                if username:
                    stats.my_merge_requests += sum(
                        1 for mr in merge_requests if mr.author.username == username
                    )
                    stats.needs_review += sum(
                        1 for mr in pending if any(r.username == username for r in mr.reviewers)
                    )

        return OperationResult.ok(stats, platform=platform)

    # Internals

    def _platform(self, platform: GitPlatform | str) -> GitPlatform:
        resolved = _as_platform(platform)
        if resolved is None:
            raise UnsupportedPlatformError(platform)
        return resolved

    def _adapter(self, platform: GitPlatform | str) -> GitPlatformAdapter:
        platform = self._platform(platform)
        adapter = self._adapters.get(platform)
        if adapter is None:
            adapter = self._factory.create_adapter(platform)
            auth = self._auths.get(platform)
            if auth is not None:
                adapter.set_auth(auth)
            self._adapters[platform] = adapter
            self.logger.debug("Created %s adapter", platform.value)
        return adapter

    def _targets(self, platforms: Iterable[GitPlatform | str] | None) -> list[GitPlatform]:
        if platforms is None:
            return self.get_authenticated_platforms()
        return [self._platform(p) for p in platforms]

    async def _cached(
        self,
        key: str,
        ttl: float,
        fetch: Callable[[], Awaitable[OperationResult[T]]],
    ) -> OperationResult[T]:
        if self.config.cache_enabled:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
        result = await fetch()
        if result.success and self.config.cache_enabled:
            self._cache.set(key, result, ttl)
        return result

    async def _mutate(
        self,
        platform: GitPlatform | str,
        owner: str,
        repo: str,
        operation: Callable[[GitPlatformAdapter], Awaitable[OperationResult[T]]],
    ) -> OperationResult[T]:
        result = await operation(self._adapter(platform))
        if result.success:
            self.invalidate_repository(platform, owner, repo)
        return result

    async def _fan_out(
        self,
        targets: list[GitPlatform],
        call: Callable[[GitPlatform], Awaitable[OperationResult[Any]]],
    ) -> list[Any]:
        async def bounded(platform: GitPlatform) -> OperationResult[Any]:
            async with self._semaphore:
                return await call(platform)

        return await asyncio.gather(*(bounded(p) for p in targets), return_exceptions=True)

    def _settle(
        self, targets: list[GitPlatform], outcomes: list[Any]
    ) -> tuple[dict[GitPlatform, Any], dict[GitPlatform, GitError]]:
        """Split fan-out outcomes into per-platform data and errors."""
        succeeded: dict[GitPlatform, Any] = {}
        errors: dict[GitPlatform, GitError] = {}
        for platform, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                errors[platform] = GitError(
                    code=ErrorCode.UNKNOWN_ERROR,
                    message=str(outcome) or type(outcome).__name__,
                    platform=platform,
                )
            elif outcome.success:
                succeeded[platform] = outcome.data
            else:
                errors[platform] = outcome.error

        self.last_aggregate_errors = errors
        for platform, error in errors.items():
            if succeeded:
                self.logger.warning("Dropping %s from aggregate result: %s", platform.value, error.message)
        return succeeded, errors

    @staticmethod
    def _all_failed(prefix: str, errors: dict[GitPlatform, GitError]) -> OperationResult[Any]:
        reasons = "; ".join(f"{p.value}: {e.message}" for p, e in errors.items())
        return OperationResult.fail(
            ErrorCode.ALL_PLATFORMS_FAILED,
            f"{prefix}: {reasons}",
            details={p.value: e.code for p, e in errors.items()},
        )
