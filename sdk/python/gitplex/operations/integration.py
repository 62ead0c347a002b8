"""Platform authentication, repository selection and statistics use-cases."""

from gitplex.cache import cache_key
from gitplex.exceptions import ErrorCode
from gitplex.logging import get_logger
from gitplex.operations.context import BranchContext
from gitplex.service import BRANCHES, GitService
from gitplex.types.common import GitAuth, GitPlatform, GitUser, OperationResult, TokenType
from gitplex.types.options import RepositoryListOptions, SearchOptions
from gitplex.types.repos import Repository
from gitplex.types.stats import GitStats

REPOSITORY_PAGE_SIZE = 100
SEARCH_PAGE_SIZE = 50


class GitIntegration:
    """
    Connects platforms to a ``BranchContext``.

    Example:
        >>> integration = GitIntegration(service, context)
        >>> result = await integration.authenticate_platform(GitPlatform.GITHUB, token)
        >>> if result.success:
        ...     await integration.load_repositories()
    """

    def __init__(self, service: GitService, context: BranchContext | None = None) -> None:
        self.service = service
        self.context = context or BranchContext()
        self.logger = get_logger("operations")

    @property
    def current_user(self) -> GitUser | None:
        platform = self.context.current_platform
        return self.context.current_user.get(platform) if platform else None

    @property
    def is_authenticated(self) -> bool:
        platform = self.context.current_platform
        return platform is not None and platform in self.context.authenticated_platforms

    def get_supported_platforms(self) -> list[GitPlatform]:
        return self.service.get_supported_platforms()

    def switch_platform(self, platform: GitPlatform | str) -> OperationResult[GitPlatform]:
        if not self.service.is_platform_supported(platform):
            result: OperationResult[GitPlatform] = OperationResult.fail(
                ErrorCode.UNSUPPORTED_PLATFORM, f"Platform {platform} is not supported"
            )
            self.context.record_failure(ErrorCode.UNSUPPORTED_PLATFORM, result)
            return result
        platform = GitPlatform(platform)
        self.context.current_platform = platform
        return OperationResult.ok(platform, platform=platform)

    async def authenticate_platform(
        self,
        platform: GitPlatform | str,
        token: str,
        token_type: TokenType = TokenType.PERSONAL,
    ) -> OperationResult[GitUser]:
        """
        Store a credential only once the platform accepts it.

        The credential is set, validated and used to fetch the current user.
        Any failure removes it again and is reported with code ``AUTH_ERROR``.
        """
        if not self.service.is_platform_supported(platform):
            return self._auth_failure(
                platform, OperationResult.fail(ErrorCode.UNSUPPORTED_PLATFORM, f"Platform {platform} is not supported")
            )
        platform = GitPlatform(platform)
        self.context.remove_error(ErrorCode.AUTH_ERROR)

        auth = GitAuth(platform=platform, token=token, token_type=token_type)
        self.service.set_auth(platform, auth)

        validation = await self.service.validate_auth(platform)
        if not validation.success:
            return self._auth_failure(platform, validation)
        if not validation.data:
            return self._auth_failure(
                platform, OperationResult.fail(ErrorCode.AUTHENTICATION_FAILED, "Credential was rejected")
            )

        user_result = await self.service.get_current_user(platform)
        if not user_result.success or user_result.data is None:
            return self._auth_failure(platform, user_result)

        auth.user = user_result.data
        self.service.set_auth(platform, auth)
        self.context.add_platform(platform, user_result.data)
        if self.context.current_platform is None:
            self.context.current_platform = platform
        self.logger.info("Authenticated %s as %s", platform.value, user_result.data.username)
        return user_result

    def disconnect_platform(self, platform: GitPlatform | str) -> None:
        """Forget the credential; switches to another connected platform if needed."""
        platform = GitPlatform(platform)
        self.service.remove_auth(platform)
        self.context.remove_platform(platform)
        if self.context.current_platform == platform:
            remaining = self.context.authenticated_platforms
            self.context.current_platform = remaining[0] if remaining else None

    async def load_repositories(self, platform: GitPlatform | str | None = None) -> OperationResult[list[Repository]]:
        target = GitPlatform(platform) if platform else self.context.current_platform
        if target is None:
            return OperationResult.fail(ErrorCode.NO_AUTHENTICATED_PLATFORMS, "No platform selected")

        self.context.remove_error(ErrorCode.LOAD_REPOSITORIES_ERROR)
        result = await self.service.list_repositories(
            target,
            RepositoryListOptions(page=1, per_page=REPOSITORY_PAGE_SIZE, sort="updated", order="desc"),
        )
        if not result.success:
            self.context.record_failure(ErrorCode.LOAD_REPOSITORIES_ERROR, result)
            return result

        repositories = result.data.data
        if target == self.context.current_platform:
            self.context.repositories = repositories
        return OperationResult.ok(repositories, platform=target)

    async def load_all_repositories(self) -> OperationResult[list[Repository]]:
        platforms = list(self.context.authenticated_platforms)
        if not platforms:
            return OperationResult.fail(ErrorCode.NO_AUTHENTICATED_PLATFORMS, "No authenticated platforms available")

        self.context.remove_error(ErrorCode.LOAD_REPOSITORIES_ERROR)
        result = await self.service.list_all_repositories(platforms)
        if not result.success:
            self.context.record_failure(ErrorCode.LOAD_REPOSITORIES_ERROR, result)
            return result
        self.context.repositories = result.data
        return result

    async def search_repositories(self, query: str, platform: GitPlatform | str | None = None) -> list[Repository]:
        """Repositories matching ``query``; empty on a blank query or failure."""
        target = GitPlatform(platform) if platform else self.context.current_platform
        if target is None or not query.strip():
            return []

        result = await self.service.search_repositories(
            target, query, SearchOptions(page=1, per_page=SEARCH_PAGE_SIZE, sort="updated", order="desc")
        )
        if not result.success:
            self.logger.error("Repository search failed: %s", result.error.message)
            return []
        return result.data.data

    def select_repository(self, repository: Repository | None) -> None:
        """Select ``repository``, resetting branch state and its cached listings."""
        self.context.set_repository(repository)
        if repository is not None:
            owner, repo = repository.split_full_name()
            self.service.clear_cache_by_prefix(f"{cache_key(BRANCHES, repository.platform, owner, repo)}-")

    async def load_stats(self) -> OperationResult[GitStats]:
        platforms = list(self.context.authenticated_platforms)
        if not platforms:
            return OperationResult.ok(GitStats())

        self.context.remove_error(ErrorCode.LOAD_STATS_ERROR)
        result = await self.service.get_git_stats(platforms)
        if not result.success:
            self.context.record_failure(ErrorCode.LOAD_STATS_ERROR, result)
            return result
        self.context.stats = result.data
        return result

    async def validate_connection(self, platform: GitPlatform | str) -> bool:
        result = await self.service.validate_auth(platform)
        return result.success and bool(result.data)

    def clear_cache(self) -> None:
        self.service.clear_cache()

    def _auth_failure(self, platform: GitPlatform | str, result: OperationResult[object]) -> OperationResult[GitUser]:
        if self.service.get_auth(platform) is not None:
            self.service.remove_auth(platform)
        message = result.error.message if result.error else "Authentication failed"
        failure: OperationResult[GitUser] = OperationResult.fail(
            ErrorCode.AUTH_ERROR,
            message,
            details={"cause": result.error_code},
            platform=_platform_or_none(platform),
        )
        self.context.add_error(failure.error)
        self.logger.warning("Authentication with %s failed: %s", platform, message)
        return failure


def _platform_or_none(value: GitPlatform | str) -> GitPlatform | None:
    try:
        return GitPlatform(value)
    except ValueError:
        return None
