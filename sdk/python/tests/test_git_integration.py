"""
Tests for GitIntegration: authentication, platform switching and repositories.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest

from gitplex.exceptions import ErrorCode
from gitplex.operations import BranchContext, GitIntegration
from gitplex.service import GitService
from gitplex.testing import MockAdapter, create_mock_branch, create_mock_repository
from gitplex.testing.fixtures import FIXED_TIME
from gitplex.types import GitPlatform
from gitplex.types.common import OperationResult


@pytest.fixture
async def service(mock_github_adapter: MockAdapter, mock_gitlab_adapter: MockAdapter) -> AsyncGenerator[GitService, None]:
    """Both mock adapters registered, neither authenticated."""
    service = GitService()
    service.register_adapter(GitPlatform.GITHUB, mock_github_adapter)
    service.register_adapter(GitPlatform.GITLAB, mock_gitlab_adapter)
    yield service
    await service.close()


@pytest.fixture
def context() -> BranchContext:
    return BranchContext()


@pytest.fixture
def integration(service: GitService, context: BranchContext) -> GitIntegration:
    return GitIntegration(service, context)


class TestAuthenticate:
    """Credentials are kept only once the platform accepts them."""

    async def test_success(self, integration: GitIntegration, service: GitService, context: BranchContext) -> None:
        result = await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        assert result.success
        assert result.data.username == "mock-user"
        assert context.authenticated_platforms == [GitPlatform.GITHUB]
        assert context.current_platform is GitPlatform.GITHUB
        assert service.get_auth(GitPlatform.GITHUB).user.username == "mock-user"
        assert integration.is_authenticated
        assert integration.current_user.username == "mock-user"

    async def test_first_platform_stays_current(self, integration: GitIntegration, context: BranchContext) -> None:
        await integration.authenticate_platform("github", "ghp_valid")
        await integration.authenticate_platform("gitlab", "glpat-valid")

        assert context.current_platform is GitPlatform.GITHUB
        assert context.authenticated_platforms == [GitPlatform.GITHUB, GitPlatform.GITLAB]

    async def test_rejected_credential_removed(
        self,
        integration: GitIntegration,
        service: GitService,
        context: BranchContext,
        mock_github_adapter: MockAdapter,
    ) -> None:
        mock_github_adapter.fail("validate_auth", ErrorCode.AUTHENTICATION_FAILED, "Bad credentials")

        result = await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_bad")

        assert result.error_code == ErrorCode.AUTH_ERROR
        assert result.error.message == "Bad credentials"
        assert result.error.details == {"cause": ErrorCode.AUTHENTICATION_FAILED}
        assert not service.has_auth(GitPlatform.GITHUB)
        assert mock_github_adapter.auth is None
        assert context.authenticated_platforms == []
        assert context.get_error(ErrorCode.AUTH_ERROR) is not None

    async def test_validation_false(
        self, integration: GitIntegration, service: GitService, mock_github_adapter: MockAdapter
    ) -> None:
        mock_github_adapter.configure("validate_auth", OperationResult.ok(False))

        result = await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_expired")

        assert result.error.details == {"cause": ErrorCode.AUTHENTICATION_FAILED}
        assert not service.has_auth(GitPlatform.GITHUB)
        assert not mock_github_adapter.was_called("get_current_user")

    async def test_user_lookup_failure(
        self, integration: GitIntegration, service: GitService, mock_gitlab_adapter: MockAdapter
    ) -> None:
        mock_gitlab_adapter.fail("get_current_user", ErrorCode.FORBIDDEN, "Insufficient scope")

        result = await integration.authenticate_platform(GitPlatform.GITLAB, "glpat-narrow")

        assert result.error.details == {"cause": ErrorCode.FORBIDDEN}
        assert not service.has_auth(GitPlatform.GITLAB)

    async def test_unsupported_platform(self, integration: GitIntegration) -> None:
        result = await integration.authenticate_platform("gitee", "token")

        assert result.error_code == ErrorCode.AUTH_ERROR
        assert result.error.details == {"cause": ErrorCode.UNSUPPORTED_PLATFORM}

    async def test_success_clears_previous_error(
        self, integration: GitIntegration, context: BranchContext, mock_github_adapter: MockAdapter
    ) -> None:
        mock_github_adapter.fail("validate_auth", ErrorCode.NETWORK_ERROR, "offline")
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        mock_github_adapter.reset()

        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        assert context.get_error(ErrorCode.AUTH_ERROR) is None


class TestPlatforms:
    """Switching and disconnecting platforms."""

    def test_switch_unsupported(self, integration: GitIntegration, context: BranchContext) -> None:
        result = integration.switch_platform("bitbucket")

        assert result.error_code == ErrorCode.UNSUPPORTED_PLATFORM
        assert context.current_platform is None
        assert context.get_error(ErrorCode.UNSUPPORTED_PLATFORM) is not None

    def test_switch(self, integration: GitIntegration, context: BranchContext) -> None:
        assert integration.switch_platform("gitlab").data is GitPlatform.GITLAB
        assert context.current_platform is GitPlatform.GITLAB

    async def test_disconnect_falls_back(
        self, integration: GitIntegration, service: GitService, context: BranchContext
    ) -> None:
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        await integration.authenticate_platform(GitPlatform.GITLAB, "glpat-valid")

        integration.disconnect_platform(GitPlatform.GITHUB)

        assert context.current_platform is GitPlatform.GITLAB
        assert not service.has_auth(GitPlatform.GITHUB)

        integration.disconnect_platform(GitPlatform.GITLAB)
        assert context.current_platform is None
        assert not integration.is_authenticated

    def test_supported_platforms(self, integration: GitIntegration) -> None:
        assert integration.get_supported_platforms() == [GitPlatform.GITHUB, GitPlatform.GITLAB]


class TestRepositories:
    """Loading, searching and selecting repositories."""

    async def test_load_current_platform(
        self, integration: GitIntegration, context: BranchContext, mock_github_adapter: MockAdapter
    ) -> None:
        mock_github_adapter.add_repositories([create_mock_repository("octo/hello"), create_mock_repository("octo/world")])
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        result = await integration.load_repositories()

        assert [r.full_name for r in result.data] == ["octo/hello", "octo/world"]
        assert context.repositories == result.data
        options = mock_github_adapter.get_calls("list_repositories")[0].args[0]
        assert (options.per_page, options.sort, options.order) == (100, "updated", "desc")

    async def test_load_without_platform(self, integration: GitIntegration) -> None:
        result = await integration.load_repositories()
        assert result.error_code == ErrorCode.NO_AUTHENTICATED_PLATFORMS

    async def test_load_failure_recorded(
        self, integration: GitIntegration, context: BranchContext, mock_github_adapter: MockAdapter
    ) -> None:
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        mock_github_adapter.fail("list_repositories", ErrorCode.RATE_LIMITED, "API rate limit exceeded")

        result = await integration.load_repositories()

        assert result.error_code == ErrorCode.RATE_LIMITED
        assert context.get_error(ErrorCode.LOAD_REPOSITORIES_ERROR).message == "API rate limit exceeded"

    async def test_load_all_merges_platforms(
        self,
        integration: GitIntegration,
        context: BranchContext,
        mock_github_adapter: MockAdapter,
        mock_gitlab_adapter: MockAdapter,
    ) -> None:
        mock_github_adapter.add_repositories(
            [create_mock_repository("octo/old", updated_at=FIXED_TIME - timedelta(days=2))]
        )
        mock_gitlab_adapter.add_repositories(
            [create_mock_repository("group/new", GitPlatform.GITLAB, updated_at=FIXED_TIME)]
        )
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        await integration.authenticate_platform(GitPlatform.GITLAB, "glpat-valid")

        result = await integration.load_all_repositories()

        assert [r.full_name for r in context.repositories] == ["group/new", "octo/old"]
        assert result.success

    async def test_load_all_without_platforms(self, integration: GitIntegration) -> None:
        result = await integration.load_all_repositories()
        assert result.error_code == ErrorCode.NO_AUTHENTICATED_PLATFORMS

    async def test_search(self, integration: GitIntegration, mock_github_adapter: MockAdapter) -> None:
        mock_github_adapter.add_repositories([create_mock_repository("octo/hello"), create_mock_repository("octo/world")])
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        assert [r.full_name for r in await integration.search_repositories("WORLD")] == ["octo/world"]

    @pytest.mark.parametrize("query", ["", "   "])
    async def test_blank_search_skips_request(
        self, integration: GitIntegration, mock_github_adapter: MockAdapter, query: str
    ) -> None:
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        assert await integration.search_repositories(query) == []
        assert not mock_github_adapter.was_called("search_repositories")

    async def test_search_failure_is_empty(self, integration: GitIntegration, mock_github_adapter: MockAdapter) -> None:
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        mock_github_adapter.fail("search_repositories", ErrorCode.SERVER_ERROR, "boom")

        assert await integration.search_repositories("hello") == []

    async def test_select_resets_and_refetches_branches(
        self, integration: GitIntegration, service: GitService, context: BranchContext, mock_github_adapter: MockAdapter
    ) -> None:
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        repository = create_mock_repository("octo/hello")
        mock_github_adapter.add_branches("octo", "hello", [create_mock_branch("main")])
        await service.list_branches(GitPlatform.GITHUB, "octo", "hello")
        context.branches = [create_mock_branch("stale")]

        integration.select_repository(repository)
        await service.list_branches(GitPlatform.GITHUB, "octo", "hello")

        assert context.current_repository is repository
        assert context.branches == []
        assert mock_github_adapter.call_count("list_branches") == 2


class TestStats:
    """Statistics rollup."""

    async def test_no_platforms_is_empty(self, integration: GitIntegration) -> None:
        result = await integration.load_stats()

        assert result.success
        assert result.data.total_repositories == 0

    async def test_stored_on_context(
        self, integration: GitIntegration, context: BranchContext, mock_github_adapter: MockAdapter
    ) -> None:
        mock_github_adapter.add_repositories([create_mock_repository("octo/hello")])
        mock_github_adapter.add_branches("octo", "hello", [create_mock_branch("main"), create_mock_branch("dev")])
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        result = await integration.load_stats()

        assert result.data.total_repositories == 1
        assert result.data.total_branches == 2
        assert context.stats is result.data

    async def test_failure_recorded(
        self, integration: GitIntegration, context: BranchContext, mock_github_adapter: MockAdapter
    ) -> None:
        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")
        mock_github_adapter.fail("list_repositories", ErrorCode.SERVER_ERROR, "down")

        result = await integration.load_stats()

        assert not result.success
        assert context.get_error(ErrorCode.LOAD_STATS_ERROR) is not None
        assert context.stats is None


class TestConnection:
    """Connection checks."""

    async def test_validate_connection(self, integration: GitIntegration) -> None:
        assert not await integration.validate_connection(GitPlatform.GITHUB)

        await integration.authenticate_platform(GitPlatform.GITHUB, "ghp_valid")

        assert await integration.validate_connection(GitPlatform.GITHUB)
