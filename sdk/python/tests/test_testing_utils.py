"""
Tests for GitPlex testing utilities.

Verifies that MockAdapter and the builders behave like a real adapter.
"""

import pytest

from gitplex.exceptions import ErrorCode, TransportError
from gitplex.testing import (
    MockAdapter,
    create_mock_auth,
    create_mock_branch,
    create_mock_merge_request,
    create_mock_repository,
    create_mock_user,
)
from gitplex.testing.fixtures import FIXED_TIME
from gitplex.types import GitPlatform
from gitplex.types.branches import BranchStatus
from gitplex.types.common import OperationResult
from gitplex.types.merge_requests import MergeRequestStatus
from gitplex.types.options import (
    BranchListOptions,
    CreateBranchOptions,
    CreateMergeRequestOptions,
    MergeRequestListOptions,
)


class TestMockAdapterDefaults:
    """In-memory behavior without configuration."""

    async def test_requires_credential_for_user(self) -> None:
        mock = MockAdapter()

        assert (await mock.get_current_user()).error_code == ErrorCode.AUTHENTICATION_FAILED
        assert (await mock.validate_auth()).data is False

        mock.set_auth(create_mock_auth())
        assert (await mock.get_current_user()).data.username == "mock-user"

    async def test_branch_lifecycle(self) -> None:
        mock = MockAdapter()
        mock.add_branches("octo", "hello", [create_mock_branch("main", is_default=True)])

        created = await mock.create_branch("octo", "hello", CreateBranchOptions(name="dev", ref="main"))
        duplicate = await mock.create_branch("octo", "hello", CreateBranchOptions(name="dev", ref="main"))
        missing_ref = await mock.create_branch("octo", "hello", CreateBranchOptions(name="x", ref="nope"))

        assert created.data.name == "dev"
        assert duplicate.error_code == ErrorCode.CONFLICT
        assert missing_ref.error_code == ErrorCode.NOT_FOUND

        assert (await mock.delete_branch("octo", "hello", "dev")).success
        assert (await mock.delete_branch("octo", "hello", "dev")).error_code == ErrorCode.NOT_FOUND

    async def test_pagination(self) -> None:
        mock = MockAdapter()
        mock.add_branches("octo", "hello", [create_mock_branch(f"b{i}") for i in range(5)])

        page = (await mock.list_branches("octo", "hello", BranchListOptions(page=2, per_page=2))).data

        assert [b.name for b in page.data] == ["b2", "b3"]
        assert page.pagination.total == 5
        assert page.pagination.total_pages == 3
        assert page.pagination.has_next and page.pagination.has_prev

    async def test_merge_request_numbering_and_draft(self) -> None:
        mock = MockAdapter()
        mock.add_merge_requests("octo", "hello", [create_mock_merge_request(4)])

        created = await mock.create_merge_request(
            "octo",
            "hello",
            CreateMergeRequestOptions(title="WIP", source_branch="feature/x", target_branch="main", is_draft=True),
        )

        assert created.data.number == 5
        assert created.data.state is MergeRequestStatus.DRAFT

    async def test_merge_request_state_filter(self) -> None:
        mock = MockAdapter()
        mock.add_merge_requests(
            "octo",
            "hello",
            [
                create_mock_merge_request(1),
                create_mock_merge_request(2, state=MergeRequestStatus.MERGED),
                create_mock_merge_request(3, state=MergeRequestStatus.CLOSED),
            ],
        )

        async def numbers(state: str | None) -> list[int]:
            options = MergeRequestListOptions(state=state) if state else None
            result = await mock.list_merge_requests("octo", "hello", options)
            return [mr.number for mr in result.data.data]

        assert await numbers(None) == [1, 2, 3]
        assert await numbers("open") == [1]
        assert await numbers("merged") == [2]
        assert await numbers("all") == [1, 2, 3]

    async def test_merge_outcomes(self) -> None:
        mock = MockAdapter()
        mock.add_merge_requests(
            "octo",
            "hello",
            [
                create_mock_merge_request(1),
                create_mock_merge_request(2, state=MergeRequestStatus.MERGED),
                create_mock_merge_request(3, state=MergeRequestStatus.CLOSED),
            ],
        )

        merged = await mock.merge_merge_request("octo", "hello", 1)
        again = await mock.merge_merge_request("octo", "hello", 2)
        closed = await mock.merge_merge_request("octo", "hello", 3)

        assert merged.data.state is MergeRequestStatus.MERGED
        assert again.success and again.message == "Already merged"
        assert closed.error_code == ErrorCode.VALIDATION_FAILED


class TestMockAdapterConfiguration:
    """Overriding individual operations."""

    async def test_fixed_result(self) -> None:
        mock = MockAdapter()
        mock.fail("list_repositories", ErrorCode.RATE_LIMITED, "slow down")

        result = await mock.list_repositories()

        assert result.error_code == ErrorCode.RATE_LIMITED
        assert result.platform is GitPlatform.GITHUB

    async def test_sequence_repeats_last(self) -> None:
        mock = MockAdapter()
        mock.configure(
            "check_connection",
            sequence=[OperationResult.fail(ErrorCode.NETWORK_ERROR, "offline"), OperationResult.ok(True)],
        )

        outcomes = [(await mock.check_connection()).success for _ in range(3)]

        assert outcomes == [False, True, True]

    async def test_side_effect_callable(self) -> None:
        mock = MockAdapter()

        async def lookup(owner: str, repo: str) -> OperationResult:
            return OperationResult.ok(create_mock_repository(f"{owner}/{repo}"))

        mock.configure("get_repository", side_effect=lookup)

        result = await mock.get_repository("octo", "anything")

        assert result.data.full_name == "octo/anything"

    async def test_side_effect_exception(self) -> None:
        mock = MockAdapter()
        mock.configure("list_branches", side_effect=TransportError(ErrorCode.NETWORK_ERROR, "reset"))

        with pytest.raises(TransportError):
            await mock.list_branches("octo", "hello")

    def test_unknown_method_rejected(self) -> None:
        with pytest.raises(AttributeError):
            MockAdapter().configure("push", OperationResult.ok())

    async def test_reset_keeps_data(self) -> None:
        mock = MockAdapter()
        mock.add_branches("octo", "hello", [create_mock_branch("main")])
        mock.fail("list_branches", ErrorCode.SERVER_ERROR)
        await mock.list_branches("octo", "hello")

        mock.reset()

        assert not mock.was_called("list_branches")
        assert (await mock.list_branches("octo", "hello")).data.data[0].name == "main"


class TestCallTracking:
    """Recorded calls."""

    async def test_calls_recorded_in_order(self) -> None:
        mock = MockAdapter(GitPlatform.GITLAB)
        mock.add_branches("group", "proj", [create_mock_branch("main")])

        await mock.get_branch("group", "proj", "main")
        await mock.get_branch("group", "proj", "dev")
        await mock.delete_branch("group", "proj", "main")

        assert mock.call_count("get_branch") == 2
        assert [c.args for c in mock.get_calls("get_branch")] == [
            ("group", "proj", "main"),
            ("group", "proj", "dev"),
        ]
        assert [c.method for c in mock.get_calls()] == ["get_branch", "get_branch", "delete_branch"]
        assert not mock.was_called("create_branch")

    async def test_close(self) -> None:
        mock = MockAdapter()
        await mock.close()
        assert mock.closed


class TestBuilders:
    """Builders produce populated objects with overridable fields."""

    def test_user(self) -> None:
        user = create_mock_user("hubot", id=7)

        assert user.username == "hubot"
        assert user.id == 7
        assert user.email == "hubot@example.com"

    def test_repository(self) -> None:
        repo = create_mock_repository("group/project", GitPlatform.GITLAB, is_private=True)

        assert repo.name == "project"
        assert repo.owner.username == "group"
        assert repo.platform is GitPlatform.GITLAB
        assert repo.is_private

    def test_branch(self) -> None:
        branch = create_mock_branch("feature/x", status=BranchStatus.STALE)

        assert branch.sha == branch.last_commit.sha
        assert branch.status is BranchStatus.STALE
        assert branch.updated_at == FIXED_TIME
        assert not branch.is_default

    def test_merge_request(self) -> None:
        mr = create_mock_merge_request(3, title="Fix")

        assert (mr.id, mr.number, mr.title) == (3, 3, "Fix")
        assert mr.state is MergeRequestStatus.OPEN
        assert (mr.source_branch, mr.target_branch) == ("feature/x", "main")

    def test_auth(self) -> None:
        auth = create_mock_auth(GitPlatform.GITLAB, token="glpat-x")

        assert auth.platform is GitPlatform.GITLAB
        assert auth.token == "glpat-x"
        assert auth.user.username == "octocat"


class TestFixtures:
    """Pytest fixtures wire the mocks into a service."""

    async def test_mock_service(self, mock_service, mock_github_adapter: MockAdapter) -> None:
        mock_github_adapter.add_repositories([create_mock_repository("octo/hello")])

        result = await mock_service.list_repositories(GitPlatform.GITHUB)

        assert result.data.data[0].full_name == "octo/hello"
        assert mock_service.has_auth(GitPlatform.GITLAB)

    def test_sample_data(self, sample_branch, sample_default_branch, sample_merge_request) -> None:
        assert not sample_branch.is_default
        assert sample_default_branch.is_default
        assert sample_merge_request.state is MergeRequestStatus.OPEN
