"""
Tests for the platform-neutral domain model.

State derivation is checked exhaustively over the platform flags.
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from gitplex.exceptions import ErrorCode
from gitplex.testing import create_mock_auth, create_mock_repository
from gitplex.types import (
    BatchOperationResult,
    BranchStatus,
    GitPlatform,
    GitStats,
    MergeRequestStatus,
    OperationResult,
    derive_branch_status,
    derive_merge_request_state,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@given(merged=st.booleans(), closed=st.booleans(), draft=st.booleans())
@settings(max_examples=20)
def test_merge_request_state_tie_break(merged: bool, closed: bool, draft: bool) -> None:
    """
    Merged wins over closed, closed over draft, and draft over open.
    """
    state = derive_merge_request_state(merged=merged, closed=closed, draft=draft)

    if merged:
        assert state is MergeRequestStatus.MERGED
    elif closed:
        assert state is MergeRequestStatus.CLOSED
    elif draft:
        assert state is MergeRequestStatus.DRAFT
    else:
        assert state is MergeRequestStatus.OPEN


def test_terminal_merge_request_states() -> None:
    assert MergeRequestStatus.MERGED.is_terminal
    assert MergeRequestStatus.CLOSED.is_terminal
    assert not MergeRequestStatus.OPEN.is_terminal
    assert not MergeRequestStatus.DRAFT.is_terminal


class TestBranchStatus:
    """Tests for derive_branch_status."""

    def test_merged_wins_over_stale(self) -> None:
        old = NOW - timedelta(days=365)
        status = derive_branch_status(old, merged=True, stale_after_days=30, now=NOW)
        assert status is BranchStatus.MERGED

    def test_stale_after_threshold(self) -> None:
        old = NOW - timedelta(days=31)
        assert derive_branch_status(old, stale_after_days=30, now=NOW) is BranchStatus.STALE

    def test_active_within_threshold(self) -> None:
        recent = NOW - timedelta(days=29)
        assert derive_branch_status(recent, stale_after_days=30, now=NOW) is BranchStatus.ACTIVE

    def test_no_threshold_means_active(self) -> None:
        ancient = NOW - timedelta(days=3650)
        assert derive_branch_status(ancient, now=NOW) is BranchStatus.ACTIVE

    def test_naive_timestamp_treated_as_utc(self) -> None:
        naive = (NOW - timedelta(days=40)).replace(tzinfo=None)
        assert derive_branch_status(naive, stale_after_days=30, now=NOW) is BranchStatus.STALE


class TestOperationResult:
    """Tests for the result envelope."""

    def test_ok(self) -> None:
        result = OperationResult.ok([1, 2], "done", platform=GitPlatform.GITHUB)

        assert result.success
        assert result.data == [1, 2]
        assert result.message == "done"
        assert result.error is None
        assert result.error_code is None

    def test_fail_carries_code_and_context(self) -> None:
        result = OperationResult.fail(
            ErrorCode.NOT_FOUND,
            "Branch missing",
            details={"status_code": 404},
            platform=GitPlatform.GITLAB,
            repository="group/project",
        )

        assert not result.success
        assert result.data is None
        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.error.platform is GitPlatform.GITLAB
        assert result.error.repository == "group/project"
        assert result.error.details == {"status_code": 404}


class TestRepository:
    """Tests for Repository helpers."""

    def test_split_full_name(self) -> None:
        repo = create_mock_repository("octocat/hello-world")
        assert repo.split_full_name() == ("octocat", "hello-world")

    def test_split_nested_group(self) -> None:
        repo = create_mock_repository("group/subgroup/project", platform=GitPlatform.GITLAB)
        assert repo.split_full_name() == ("group/subgroup", "project")

    def test_visibility(self) -> None:
        assert create_mock_repository(is_private=True).visibility == "private"
        assert create_mock_repository(is_private=False).visibility == "public"


def test_auth_repr_never_contains_token() -> None:
    """The credential must not leak through repr() or logging."""
    auth = create_mock_auth(token="ghp_supersecretvalue1234567890")

    assert "ghp_supersecretvalue1234567890" not in repr(auth)
    assert "[REDACTED]" in repr(auth)


def test_stats_add() -> None:
    total = GitStats(total_repositories=2, open_merge_requests=1)
    total.add(GitStats(total_repositories=3, needs_review=4, open_merge_requests=1))

    assert total.total_repositories == 5
    assert total.open_merge_requests == 2
    assert total.needs_review == 4


def test_batch_total() -> None:
    outcome: BatchOperationResult[str] = BatchOperationResult(success=["a", "c"], failed=["b"])
    assert outcome.total == 3
