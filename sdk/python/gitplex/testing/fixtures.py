"""
Pytest fixtures and builders for testing code that uses GitPlex.

The ``create_mock_*`` builders return fully populated domain objects with
overridable fields; the fixtures wire ``MockAdapter`` instances into a
``GitService``.
"""

from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from gitplex.service import GitService
from gitplex.testing.mock import MockAdapter
from gitplex.types.branches import Branch, BranchStatus
from gitplex.types.commits import Commit
from gitplex.types.common import GitAuth, GitPlatform, GitUser
from gitplex.types.merge_requests import MergeRequest, MergeRequestStatus
from gitplex.types.repos import RepoPermissions, Repository

FIXED_TIME = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


# ============================================================================
# Builders
# ============================================================================


def create_mock_user(username: str = "octocat", **kwargs: Any) -> GitUser:
    defaults: dict[str, Any] = {
        "id": 1,
        "display_name": username.title(),
        "email": f"{username}@example.com",
    }
    defaults.update(kwargs)
    return GitUser(username=username, **defaults)


def create_mock_commit(sha: str = "a" * 40, message: str = "Initial commit", **kwargs: Any) -> Commit:
    author = kwargs.pop("author", None) or create_mock_user()
    defaults: dict[str, Any] = {
        "committer": author,
        "timestamp": FIXED_TIME,
    }
    defaults.update(kwargs)
    return Commit(sha=sha, message=message, author=author, **defaults)


def create_mock_repository(
    full_name: str = "octocat/hello-world",
    platform: GitPlatform = GitPlatform.GITHUB,
    **kwargs: Any,
) -> Repository:
    """
    Create a Repository with customizable fields.

    Args:
        full_name: "owner/name"
        platform: Platform the repository lives on
        **kwargs: Additional fields to override

    Returns:
        Repository object
    """
    owner, _, name = full_name.rpartition("/")
    defaults: dict[str, Any] = {
        "id": full_name,
        "owner": create_mock_user(owner or "octocat"),
        "permissions": RepoPermissions(
            can_read=True,
            can_write=True,
            can_admin=True,
            can_create_branch=True,
            can_delete_branch=True,
            can_merge=True,
        ),
        "default_branch": "main",
        "is_private": False,
        "created_at": FIXED_TIME,
        "updated_at": FIXED_TIME,
        "web_url": f"https://example.com/{full_name}",
    }
    defaults.update(kwargs)
    return Repository(name=name, full_name=full_name, platform=platform, **defaults)


def create_mock_branch(name: str = "main", **kwargs: Any) -> Branch:
    """
    Create a Branch with customizable fields.

    Args:
        name: Branch name
        **kwargs: Additional fields to override

    Returns:
        Branch object
    """
    commit = kwargs.pop("last_commit", None) or create_mock_commit(message=f"Work on {name}")
    defaults: dict[str, Any] = {
        "sha": commit.sha,
        "is_protected": False,
        "is_default": False,
        "updated_at": FIXED_TIME,
        "status": BranchStatus.ACTIVE,
    }
    defaults.update(kwargs)
    return Branch(name=name, last_commit=commit, **defaults)


def create_mock_merge_request(number: int = 1, **kwargs: Any) -> MergeRequest:
    """
    Create a MergeRequest with customizable fields.

    Args:
        number: Merge request number (also used as id)
        **kwargs: Additional fields to override

    Returns:
        MergeRequest object
    """
    defaults: dict[str, Any] = {
        "id": number,
        "title": f"Merge request {number}",
        "state": MergeRequestStatus.OPEN,
        "author": create_mock_user(),
        "source_branch": "feature/x",
        "target_branch": "main",
        "created_at": FIXED_TIME,
        "updated_at": FIXED_TIME,
        "web_url": f"https://example.com/octocat/hello-world/pull/{number}",
    }
    defaults.update(kwargs)
    return MergeRequest(number=number, **defaults)


def create_mock_auth(platform: GitPlatform = GitPlatform.GITHUB, **kwargs: Any) -> GitAuth:
    defaults: dict[str, Any] = {
        "token": "ghp_mocktoken1234567890",
        "user": create_mock_user(),
    }
    defaults.update(kwargs)
    return GitAuth(platform=platform, **defaults)


# ============================================================================
# Adapter and service fixtures
# ============================================================================


@pytest.fixture
def mock_github_adapter() -> Generator[MockAdapter, None, None]:
    """
    Provide a GitHub MockAdapter.

    Example:
        ```python
        async def test_listing(mock_github_adapter):
            mock_github_adapter.add_repositories([create_mock_repository()])
            result = await mock_github_adapter.list_repositories()
            assert mock_github_adapter.was_called("list_repositories")
        ```
    """
    adapter = MockAdapter(GitPlatform.GITHUB)
    yield adapter
    adapter.reset()


@pytest.fixture
def mock_gitlab_adapter() -> Generator[MockAdapter, None, None]:
    """Provide a GitLab MockAdapter."""
    adapter = MockAdapter(GitPlatform.GITLAB)
    yield adapter
    adapter.reset()


@pytest.fixture
async def mock_service(
    mock_github_adapter: MockAdapter,
    mock_gitlab_adapter: MockAdapter,
) -> AsyncGenerator[GitService, None]:
    """Provide a GitService with both mock adapters registered and authenticated."""
    service = GitService()
    for adapter in (mock_github_adapter, mock_gitlab_adapter):
        service.register_adapter(adapter.platform, adapter)
        service.set_auth(adapter.platform, create_mock_auth(adapter.platform))
    yield service
    await service.close()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_user() -> GitUser:
    return create_mock_user()


@pytest.fixture
def sample_repository() -> Repository:
    return create_mock_repository()


@pytest.fixture
def sample_branch() -> Branch:
    return create_mock_branch("feature/login", updated_at=FIXED_TIME - timedelta(days=2))


@pytest.fixture
def sample_default_branch() -> Branch:
    return create_mock_branch("main", is_default=True, is_protected=True)


@pytest.fixture
def sample_merge_request() -> MergeRequest:
    return create_mock_merge_request()


__all__ = [
    # Fixtures (exported for documentation, actual fixtures are auto-discovered)
    "mock_github_adapter",
    "mock_gitlab_adapter",
    "mock_service",
    "sample_user",
    "sample_repository",
    "sample_branch",
    "sample_default_branch",
    "sample_merge_request",
    # Helper functions
    "create_mock_user",
    "create_mock_commit",
    "create_mock_repository",
    "create_mock_branch",
    "create_mock_merge_request",
    "create_mock_auth",
]
