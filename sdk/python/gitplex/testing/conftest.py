"""
Pytest plugin for GitPlex testing fixtures.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["gitplex.testing.conftest"]

Or import the fixtures directly:

    from gitplex.testing.fixtures import mock_service, sample_branch
"""

# Re-export all fixtures for pytest auto-discovery
from gitplex.testing.fixtures import (
    mock_github_adapter,
    mock_gitlab_adapter,
    mock_service,
    sample_branch,
    sample_default_branch,
    sample_merge_request,
    sample_repository,
    sample_user,
)

__all__ = [
    "mock_github_adapter",
    "mock_gitlab_adapter",
    "mock_service",
    "sample_user",
    "sample_repository",
    "sample_branch",
    "sample_default_branch",
    "sample_merge_request",
]
