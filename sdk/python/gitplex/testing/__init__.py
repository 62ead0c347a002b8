"""GitPlex testing utilities.

Provides an in-memory adapter and fixtures for testing applications that use GitPlex.
"""

from gitplex.testing.fixtures import (
    create_mock_auth,
    create_mock_branch,
    create_mock_commit,
    create_mock_merge_request,
    create_mock_repository,
    create_mock_user,
)
from gitplex.testing.mock import MockAdapter, MockCall, MockResponse

__all__ = [
    # Mock adapter
    "MockAdapter",
    "MockCall",
    "MockResponse",
    # Helper functions
    "create_mock_auth",
    "create_mock_branch",
    "create_mock_commit",
    "create_mock_merge_request",
    "create_mock_repository",
    "create_mock_user",
]
