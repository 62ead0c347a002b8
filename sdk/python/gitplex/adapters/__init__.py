"""Platform adapters for GitPlex."""

from gitplex.adapters.base import (
    BaseGitPlatformAdapter,
    GitPlatformAdapter,
    adapter_operation,
    parse_timestamp,
)
from gitplex.adapters.factory import AdapterFactory
from gitplex.adapters.github import GitHubAdapter
from gitplex.adapters.gitlab import GitLabAdapter

__all__ = [
    "AdapterFactory",
    "BaseGitPlatformAdapter",
    "GitHubAdapter",
    "GitLabAdapter",
    "GitPlatformAdapter",
    "adapter_operation",
    "parse_timestamp",
]
