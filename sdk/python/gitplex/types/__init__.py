"""GitPlex type definitions.

This module exports the platform-neutral domain model used by every adapter.
"""

from gitplex.types.branches import (
    Branch,
    BranchComparison,
    BranchProtection,
    BranchStats,
    BranchStatus,
    PushRestrictions,
    RequiredReviews,
    RequiredStatusChecks,
    derive_branch_status,
)
from gitplex.types.commits import CodeSearchResult, Commit, FileChange, FileChangeStatus
from gitplex.types.common import (
    ApiResponse,
    GitAuth,
    GitError,
    GitPlatform,
    GitUser,
    OperationResult,
    Pagination,
    Permission,
    RateLimit,
    TokenType,
)
from gitplex.types.merge_requests import (
    Discussion,
    MergeRequest,
    MergeRequestStatus,
    MergeStatus,
    derive_merge_request_state,
)
from gitplex.types.repos import RepoPermissions, Repository
from gitplex.types.stats import (
    BatchOperationResult,
    GitStats,
    OperationHistoryItem,
    OperationType,
)

__all__ = [
    # Envelope and identity
    "ApiResponse",
    "GitAuth",
    "GitError",
    "GitPlatform",
    "GitUser",
    "OperationResult",
    "Pagination",
    "Permission",
    "RateLimit",
    "TokenType",
    # Repositories
    "Repository",
    "RepoPermissions",
    # Branches
    "Branch",
    "BranchComparison",
    "BranchProtection",
    "BranchStats",
    "BranchStatus",
    "PushRestrictions",
    "RequiredReviews",
    "RequiredStatusChecks",
    "derive_branch_status",
    # Commits
    "CodeSearchResult",
    "Commit",
    "FileChange",
    "FileChangeStatus",
    # Merge requests
    "Discussion",
    "MergeRequest",
    "MergeRequestStatus",
    "MergeStatus",
    "derive_merge_request_state",
    # Aggregates
    "BatchOperationResult",
    "GitStats",
    "OperationHistoryItem",
    "OperationType",
]
