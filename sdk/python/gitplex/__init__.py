"""GitPlex - one asynchronous API over GitHub and GitLab."""

from gitplex.adapters import (
    AdapterFactory,
    BaseGitPlatformAdapter,
    GitHubAdapter,
    GitLabAdapter,
    GitPlatformAdapter,
)
from gitplex.cache import ResponseCache
from gitplex.config import GitServiceConfig, PlatformConfig, build_platform_config
from gitplex.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    ErrorCode,
    GitPlexError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    TransportError,
    UnsupportedPlatformError,
    ValidationError,
)
from gitplex.logging import configure_logging, get_logger
from gitplex.operations import (
    BranchContext,
    BranchManager,
    BranchOperations,
    GitIntegration,
    OperationHistory,
    apply_branch_filter,
    filter_branches,
    sort_branches,
)
from gitplex.service import GitService
from gitplex.types import GitAuth, GitError, GitPlatform, GitUser, OperationResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Service
    "GitService",
    "GitServiceConfig",
    "ResponseCache",
    # Adapters
    "GitPlatformAdapter",
    "BaseGitPlatformAdapter",
    "GitHubAdapter",
    "GitLabAdapter",
    "AdapterFactory",
    "PlatformConfig",
    "build_platform_config",
    # Business logic
    "BranchContext",
    "BranchManager",
    "BranchOperations",
    "GitIntegration",
    "OperationHistory",
    "apply_branch_filter",
    "filter_branches",
    "sort_branches",
    # Core types
    "GitPlatform",
    "GitAuth",
    "GitUser",
    "GitError",
    "OperationResult",
    # Exceptions
    "ErrorCode",
    "GitPlexError",
    "ConfigurationError",
    "UnsupportedPlatformError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "ValidationError",
    "ServerError",
    "TransportError",
    # Logging
    "configure_logging",
    "get_logger",
]
