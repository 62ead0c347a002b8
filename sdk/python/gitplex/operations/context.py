"""Selection state shared by the business-logic components."""

from dataclasses import dataclass, field
from typing import Any

from gitplex.exceptions import ErrorCode
from gitplex.types.branches import Branch
from gitplex.types.common import GitError, GitPlatform, GitUser, OperationResult
from gitplex.types.merge_requests import MergeRequest
from gitplex.types.options import BranchFilter
from gitplex.types.repos import Repository
from gitplex.types.stats import GitStats

MAX_ERRORS = 10


@dataclass
class BranchContext:
    """
    What the caller is currently looking at.

    Changing the repository resets every branch and merge request selection,
    and at most ``MAX_ERRORS`` keyed errors are kept, newest first.
    """

    current_platform: GitPlatform | None = None
    authenticated_platforms: list[GitPlatform] = field(default_factory=list)
    current_user: dict[GitPlatform, GitUser] = field(default_factory=dict)
    repositories: list[Repository] = field(default_factory=list)
    current_repository: Repository | None = None
    branches: list[Branch] = field(default_factory=list)
    selected_branch: Branch | None = None
    branch_filter: BranchFilter = field(default_factory=BranchFilter)
    merge_requests: list[MergeRequest] = field(default_factory=list)
    selected_merge_request: MergeRequest | None = None
    stats: GitStats | None = None
    errors: list[GitError] = field(default_factory=list)

    @property
    def repository_coordinates(self) -> tuple[GitPlatform, str, str] | None:
        """``(platform, owner, repo)`` of the selection, or None."""
        if self.current_platform is None or self.current_repository is None:
            return None
        owner, repo = self.current_repository.split_full_name()
        return self.current_platform, owner, repo

    def set_repository(self, repository: Repository | None) -> None:
        self.current_repository = repository
        self.branches = []
        self.selected_branch = None
        self.merge_requests = []
        self.selected_merge_request = None

    def add_platform(self, platform: GitPlatform, user: GitUser) -> None:
        if platform not in self.authenticated_platforms:
            self.authenticated_platforms.append(platform)
        self.current_user[platform] = user

    def remove_platform(self, platform: GitPlatform) -> None:
        if platform in self.authenticated_platforms:
            self.authenticated_platforms.remove(platform)
        self.current_user.pop(platform, None)

    def add_error(self, error: GitError) -> None:
        self.errors = [error, *self.errors[: MAX_ERRORS - 1]]

    def remove_error(self, code: str) -> None:
        self.errors = [e for e in self.errors if e.code != code]

    def get_error(self, code: str) -> GitError | None:
        return next((e for e in self.errors if e.code == code), None)

    def record_failure(self, code: str, result: OperationResult[Any]) -> GitError:
        """Store a failed result's message under ``code``."""
        error = GitError(
            code=code,
            message=result.error.message if result.error else code,
            details=result.error_code,
            platform=self.current_platform,
            repository=self.current_repository.full_name if self.current_repository else None,
        )
        self.add_error(error)
        return error


def no_repository() -> OperationResult[Any]:
    return OperationResult.fail(ErrorCode.NO_REPOSITORY, "Select a repository first")
