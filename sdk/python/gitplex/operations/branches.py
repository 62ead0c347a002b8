"""Branch listing, selection and guarded create/delete for the selected repository."""

from collections.abc import Mapping
from dataclasses import asdict
from typing import Any

from gitplex.cache import cache_key
from gitplex.exceptions import ErrorCode
from gitplex.logging import get_logger
from gitplex.operations.context import BranchContext, no_repository
from gitplex.operations.filters import apply_branch_filter
from gitplex.service import BRANCHES, GitService
from gitplex.types.branches import Branch, BranchStats, BranchStatus
from gitplex.types.common import OperationResult
from gitplex.types.options import BranchFilter, BranchListOptions, CreateBranchOptions

# Branch listings used by the manager fetch one large page
BRANCH_PAGE_SIZE = 100


class BranchManager:
    """
    Branch use-cases over the repository selected in a ``BranchContext``.

    Example:
        >>> manager = BranchManager(service, context)
        >>> await manager.load_branches()
        >>> result = await manager.delete_branch("feature/old")
        >>> result.error_code
        'CANNOT_DELETE_DEFAULT_BRANCH'  # when "feature/old" is the default
    """

    def __init__(self, service: GitService, context: BranchContext | None = None) -> None:
        self.service = service
        self.context = context or BranchContext()
        self.logger = get_logger("operations")

    @property
    def branches(self) -> list[Branch]:
        return self.context.branches

    @property
    def selected_branch(self) -> Branch | None:
        return self.context.selected_branch

    @property
    def branch_filter(self) -> BranchFilter:
        return self.context.branch_filter

    async def load_branches(self) -> OperationResult[list[Branch]]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            self.logger.warning("No platform or repository selected")
            return no_repository()
        platform, owner, repo = coordinates

        self.context.remove_error(ErrorCode.LOAD_BRANCHES_ERROR)
        result = await self.service.list_branches(
            platform, owner, repo, BranchListOptions(page=1, per_page=BRANCH_PAGE_SIZE)
        )
        if not result.success:
            self.context.record_failure(ErrorCode.LOAD_BRANCHES_ERROR, result)
            return result
        self.context.branches = result.data.data
        return OperationResult.ok(self.context.branches, platform=platform)

    async def refresh_branches(self) -> OperationResult[list[Branch]]:
        """Drop cached listings of the selected repository, then reload."""
        coordinates = self.context.repository_coordinates
        if coordinates is not None:
            self.service.clear_cache_by_prefix(f"{cache_key(BRANCHES, *coordinates)}-")
        return await self.load_branches()

    async def create_branch(self, options: CreateBranchOptions | Mapping[str, Any]) -> OperationResult[Branch]:
        """Create a branch, reload the listing and select the new branch."""
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()
        platform, owner, repo = coordinates

        self.context.remove_error(ErrorCode.CREATE_BRANCH_ERROR)
        result = await self.service.create_branch(platform, owner, repo, options)
        if not result.success:
            self.context.record_failure(ErrorCode.CREATE_BRANCH_ERROR, result)
            return result

        await self.load_branches()
        self.context.selected_branch = result.data
        return result

    async def delete_branch(self, name: str) -> OperationResult[None]:
        """
        Delete a loaded branch of the selected repository.

        Rejected locally, before any network call, when no repository is
        selected, when ``name`` is not among the loaded branches, or when it
        is the default branch.
        """
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()
        platform, owner, repo = coordinates

        branch = self.get_branch_by_name(name)
        if branch is None:
            return OperationResult.fail(
                ErrorCode.BRANCH_NOT_FOUND, f"Branch {name} does not exist", platform=platform
            )
        if branch.is_default:
            return OperationResult.fail(
                ErrorCode.CANNOT_DELETE_DEFAULT_BRANCH,
                f"Cannot delete the default branch {name}",
                platform=platform,
            )

        self.context.remove_error(ErrorCode.DELETE_BRANCH_ERROR)
        result = await self.service.delete_branch(platform, owner, repo, name)
        if not result.success:
            self.context.record_failure(ErrorCode.DELETE_BRANCH_ERROR, result)
            return result

        await self.load_branches()
        if self.context.selected_branch and self.context.selected_branch.name == name:
            self.context.selected_branch = None
        return result

    def select_branch(self, branch: Branch | None) -> None:
        self.context.selected_branch = branch

    def set_filter(self, **changes: Any) -> BranchFilter:
        """Merge ``changes`` into the current filter; unknown fields are rejected."""
        merged = {**asdict(self.context.branch_filter), **changes}
        self.context.branch_filter = BranchFilter.from_dict(merged)
        return self.context.branch_filter

    def clear_filter(self) -> None:
        self.context.branch_filter = BranchFilter()

    @property
    def filtered_branches(self) -> list[Branch]:
        return apply_branch_filter(self.context.branches, self.context.branch_filter)

    def get_branch_by_name(self, name: str) -> Branch | None:
        return next((b for b in self.context.branches if b.name == name), None)

    def get_default_branch(self) -> Branch | None:
        return next((b for b in self.context.branches if b.is_default), None)

    def get_protected_branches(self) -> list[Branch]:
        return [b for b in self.context.branches if b.is_protected]

    def get_active_branches(self) -> list[Branch]:
        return [b for b in self.context.branches if b.status is BranchStatus.ACTIVE]

    def get_stale_branches(self) -> list[Branch]:
        return [b for b in self.context.branches if b.status is BranchStatus.STALE]

    @property
    def branch_stats(self) -> BranchStats:
        branches = self.context.branches
        return BranchStats(
            total=len(branches),
            active=sum(1 for b in branches if b.status is BranchStatus.ACTIVE),
            stale=sum(1 for b in branches if b.status is BranchStatus.STALE),
            protected=sum(1 for b in branches if b.is_protected),
            merged=sum(1 for b in branches if b.status is BranchStatus.MERGED),
        )


__all__ = ["BranchManager"]
