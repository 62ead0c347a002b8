"""
Higher-level branch and merge request use-cases.

Every mutating call records its outcome in an ``OperationHistory``. Batch
calls run one item at a time; an item's failure is recorded and the batch
moves on to the next item.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from gitplex.exceptions import ErrorCode, ValidationError
from gitplex.logging import get_logger
from gitplex.operations.context import BranchContext, no_repository
from gitplex.operations.history import OperationHistory
from gitplex.service import GitService
from gitplex.types.branches import Branch, BranchComparison, BranchProtection
from gitplex.types.common import OperationResult
from gitplex.types.merge_requests import MergeRequest
from gitplex.types.options import (
    CreateBranchOptions,
    CreateMergeRequestOptions,
    MergeBranchOptions,
    MergeRequestListOptions,
    UpdateMergeRequestOptions,
    coerce_options,
)
from gitplex.types.stats import BatchOperationResult, OperationHistoryItem, OperationType

FEATURE_PREFIX = "feature/"
HOTFIX_PREFIX = "hotfix/"
RELEASE_PREFIX = "release/"

MERGE_REQUEST_PAGE_SIZE = 100


class BranchOperations:
    """
    Compare, protect, merge and batch use-cases for the selected repository.

    Example:
        >>> ops = BranchOperations(service, context)
        >>> outcome = await ops.batch_delete_branches(["a", "b", "c"])
        >>> outcome.success, outcome.failed
        (['a', 'c'], ['b'])
    """

    def __init__(
        self,
        service: GitService,
        context: BranchContext | None = None,
        history: OperationHistory | None = None,
    ) -> None:
        self.service = service
        self.context = context or BranchContext()
        self._history = history or OperationHistory()
        self.logger = get_logger("operations")

    @property
    def history(self) -> list[OperationHistoryItem]:
        return self._history.items

    def clear_operation_history(self) -> None:
        self._history.clear()

    @property
    def merge_requests(self) -> list[MergeRequest]:
        return self.context.merge_requests

    @property
    def selected_merge_request(self) -> MergeRequest | None:
        return self.context.selected_merge_request

    # Comparison and protection

    async def compare_branches(self, base: str, head: str) -> OperationResult[BranchComparison]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        self.context.remove_error(ErrorCode.COMPARISON_ERROR)
        result = await self.service.compare_branches(*coordinates, base, head)
        if not result.success:
            self.context.record_failure(ErrorCode.COMPARISON_ERROR, result)
        self._record(OperationType.COMPARE, f"{base}...{head}", result, f"Compared {base} with {head}")
        return result

    async def get_branch_protection(self, branch: str) -> OperationResult[BranchProtection]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()
        return await self.service.get_branch_protection(*coordinates, branch)

    async def set_branch_protection(
        self, branch: str, protection: BranchProtection
    ) -> OperationResult[BranchProtection]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.set_branch_protection(*coordinates, branch, protection)
        self._record(OperationType.PROTECT, branch, result, f"Set protection rules on {branch}")
        return result

    async def remove_branch_protection(self, branch: str) -> OperationResult[None]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.remove_branch_protection(*coordinates, branch)
        self._record(OperationType.PROTECT, branch, result, f"Removed protection rules from {branch}")
        return result

    # Merge requests

    async def load_merge_requests(self) -> OperationResult[list[MergeRequest]]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        self.context.remove_error(ErrorCode.MERGE_REQUESTS_ERROR)
        result = await self.service.list_merge_requests(
            *coordinates,
            MergeRequestListOptions(page=1, per_page=MERGE_REQUEST_PAGE_SIZE, state="all"),
        )
        if not result.success:
            self.context.record_failure(ErrorCode.MERGE_REQUESTS_ERROR, result)
            return result
        self.context.merge_requests = result.data.data
        return OperationResult.ok(self.context.merge_requests, platform=coordinates[0])

    async def create_merge_request(
        self, options: CreateMergeRequestOptions | Mapping[str, Any]
    ) -> OperationResult[MergeRequest]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.create_merge_request(*coordinates, options)
        if result.success:
            await self.load_merge_requests()
            mr = result.data
            target, message = f"{mr.source_branch} → {mr.target_branch}", f"Opened merge request: {mr.title}"
        else:
            target, message = self._merge_request_target(options), ""
        self._record(OperationType.MERGE, target, result, message)
        return result

    async def update_merge_request(
        self, number: int, options: UpdateMergeRequestOptions | Mapping[str, Any]
    ) -> OperationResult[MergeRequest]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.update_merge_request(*coordinates, number, options)
        self._apply_merge_request(result)
        self._record(OperationType.MERGE, f"!{number}", result, f"Updated merge request !{number}")
        return result

    async def merge_branch(
        self, number: int, options: MergeBranchOptions | Mapping[str, Any] | None = None
    ) -> OperationResult[MergeRequest]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.merge_merge_request(*coordinates, number, options)
        self._apply_merge_request(result)
        self._record(OperationType.MERGE, f"!{number}", result, f"Merged merge request !{number}")
        return result

    async def close_merge_request(self, number: int) -> OperationResult[MergeRequest]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.close_merge_request(*coordinates, number)
        self._apply_merge_request(result)
        self._record(OperationType.MERGE, f"!{number}", result, f"Closed merge request !{number}")
        return result

    def select_merge_request(self, merge_request: MergeRequest | None) -> None:
        self.context.selected_merge_request = merge_request

    # Batch operations

    async def batch_delete_branches(self, names: Iterable[str]) -> BatchOperationResult[str]:
        """
        Delete branches one at a time.

        A loaded default branch is rejected locally like in
        ``BranchManager.delete_branch``; the remaining items still run.
        """
        names = list(names)
        outcome: BatchOperationResult[str] = BatchOperationResult()
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return self._reject_batch(OperationType.DELETE, outcome, names, "Batch delete")

        default = next((b.name for b in self.context.branches if b.is_default), None)
        for name in names:
            if name == default:
                result: OperationResult[None] = OperationResult.fail(
                    ErrorCode.CANNOT_DELETE_DEFAULT_BRANCH,
                    f"Cannot delete the default branch {name}",
                    platform=coordinates[0],
                )
            else:
                result = await self.service.delete_branch(*coordinates, name)

            if result.success:
                outcome.success.append(name)
                self._forget_branch(name)
            else:
                outcome.failed.append(name)
                outcome.errors.append(result.error)

        self._record_batch(OperationType.DELETE, outcome, "Batch delete")
        return outcome

    async def batch_create_branches(
        self, branches: Iterable[CreateBranchOptions | Mapping[str, Any]]
    ) -> BatchOperationResult[Branch]:
        """Create branches one at a time; an invalid item fails on its own."""
        items = list(branches)
        outcome: BatchOperationResult[Branch] = BatchOperationResult()
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return self._reject_batch(
                OperationType.CREATE, outcome, [self._item_name(item) for item in items], "Batch create"
            )

        for item in items:
            result = await self.service.create_branch(*coordinates, item)
            if result.success:
                outcome.success.append(result.data)
                self.context.branches = [result.data, *self.context.branches]
            else:
                outcome.failed.append(self._item_name(item))
                outcome.errors.append(result.error)

        self._record_batch(OperationType.CREATE, outcome, "Batch create")
        return outcome

    # Workflow branches

    async def create_feature_branch(self, feature: str, base: str = "main") -> OperationResult[Branch]:
        return await self._create_workflow_branch(f"{FEATURE_PREFIX}{feature}", base)

    async def create_hotfix_branch(self, version: str, base: str = "main") -> OperationResult[Branch]:
        return await self._create_workflow_branch(f"{HOTFIX_PREFIX}{version}", base)

    async def create_release_branch(self, version: str, base: str = "develop") -> OperationResult[Branch]:
        return await self._create_workflow_branch(f"{RELEASE_PREFIX}{version}", base)

    # Capabilities without a platform-independent implementation

    async def sync_branch_with_upstream(self, branch: str, upstream: str) -> OperationResult[None]:
        return self._not_implemented("sync_branch_with_upstream")

    async def rebase_onto(self, branch: str, onto: str) -> OperationResult[None]:
        return self._not_implemented("rebase_onto")

    async def cherry_pick(self, sha: str, target_branch: str) -> OperationResult[None]:
        return self._not_implemented("cherry_pick")

    # Internals

    async def _create_workflow_branch(self, name: str, base: str) -> OperationResult[Branch]:
        coordinates = self.context.repository_coordinates
        if coordinates is None:
            return no_repository()

        result = await self.service.create_branch(*coordinates, CreateBranchOptions(name=name, ref=base))
        self._record(OperationType.CREATE, name, result, f"Created {name} from {base}")
        return result

    def _record(self, type: OperationType, target: str, result: OperationResult[Any], message: str) -> None:
        if not result.success:
            message = result.error.message if result.error else "Operation failed"
        self._history.record(type, target, result.success, message)

    def _record_batch(self, type: OperationType, outcome: BatchOperationResult[Any], label: str) -> None:
        self._history.record(
            type,
            f"{outcome.total} branches",
            not outcome.failed,
            f"{label}: {len(outcome.success)} succeeded, {len(outcome.failed)} failed",
        )
        if outcome.failed:
            self.logger.warning("%s failed for %s", label, ", ".join(outcome.failed))

    def _reject_batch(
        self, type: OperationType, outcome: BatchOperationResult[Any], names: list[str], label: str
    ) -> BatchOperationResult[Any]:
        outcome.failed.extend(names)
        error = no_repository().error
        outcome.errors.extend(error for _ in names)
        self._record_batch(type, outcome, label)
        return outcome

    def _forget_branch(self, name: str) -> None:
        self.context.branches = [b for b in self.context.branches if b.name != name]
        if self.context.selected_branch and self.context.selected_branch.name == name:
            self.context.selected_branch = None

    def _apply_merge_request(self, result: OperationResult[MergeRequest]) -> None:
        if not result.success or result.data is None:
            return
        updated = result.data
        self.context.merge_requests = [
            updated if mr.id == updated.id else mr for mr in self.context.merge_requests
        ]
        selected = self.context.selected_merge_request
        if selected is not None and selected.id == updated.id:
            self.context.selected_merge_request = updated

    @staticmethod
    def _item_name(item: CreateBranchOptions | Mapping[str, Any]) -> str:
        if isinstance(item, Mapping):
            return str(item.get("name", ""))
        return getattr(item, "name", str(item))

    @staticmethod
    def _merge_request_target(options: CreateMergeRequestOptions | Mapping[str, Any]) -> str:
        try:
            options = coerce_options(CreateMergeRequestOptions, options)
        except ValidationError:
            return "merge request"
        return f"{options.source_branch} → {options.target_branch}"

    @staticmethod
    def _not_implemented(capability: str) -> OperationResult[None]:
        return OperationResult.fail(
            ErrorCode.NOT_IMPLEMENTED,
            f"{capability} is not implemented",
            details={"capability": capability},
        )


__all__ = ["BranchOperations"]
