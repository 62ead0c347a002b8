"""Business-logic use-cases layered on ``GitService``."""

from gitplex.operations.branch_operations import BranchOperations
from gitplex.operations.branches import BranchManager
from gitplex.operations.context import BranchContext
from gitplex.operations.filters import apply_branch_filter, filter_branches, sort_branches
from gitplex.operations.history import OperationHistory
from gitplex.operations.integration import GitIntegration

__all__ = [
    "BranchContext",
    "BranchManager",
    "BranchOperations",
    "GitIntegration",
    "OperationHistory",
    "apply_branch_filter",
    "filter_branches",
    "sort_branches",
]
