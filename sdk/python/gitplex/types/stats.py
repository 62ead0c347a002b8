"""Aggregate statistics and operation audit types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from gitplex.types.common import GitError, utcnow

T = TypeVar("T")


@dataclass
class GitStats:
    """Cross-platform rollup; branch and merge request counts are sampled."""

    total_repositories: int = 0
    total_branches: int = 0
    active_branches: int = 0
    stale_branches: int = 0
    total_merge_requests: int = 0
    open_merge_requests: int = 0
    my_merge_requests: int = 0
    needs_review: int = 0

    def add(self, other: "GitStats") -> None:
        self.total_repositories += other.total_repositories
        self.total_branches += other.total_branches
        self.active_branches += other.active_branches
        self.stale_branches += other.stale_branches
        self.total_merge_requests += other.total_merge_requests
        self.open_merge_requests += other.open_merge_requests
        self.my_merge_requests += other.my_merge_requests
        self.needs_review += other.needs_review


@dataclass
class BatchOperationResult(Generic[T]):
    """Per-item outcome of a sequential batch; ``failed`` holds branch names."""

    success: list[T] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errors: list[GitError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.success) + len(self.failed)


class OperationType(str, Enum):
    CREATE = "create"
    DELETE = "delete"
    MERGE = "merge"
    PROTECT = "protect"
    COMPARE = "compare"


@dataclass
class OperationHistoryItem:
    id: str
    type: OperationType
    target: str
    result: str  # "success" or "error"
    message: str
    timestamp: datetime = field(default_factory=utcnow)
