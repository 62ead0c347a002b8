"""Merge request (pull request) data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from gitplex.types.commits import Commit
from gitplex.types.common import GitUser
from gitplex.types.repos import Repository


class MergeRequestStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"
    DRAFT = "draft"

    @property
    def is_terminal(self) -> bool:
        return self in (MergeRequestStatus.MERGED, MergeRequestStatus.CLOSED)


class MergeStatus(str, Enum):
    CHECKING = "checking"
    CAN_BE_MERGED = "can_be_merged"
    CANNOT_BE_MERGED = "cannot_be_merged"


@dataclass
class Discussion:
    id: str
    author: GitUser
    body: str
    created_at: datetime
    updated_at: datetime
    resolved: bool | None = None
    file_path: str | None = None
    line_number: int | None = None
    replies: list["Discussion"] = field(default_factory=list)


@dataclass
class MergeRequest:
    """A cross-branch change proposal.

    The state is derived from the platform flags, never stored:
    DRAFT -> OPEN -> MERGED | CLOSED.
    """

    id: str | int
    number: int
    title: str
    state: MergeRequestStatus
    author: GitUser
    source_branch: str
    target_branch: str
    created_at: datetime
    updated_at: datetime
    web_url: str
    description: str | None = None
    assignees: list[GitUser] = field(default_factory=list)
    reviewers: list[GitUser] = field(default_factory=list)
    source_repository: Repository | None = None
    target_repository: Repository | None = None
    commits: list[Commit] = field(default_factory=list)
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    is_mergeable: bool = False
    merge_status: MergeStatus = MergeStatus.CHECKING
    is_draft: bool = False
    has_conflicts: bool = False
    labels: list[str] = field(default_factory=list)
    milestone: str | None = None
    discussions: list[Discussion] = field(default_factory=list)


def derive_merge_request_state(merged: bool, closed: bool, draft: bool) -> MergeRequestStatus:
    """Tie-break order: merged > closed > draft > open."""
    if merged:
        return MergeRequestStatus.MERGED
    if closed:
        return MergeRequestStatus.CLOSED
    if draft:
        return MergeRequestStatus.DRAFT
    return MergeRequestStatus.OPEN
