"""Branch-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from gitplex.types.commits import Commit, FileChange


class BranchStatus(str, Enum):
    ACTIVE = "active"
    STALE = "stale"
    MERGED = "merged"
    DELETED = "deleted"


@dataclass
class RequiredStatusChecks:
    strict: bool = False  # branch must be up to date before merging
    contexts: list[str] = field(default_factory=list)


@dataclass
class RequiredReviews:
    required: bool = True
    required_reviewer_count: int = 1
    dismiss_stale_reviews: bool = False
    require_code_owner_reviews: bool = False
    required_reviewing_teams: list[str] = field(default_factory=list)


@dataclass
class PushRestrictions:
    users: list[str] = field(default_factory=list)
    teams: list[str] = field(default_factory=list)


@dataclass
class BranchProtection:
    """Protection rules of a branch; ``enabled=False`` means unprotected."""

    enabled: bool
    id: str | None = None
    required_status_checks: RequiredStatusChecks | None = None
    enforce_admins: bool | None = None
    required_pull_request_reviews: RequiredReviews | None = None
    restrictions: PushRestrictions | None = None
    allow_force_pushes: bool | None = None
    allow_deletions: bool | None = None


@dataclass
class Branch:
    """A named ref in a repository.

    ``ahead``, ``behind`` and ``merge_requests_count`` are 0 when the platform
    needs additional calls to compute them.
    """

    name: str
    sha: str
    is_protected: bool
    is_default: bool
    last_commit: Commit
    updated_at: datetime
    status: BranchStatus = BranchStatus.ACTIVE
    ahead: int = 0
    behind: int = 0
    merge_requests_count: int = 0
    created_at: datetime | None = None
    protection: BranchProtection | None = None


@dataclass
class BranchComparison:
    """Diff summary between two refs."""

    base_branch: str
    head_branch: str
    ahead_by: int
    behind_by: int
    total_commits: int
    commits: list[Commit] = field(default_factory=list)
    files: list[FileChange] = field(default_factory=list)
    mergeable: bool = True
    merge_base: str | None = None


@dataclass
class BranchStats:
    total: int = 0
    active: int = 0
    stale: int = 0
    protected: int = 0
    merged: int = 0


def derive_branch_status(
    updated_at: datetime,
    merged: bool = False,
    stale_after_days: int | None = None,
    now: datetime | None = None,
) -> BranchStatus:
    """
    Derive a branch status: merged wins over stale, which wins over active.

    A branch is stale when its last commit is older than ``stale_after_days``.
    Staleness is not evaluated when the threshold is None.
    """
    if merged:
        return BranchStatus.MERGED
    if stale_after_days is not None:
        current = now or datetime.now(timezone.utc)
        last = updated_at if updated_at.tzinfo else updated_at.replace(tzinfo=timezone.utc)
        if current - last > timedelta(days=stale_after_days):
            return BranchStatus.STALE
    return BranchStatus.ACTIVE
