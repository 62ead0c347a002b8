"""
Branch filtering and sorting.

All functions are pure: they never mutate the input list or the branches in
it. Filter criteria are AND-combined; unset criteria match everything.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from gitplex.types.branches import Branch, BranchStatus
from gitplex.types.options import BranchFilter, coerce_options

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _matches_search(branch: Branch, needle: str) -> bool:
    commit = branch.last_commit
    return (
        needle in branch.name.lower()
        or needle in commit.message.lower()
        or needle in commit.author.username.lower()
    )


def filter_branches(branches: Iterable[Branch], branch_filter: BranchFilter | Mapping[str, Any]) -> list[Branch]:
    """Branches matching every criterion set on ``branch_filter``."""
    f = coerce_options(BranchFilter, branch_filter) or BranchFilter()
    result = list(branches)

    if f.search:
        needle = f.search.lower()
        result = [b for b in result if _matches_search(b, needle)]
    if f.status:
        result = [b for b in result if b.status in f.status]
    if f.author:
        result = [b for b in result if b.last_commit.author.username in f.author]
    if f.protected is not None:
        result = [b for b in result if b.is_protected == f.protected]
    if f.merged is not None:
        result = [b for b in result if (b.status is BranchStatus.MERGED) == f.merged]
    if f.date_range is not None:
        start, end = f.date_range.start, f.date_range.end
        result = [b for b in result if start <= b.updated_at <= end]
    return result


def _sort_key(sort_by: str):
    if sort_by == "name":
        return lambda b: b.name
    if sort_by == "updated":
        return lambda b: b.updated_at
    if sort_by == "created":
        return lambda b: b.created_at or _EPOCH
    if sort_by == "commits":
        return lambda b: b.ahead
    raise ValueError(f"Unknown sort key: {sort_by}")


def sort_branches(branches: Iterable[Branch], sort_by: str = "updated", sort_order: str = "desc") -> list[Branch]:
    """
    Stable sort by name, updated, created (missing dates sort as the epoch)
    or commits (the ``ahead`` count).

    Descending order reverses the comparison rather than the result, so
    branches with equal keys keep their input order either way.
    """
    return sorted(branches, key=_sort_key(sort_by), reverse=sort_order == "desc")


def apply_branch_filter(branches: Iterable[Branch], branch_filter: BranchFilter | Mapping[str, Any]) -> list[Branch]:
    """Filter then sort according to ``branch_filter``."""
    f = coerce_options(BranchFilter, branch_filter) or BranchFilter()
    return sort_branches(filter_branches(branches, f), f.sort_by, f.sort_order)
