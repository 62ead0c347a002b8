"""Typed option objects accepted by adapters and the service.

Each option type enumerates every recognized field. ``from_dict`` rejects
unknown keys and every constructor validates enumerated values, raising
``ValidationError`` with code ``INVALID_OPTIONS``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, TypeVar

from gitplex.exceptions import ErrorCode, ValidationError
from gitplex.types.branches import BranchStatus

O = TypeVar("O", bound="_Options")


class _Options:
    """Shared validation for option dataclasses."""

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {}

    def __post_init__(self) -> None:
        for name, allowed in self._choices.items():
            value = getattr(self, name)
            if value is not None and value not in allowed:
                raise ValidationError(
                    ErrorCode.INVALID_OPTIONS,
                    f"{type(self).__name__}.{name} must be one of {list(allowed)}, got {value!r}",
                )

    @classmethod
    def from_dict(cls: type[O], data: Mapping[str, Any]) -> O:
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(
                ErrorCode.INVALID_OPTIONS,
                f"Unknown {cls.__name__} field(s): {', '.join(unknown)}",
            )
        try:
            return cls(**data)
        except TypeError as e:
            raise ValidationError(ErrorCode.INVALID_OPTIONS, f"{cls.__name__}: {e}") from e


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def coerce_options(cls: type[O], value: "O | Mapping[str, Any] | None") -> O | None:
    """Accept an option instance, a plain mapping, or None."""
    if value is None or isinstance(value, cls):
        return value
    if isinstance(value, Mapping):
        return cls.from_dict(value)
    raise ValidationError(
        ErrorCode.INVALID_OPTIONS,
        f"Expected {cls.__name__} or mapping, got {type(value).__name__}",
    )


@dataclass
class PaginationOptions(_Options):
    page: int | None = None
    per_page: int | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.page is not None and self.page < 1:
            raise ValidationError(ErrorCode.INVALID_OPTIONS, "page must be >= 1")
        if self.per_page is not None and self.per_page < 1:
            raise ValidationError(ErrorCode.INVALID_OPTIONS, "per_page must be >= 1")


@dataclass
class SearchOptions(PaginationOptions):
    query: str | None = None
    sort: str | None = None
    order: str | None = None

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {"order": ("asc", "desc")}


@dataclass
class RepositoryListOptions(SearchOptions):
    visibility: str | None = None
    affiliation: str | None = None
    type: str | None = None

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {
        "order": ("asc", "desc"),
        "visibility": ("all", "public", "private"),
        "affiliation": ("owner", "collaborator", "organization_member"),
        "type": ("all", "owner", "public", "private", "member"),
        "sort": ("created", "updated", "pushed", "full_name"),
    }


@dataclass
class BranchListOptions(PaginationOptions):
    protected: bool | None = None
    sort: str | None = None
    search: str | None = None
    # fetch head commit details where the listing endpoint returns only SHAs
    include_commit_details: bool = False

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {"sort": ("name", "updated", "created")}


@dataclass
class MergeRequestListOptions(SearchOptions):
    state: str | None = None
    author: str | None = None
    assignee: str | None = None
    reviewer: str | None = None
    labels: list[str] | None = None
    milestone: str | None = None

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {
        "order": ("asc", "desc"),
        "state": ("open", "closed", "merged", "all"),
        "sort": ("created", "updated", "popularity", "long-running"),
    }


@dataclass
class CommitListOptions(PaginationOptions):
    sha: str | None = None
    path: str | None = None
    author: str | None = None
    since: datetime | None = None
    until: datetime | None = None


@dataclass
class CreateBranchOptions(_Options):
    name: str
    ref: str  # source branch name or commit SHA

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.name or not self.name.strip():
            raise ValidationError(ErrorCode.INVALID_OPTIONS, "Branch name must not be empty")
        if not self.ref or not self.ref.strip():
            raise ValidationError(ErrorCode.INVALID_OPTIONS, "Branch ref must not be empty")


@dataclass
class CreateMergeRequestOptions(_Options):
    title: str
    source_branch: str
    target_branch: str
    description: str | None = None
    assignee_ids: list[str] | None = None
    reviewer_ids: list[str] | None = None
    labels: list[str] | None = None
    milestone: str | None = None
    is_draft: bool = False
    remove_source_branch: bool = False
    squash: bool = False


@dataclass
class UpdateMergeRequestOptions(_Options):
    title: str | None = None
    description: str | None = None
    assignee_ids: list[str] | None = None
    reviewer_ids: list[str] | None = None
    labels: list[str] | None = None
    milestone: str | None = None
    state: str | None = None

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {"state": ("open", "closed")}


@dataclass
class MergeBranchOptions(_Options):
    commit_message: str | None = None
    merge_method: str | None = None
    sha: str | None = None
    remove_source_branch: bool = False

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {"merge_method": ("merge", "squash", "rebase")}


@dataclass
class GetFileContentOptions(_Options):
    ref: str | None = None
    format: str = "raw"

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {"format": ("raw", "base64")}


@dataclass
class FileOperationOptions(_Options):
    content: str
    message: str
    branch: str | None = None
    encoding: str = "utf-8"
    author_name: str | None = None
    author_email: str | None = None
    committer_name: str | None = None
    committer_email: str | None = None
    sha: str | None = None  # blob SHA of the file being replaced (updates only)

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {"encoding": ("utf-8", "base64")}


@dataclass
class DeleteFileOptions(_Options):
    message: str
    sha: str
    branch: str | None = None
    author_name: str | None = None
    author_email: str | None = None


@dataclass
class DateRange(_Options):
    """Inclusive window on ``updated_at``; naive bounds are taken as UTC."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise ValidationError(ErrorCode.INVALID_OPTIONS, "DateRange bounds must be datetimes")
        self.start = _as_utc(self.start)
        self.end = _as_utc(self.end)


@dataclass
class BranchFilter(_Options):
    """Composable branch filter; all set criteria are AND-combined."""

    search: str = ""
    status: list[BranchStatus] = field(default_factory=list)
    author: list[str] = field(default_factory=list)
    date_range: DateRange | None = None
    protected: bool | None = None
    merged: bool | None = None
    sort_by: str = "updated"
    sort_order: str = "desc"

    _choices: ClassVar[dict[str, tuple[Any, ...]]] = {
        "sort_by": ("name", "updated", "created", "commits"),
        "sort_order": ("asc", "desc"),
    }

    def __post_init__(self) -> None:
        super().__post_init__()
        try:
            self.status = [BranchStatus(s) for s in self.status]
        except ValueError as e:
            raise ValidationError(ErrorCode.INVALID_OPTIONS, str(e)) from e
        if isinstance(self.date_range, Mapping):
            self.date_range = DateRange.from_dict(self.date_range)


__all__ = [
    "coerce_options",
    "PaginationOptions",
    "SearchOptions",
    "RepositoryListOptions",
    "BranchListOptions",
    "MergeRequestListOptions",
    "CommitListOptions",
    "CreateBranchOptions",
    "CreateMergeRequestOptions",
    "UpdateMergeRequestOptions",
    "MergeBranchOptions",
    "GetFileContentOptions",
    "FileOperationOptions",
    "DeleteFileOptions",
    "DateRange",
    "BranchFilter",
]
