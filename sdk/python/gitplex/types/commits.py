"""Commit and file-change data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from gitplex.types.common import GitUser


class FileChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


@dataclass
class Commit:
    """A single commit."""

    sha: str
    message: str
    author: GitUser
    committer: GitUser
    timestamp: datetime
    url: str | None = None
    parent_shas: list[str] = field(default_factory=list)


@dataclass
class FileChange:
    """One file touched by a commit or a comparison."""

    path: str
    status: FileChangeStatus
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    old_path: str | None = None  # set on renames
    patch: str | None = None
    blob_url: str | None = None


@dataclass
class CodeSearchResult:
    """A code search hit."""

    path: str
    name: str
    repository: str
    sha: str | None = None
    ref: str | None = None
    url: str | None = None
    fragment: str | None = None
