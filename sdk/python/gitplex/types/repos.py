"""Repository-related data models."""

from dataclasses import dataclass, field
from datetime import datetime

from gitplex.types.common import GitPlatform, GitUser


@dataclass
class RepoPermissions:
    """What the authenticated user may do in a repository."""

    can_read: bool = False
    can_write: bool = False
    can_admin: bool = False
    can_create_branch: bool = False
    can_delete_branch: bool = False
    can_merge: bool = False
    can_create_merge_request: bool = False


@dataclass
class Repository:
    """Repository snapshot as returned by a listing or get call."""

    id: str
    name: str
    full_name: str  # "owner/name"; nested GitLab groups keep every segment
    platform: GitPlatform
    owner: GitUser
    permissions: RepoPermissions
    default_branch: str
    is_private: bool
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    is_fork: bool = False
    forks_count: int = 0
    stars_count: int = 0
    watchers_count: int = 0
    size: int = 0  # KB
    language: str | None = None
    topics: list[str] = field(default_factory=list)
    pushed_at: datetime | None = None
    clone_url: str = ""
    ssh_url: str = ""
    web_url: str = ""
    is_archived: bool = False
    is_disabled: bool = False
    has_issues: bool = True
    has_projects: bool = False
    has_wiki: bool = False
    has_pages: bool = False
    has_downloads: bool = False

    @property
    def visibility(self) -> str:
        return "private" if self.is_private else "public"

    def split_full_name(self) -> tuple[str, str]:
        """Return ``(owner, repo)`` for use in follow-up calls."""
        owner, _, name = self.full_name.rpartition("/")
        return owner, name or self.name
