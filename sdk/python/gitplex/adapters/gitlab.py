"""
GitLab adapter.

Translates the GitLab REST API v4 into the platform-neutral model. Projects
are addressed by their URL-encoded ``namespace/path``; pagination follows the
numeric ``X-Page``/``X-Total`` headers.
"""

import base64
from datetime import timedelta
from typing import Any
from urllib.parse import quote

import httpx

from gitplex.adapters.base import BaseGitPlatformAdapter, adapter_operation, parse_timestamp
from gitplex.adapters.pagination import numeric_pagination, rate_limit_from_headers
from gitplex.config import PlatformConfig, build_platform_config
from gitplex.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError
from gitplex.transport import HTTPResult
from gitplex.types.branches import (
    Branch,
    BranchComparison,
    BranchProtection,
    PushRestrictions,
    RequiredReviews,
    derive_branch_status,
)
from gitplex.types.commits import CodeSearchResult, Commit, FileChange, FileChangeStatus
from gitplex.types.common import (
    ApiResponse,
    GitPlatform,
    GitUser,
    OperationResult,
    RateLimit,
    utcnow,
)
from gitplex.types.merge_requests import (
    MergeRequest,
    MergeStatus,
    derive_merge_request_state,
)
from gitplex.types.options import (
    BranchListOptions,
    CommitListOptions,
    CreateBranchOptions,
    CreateMergeRequestOptions,
    DeleteFileOptions,
    FileOperationOptions,
    GetFileContentOptions,
    MergeBranchOptions,
    MergeRequestListOptions,
    RepositoryListOptions,
    SearchOptions,
    UpdateMergeRequestOptions,
    coerce_options,
)
from gitplex.types.repos import RepoPermissions, Repository

# GitLab access levels
DEVELOPER_ACCESS = 30
MAINTAINER_ACCESS = 40

# Used when the instance does not send RateLimit-* headers
FALLBACK_RATE_LIMIT = 2000
FALLBACK_RATE_WINDOW = timedelta(hours=1)

_ORDER_BY = {
    "created": "created_at",
    "updated": "updated_at",
    "pushed": "last_activity_at",
    "full_name": "path",
    "popularity": "created_at",
    "long-running": "created_at",
}

_MR_STATE = {"open": "opened", "closed": "closed", "merged": "merged", "all": "all"}


class GitLabAdapter(BaseGitPlatformAdapter):
    """Adapter for gitlab.com and self-managed GitLab."""

    auth_scheme = "Bearer"

    def __init__(
        self,
        config: PlatformConfig | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config or build_platform_config(GitPlatform.GITLAB), http_transport)

    # Authentication

    @adapter_operation("Failed to get current user", scoped=False)
    async def get_current_user(self) -> GitUser:
        self.require_auth()
        result = await self._get("/user")
        return self._to_user(result.data)

    # Repositories

    @adapter_operation("Failed to list repositories", scoped=False)
    async def list_repositories(
        self, options: RepositoryListOptions | None = None
    ) -> ApiResponse[list[Repository]]:
        options = coerce_options(RepositoryListOptions, options) or RepositoryListOptions()
        page, per_page = self.page_params(options)
        params: dict[str, Any] = {
            "page": page,
            "per_page": per_page,
            "membership": True,
            "order_by": _ORDER_BY.get(options.sort or "updated", "updated_at"),
            "sort": options.order or "desc",
            "search": options.query,
        }
        if options.visibility and options.visibility != "all":
            params["visibility"] = options.visibility
        if options.type == "owner" or options.affiliation == "owner":
            params["owned"] = True

        result = await self._get("/projects", params)
        return self._page([self._to_repository(p) for p in result.data], result, page, per_page)

    @adapter_operation("Failed to get repository")
    async def get_repository(self, owner: str, repo: str) -> Repository:
        result = await self._get(self._project_path(owner, repo))
        return self._to_repository(result.data)

    @adapter_operation("Failed to search repositories", scoped=False)
    async def search_repositories(
        self, query: str, options: SearchOptions | None = None
    ) -> ApiResponse[list[Repository]]:
        options = coerce_options(SearchOptions, options) or SearchOptions()
        page, per_page = self.page_params(options)
        result = await self._get(
            "/projects",
            {
                "search": query,
                "page": page,
                "per_page": per_page,
                "order_by": _ORDER_BY.get(options.sort or "updated", "updated_at"),
                "sort": options.order or "desc",
            },
        )
        return self._page([self._to_repository(p) for p in result.data], result, page, per_page)

    # Branches

    @adapter_operation("Failed to list branches")
    async def list_branches(
        self, owner: str, repo: str, options: BranchListOptions | None = None
    ) -> ApiResponse[list[Branch]]:
        options = coerce_options(BranchListOptions, options) or BranchListOptions()
        page, per_page = self.page_params(options)
        params: dict[str, Any] = {"page": page, "per_page": per_page, "search": options.search}
        if options.sort == "name":
            params["sort"] = "name_asc"
        elif options.sort == "updated":
            params["sort"] = "updated_desc"

        result = await self._get(f"{self._project_path(owner, repo)}/repository/branches", params)
        branches = [self._to_branch(b) for b in result.data]
        if options.protected is not None:
            branches = [b for b in branches if b.is_protected == options.protected]
        return self._page(branches, result, page, per_page)

    @adapter_operation("Failed to get branch")
    async def get_branch(self, owner: str, repo: str, branch: str) -> Branch:
        result = await self._get(
            f"{self._project_path(owner, repo)}/repository/branches/{_encode(branch)}"
        )
        return self._to_branch(result.data)

    @adapter_operation("Failed to create branch")
    async def create_branch(self, owner: str, repo: str, options: CreateBranchOptions) -> Branch:
        options = coerce_options(CreateBranchOptions, options)
        # a duplicate branch is rejected with 400
        result = await self.with_retry(
            lambda: self.transport.post(
                f"{self._project_path(owner, repo)}/repository/branches",
                {"branch": options.name, "ref": options.ref},
            )
        )
        self.logger.info("Created branch %s in %s/%s from %s", options.name, owner, repo, options.ref)
        return self._to_branch(result.data)

    @adapter_operation("Failed to delete branch")
    async def delete_branch(self, owner: str, repo: str, branch: str) -> OperationResult[None]:
        await self.transport.delete(
            f"{self._project_path(owner, repo)}/repository/branches/{_encode(branch)}"
        )
        self.logger.info("Deleted branch %s in %s/%s", branch, owner, repo)
        return self.success_result(None, f"Branch {branch} deleted")

    @adapter_operation("Failed to compare branches")
    async def compare_branches(self, owner: str, repo: str, base: str, head: str) -> BranchComparison:
        result = await self._get(
            f"{self._project_path(owner, repo)}/repository/compare",
            {"from": base, "to": head},
        )
        commits = [self._to_commit(c) for c in result.data.get("commits") or []]
        return BranchComparison(
            base_branch=base,
            head_branch=head,
            ahead_by=len(commits),
            # the compare endpoint is one-directional; behind needs a reverse call
            behind_by=0,
            total_commits=len(commits),
            commits=commits,
            files=[self._to_file_change(d) for d in result.data.get("diffs") or []],
            mergeable=True,
            merge_base=head if result.data.get("compare_same_ref") else None,
        )

    @adapter_operation("Failed to get branch protection")
    async def get_branch_protection(self, owner: str, repo: str, branch: str) -> BranchProtection:
        try:
            result = await self._get(self._protection_path(owner, repo, branch))
        except NotFoundError:
            return BranchProtection(enabled=False)
        return self._to_protection(result.data)

    @adapter_operation("Failed to set branch protection")
    async def set_branch_protection(
        self, owner: str, repo: str, branch: str, protection: BranchProtection
    ) -> BranchProtection:
        await self._unprotect(owner, repo, branch)
        if not protection.enabled:
            return BranchProtection(enabled=False)

        reviews = protection.required_pull_request_reviews
        body: dict[str, Any] = {
            "name": branch,
            # restricted pushes leave only maintainers, otherwise developers may push
            "push_access_level": MAINTAINER_ACCESS if protection.restrictions else DEVELOPER_ACCESS,
            "merge_access_level": DEVELOPER_ACCESS,
            "allow_force_push": bool(protection.allow_force_pushes),
            "code_owner_approval_required": bool(reviews and reviews.require_code_owner_reviews),
        }
        result = await self.transport.post(
            f"{self._project_path(owner, repo)}/protected_branches", body
        )
        return self._to_protection(result.data)

    @adapter_operation("Failed to remove branch protection")
    async def remove_branch_protection(self, owner: str, repo: str, branch: str) -> None:
        await self._unprotect(owner, repo, branch)

    # Commits

    @adapter_operation("Failed to list commits")
    async def list_commits(
        self, owner: str, repo: str, options: CommitListOptions | None = None
    ) -> ApiResponse[list[Commit]]:
        options = coerce_options(CommitListOptions, options) or CommitListOptions()
        page, per_page = self.page_params(options)
        result = await self._get(
            f"{self._project_path(owner, repo)}/repository/commits",
            {
                "page": page,
                "per_page": per_page,
                "ref_name": options.sha,
                "path": options.path,
                "author": options.author,
                "since": options.since.isoformat() if options.since else None,
                "until": options.until.isoformat() if options.until else None,
            },
        )
        return self._page([self._to_commit(c) for c in result.data], result, page, per_page)

    @adapter_operation("Failed to get commit")
    async def get_commit(self, owner: str, repo: str, sha: str) -> Commit:
        result = await self._get(f"{self._project_path(owner, repo)}/repository/commits/{_encode(sha)}")
        return self._to_commit(result.data)

    @adapter_operation("Failed to get commit changes")
    async def get_commit_changes(self, owner: str, repo: str, sha: str) -> list[FileChange]:
        result = await self._get(
            f"{self._project_path(owner, repo)}/repository/commits/{_encode(sha)}/diff"
        )
        return [self._to_file_change(d) for d in result.data]

    # Merge requests

    @adapter_operation("Failed to list merge requests")
    async def list_merge_requests(
        self, owner: str, repo: str, options: MergeRequestListOptions | None = None
    ) -> ApiResponse[list[MergeRequest]]:
        options = coerce_options(MergeRequestListOptions, options) or MergeRequestListOptions()
        page, per_page = self.page_params(options)
        result = await self._get(
            f"{self._project_path(owner, repo)}/merge_requests",
            {
                "page": page,
                "per_page": per_page,
                "state": _MR_STATE[options.state or "open"],
                "order_by": _ORDER_BY.get(options.sort or "created", "created_at"),
                "sort": options.order or "desc",
                "author_username": options.author,
                "assignee_username": options.assignee,
                "reviewer_username": options.reviewer,
                "labels": ",".join(options.labels) if options.labels else None,
                "milestone": options.milestone,
                "search": options.query,
            },
        )
        return self._page([self._to_merge_request(mr) for mr in result.data], result, page, per_page)

    @adapter_operation("Failed to get merge request")
    async def get_merge_request(self, owner: str, repo: str, number: int) -> MergeRequest:
        result = await self._get(f"{self._project_path(owner, repo)}/merge_requests/{number}")
        return self._to_merge_request(result.data)

    @adapter_operation("Failed to create merge request")
    async def create_merge_request(
        self, owner: str, repo: str, options: CreateMergeRequestOptions
    ) -> MergeRequest:
        options = coerce_options(CreateMergeRequestOptions, options)
        title = options.title
        if options.is_draft and not title.lower().startswith(("draft:", "[draft]")):
            title = f"Draft: {title}"
        body: dict[str, Any] = {
            "title": title,
            "description": options.description or "",
            "source_branch": options.source_branch,
            "target_branch": options.target_branch,
            "remove_source_branch": options.remove_source_branch,
            "squash": options.squash,
        }
        body.update(self._mr_fields(options.assignee_ids, options.reviewer_ids, options.labels))
        if options.milestone is not None:
            body["milestone_id"] = await self._milestone_id(owner, repo, options.milestone)
        result = await self.transport.post(f"{self._project_path(owner, repo)}/merge_requests", body)
        return self._to_merge_request(result.data)

    @adapter_operation("Failed to update merge request")
    async def update_merge_request(
        self, owner: str, repo: str, number: int, options: UpdateMergeRequestOptions
    ) -> MergeRequest:
        options = coerce_options(UpdateMergeRequestOptions, options)
        body: dict[str, Any] = {}
        if options.title is not None:
            body["title"] = options.title
        if options.description is not None:
            body["description"] = options.description
        if options.state is not None:
            body["state_event"] = "close" if options.state == "closed" else "reopen"
        body.update(self._mr_fields(options.assignee_ids, options.reviewer_ids, options.labels))
        if options.milestone is not None:
            body["milestone_id"] = await self._milestone_id(owner, repo, options.milestone)
        result = await self.transport.put(
            f"{self._project_path(owner, repo)}/merge_requests/{number}", body
        )
        return self._to_merge_request(result.data)

    @adapter_operation("Failed to merge merge request")
    async def merge_merge_request(
        self, owner: str, repo: str, number: int, options: MergeBranchOptions | None = None
    ) -> OperationResult[MergeRequest]:
        options = coerce_options(MergeBranchOptions, options) or MergeBranchOptions()
        if options.merge_method == "rebase":
            return self.error_result(
                ErrorCode.UNSUPPORTED_MERGE_METHOD,
                "GitLab merge requests cannot be merged with the rebase method",
                repository=f"{owner}/{repo}",
            )

        path = f"{self._project_path(owner, repo)}/merge_requests/{number}"
        current = await self._get(path)
        if current.data.get("state") == "merged":
            return self.success_result(self._to_merge_request(current.data), "Already merged")

        body: dict[str, Any] = {
            "squash": options.merge_method == "squash",
            "should_remove_source_branch": options.remove_source_branch,
        }
        if options.commit_message:
            key = "squash_commit_message" if options.merge_method == "squash" else "merge_commit_message"
            body[key] = options.commit_message
        if options.sha:
            body["sha"] = options.sha
        try:
            result = await self.transport.put(f"{path}/merge", body)
        except (ConflictError, ValidationError):
            refreshed = await self._get(path)
            if refreshed.data.get("state") != "merged":
                raise
            return self.success_result(self._to_merge_request(refreshed.data), "Already merged")

        self.logger.info("Merged merge request !%s in %s/%s", number, owner, repo)
        return self.success_result(self._to_merge_request(result.data), "Merged")

    @adapter_operation("Failed to close merge request")
    async def close_merge_request(self, owner: str, repo: str, number: int) -> MergeRequest:
        result = await self.transport.put(
            f"{self._project_path(owner, repo)}/merge_requests/{number}", {"state_event": "close"}
        )
        return self._to_merge_request(result.data)

    # Files

    @adapter_operation("Failed to get file content")
    async def get_file_content(
        self, owner: str, repo: str, path: str, options: GetFileContentOptions | None = None
    ) -> str:
        options = coerce_options(GetFileContentOptions, options) or GetFileContentOptions()
        ref = options.ref or await self._default_branch(owner, repo)
        result = await self._get(self._file_path(owner, repo, path), {"ref": ref})
        encoded = result.data.get("content") or ""
        if options.format == "base64":
            return encoded
        return base64.b64decode(encoded).decode("utf-8")

    @adapter_operation("Failed to create file")
    async def create_file(self, owner: str, repo: str, path: str, options: FileOperationOptions) -> Commit:
        options = coerce_options(FileOperationOptions, options)
        branch = options.branch or await self._default_branch(owner, repo)
        await self.transport.post(self._file_path(owner, repo, path), self._file_body(options, branch))
        return await self._head_commit(owner, repo, branch)

    @adapter_operation("Failed to update file")
    async def update_file(self, owner: str, repo: str, path: str, options: FileOperationOptions) -> Commit:
        options = coerce_options(FileOperationOptions, options)
        branch = options.branch or await self._default_branch(owner, repo)
        await self.transport.put(self._file_path(owner, repo, path), self._file_body(options, branch))
        return await self._head_commit(owner, repo, branch)

    @adapter_operation("Failed to delete file")
    async def delete_file(self, owner: str, repo: str, path: str, options: DeleteFileOptions) -> Commit:
        options = coerce_options(DeleteFileOptions, options)
        branch = options.branch or await self._default_branch(owner, repo)
        body: dict[str, Any] = {"branch": branch, "commit_message": options.message}
        if options.author_name:
            body["author_name"] = options.author_name
        if options.author_email:
            body["author_email"] = options.author_email
        await self.transport.delete(self._file_path(owner, repo, path), json=body)
        return await self._head_commit(owner, repo, branch)

    # Search

    @adapter_operation("Failed to search code", scoped=False)
    async def search_code(
        self, query: str, options: SearchOptions | None = None
    ) -> ApiResponse[list[CodeSearchResult]]:
        options = coerce_options(SearchOptions, options) or SearchOptions()
        page, per_page = self.page_params(options)
        result = await self._get(
            "/search", {"scope": "blobs", "search": query, "page": page, "per_page": per_page}
        )
        hits = [
            CodeSearchResult(
                path=item.get("path") or item.get("filename", ""),
                name=item.get("basename") or item.get("filename", ""),
                repository=str(item.get("project_id", "")),
                ref=item.get("ref"),
                fragment=item.get("data"),
            )
            for item in result.data
        ]
        return self._page(hits, result, page, per_page)

    async def search_commits(
        self, query: str, options: SearchOptions | None = None
    ) -> OperationResult[ApiResponse[list[Commit]]]:
        return self.not_implemented("search_commits")

    # Diagnostics

    @adapter_operation("Failed to get rate limit", scoped=False)
    async def get_rate_limit(self) -> RateLimit:
        result = await self._get("/user")
        rate_limit = rate_limit_from_headers(result.headers, prefix="RateLimit-")
        if rate_limit is None:
            return RateLimit(
                limit=FALLBACK_RATE_LIMIT,
                remaining=FALLBACK_RATE_LIMIT,
                reset=utcnow() + FALLBACK_RATE_WINDOW,
            )
        return rate_limit

    # Raw helpers

    @staticmethod
    def _project_path(owner: str, repo: str) -> str:
        return f"/projects/{_encode(f'{owner}/{repo}')}"

    def _protection_path(self, owner: str, repo: str, branch: str) -> str:
        return f"{self._project_path(owner, repo)}/protected_branches/{_encode(branch)}"

    def _file_path(self, owner: str, repo: str, path: str) -> str:
        return f"{self._project_path(owner, repo)}/repository/files/{_encode(path.lstrip('/'))}"

    def _page(self, data: list[Any], result: HTTPResult, page: int, per_page: int) -> ApiResponse[list[Any]]:
        return ApiResponse(
            data=data,
            pagination=numeric_pagination(result.headers, page, per_page),
            rate_limit=rate_limit_from_headers(result.headers, prefix="RateLimit-"),
        )

    async def _default_branch(self, owner: str, repo: str) -> str:
        result = await self._get(self._project_path(owner, repo))
        return result.data.get("default_branch") or "main"

    async def _head_commit(self, owner: str, repo: str, branch: str) -> Commit:
        result = await self._get(
            f"{self._project_path(owner, repo)}/repository/commits/{_encode(branch)}"
        )
        return self._to_commit(result.data)

    async def _unprotect(self, owner: str, repo: str, branch: str) -> None:
        try:
            await self.transport.delete(self._protection_path(owner, repo, branch))
        except NotFoundError:
            self.logger.debug("Branch %s already unprotected in %s/%s", branch, owner, repo)

    async def _milestone_id(self, owner: str, repo: str, milestone: str) -> int:
        """Milestone id for an id or a title; an empty string maps to 0, which clears it."""
        if not milestone:
            return 0
        if milestone.isdigit():
            return int(milestone)
        result = await self._get(f"{self._project_path(owner, repo)}/milestones", {"title": milestone})
        for item in result.data:
            if item.get("title") == milestone:
                return item["id"]
        raise ValidationError(ErrorCode.INVALID_OPTIONS, f"Unknown milestone: {milestone}")

    @staticmethod
    def _mr_fields(
        assignee_ids: list[str] | None,
        reviewer_ids: list[str] | None,
        labels: list[str] | None,
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if assignee_ids is not None:
            fields["assignee_ids"] = [int(i) for i in assignee_ids]
        if reviewer_ids is not None:
            fields["reviewer_ids"] = [int(i) for i in reviewer_ids]
        if labels is not None:
            fields["labels"] = ",".join(labels)
        return fields

    @staticmethod
    def _file_body(options: FileOperationOptions, branch: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "branch": branch,
            "content": options.content,
            "encoding": "base64" if options.encoding == "base64" else "text",
            "commit_message": options.message,
        }
        if options.author_name:
            body["author_name"] = options.author_name
        if options.author_email:
            body["author_email"] = options.author_email
        return body

    # Translation

    @staticmethod
    def _to_user(data: dict[str, Any]) -> GitUser:
        return GitUser(
            id=data.get("id", 0),
            username=data.get("username", ""),
            display_name=data.get("name") or data.get("username", ""),
            email=data.get("email") or data.get("public_email") or None,
            avatar_url=data.get("avatar_url"),
            profile_url=data.get("web_url"),
        )

    def _to_repository(self, data: dict[str, Any]) -> Repository:
        if data.get("owner"):
            owner = self._to_user(data["owner"])
        else:
            # group projects have a namespace instead of an owner
            namespace = data.get("namespace") or {}
            owner = GitUser(
                id=namespace.get("id", 0),
                username=namespace.get("full_path") or namespace.get("path", ""),
                display_name=namespace.get("name", ""),
                avatar_url=namespace.get("avatar_url"),
                profile_url=namespace.get("web_url"),
            )

        access = data.get("permissions") or {}
        level = max(
            (access.get("project_access") or {}).get("access_level", 0),
            (access.get("group_access") or {}).get("access_level", 0),
        )
        can_write = level >= DEVELOPER_ACCESS
        return Repository(
            id=str(data["id"]),
            name=data.get("path") or data["name"],
            full_name=data["path_with_namespace"],
            platform=GitPlatform.GITLAB,
            owner=owner,
            permissions=RepoPermissions(
                can_read=True,
                can_write=can_write,
                can_admin=level >= MAINTAINER_ACCESS,
                can_create_branch=can_write,
                can_delete_branch=can_write,
                can_merge=can_write,
                can_create_merge_request=True,
            ),
            default_branch=data.get("default_branch") or "main",
            is_private=data.get("visibility") == "private",
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=(
                parse_timestamp(data.get("updated_at"))
                or parse_timestamp(data.get("last_activity_at"))
                or utcnow()
            ),
            description=data.get("description"),
            is_fork=bool(data.get("forked_from_project")),
            forks_count=data.get("forks_count", 0),
            stars_count=data.get("star_count", 0),
            topics=list(data.get("topics") or data.get("tag_list") or []),
            pushed_at=parse_timestamp(data.get("last_activity_at")),
            clone_url=data.get("http_url_to_repo", ""),
            ssh_url=data.get("ssh_url_to_repo", ""),
            web_url=data.get("web_url", ""),
            is_archived=bool(data.get("archived")),
            has_issues=bool(data.get("issues_enabled", True)),
            has_wiki=bool(data.get("wiki_enabled")),
            has_pages=False,
        )

    @staticmethod
    def _to_commit(data: dict[str, Any]) -> Commit:
        author = data.get("author_name", "")
        committer = data.get("committer_name", "") or author
        return Commit(
            sha=data["id"],
            message=data.get("message") or data.get("title", ""),
            author=GitUser(id=0, username=author, display_name=author, email=data.get("author_email")),
            committer=GitUser(
                id=0, username=committer, display_name=committer, email=data.get("committer_email")
            ),
            timestamp=(
                parse_timestamp(data.get("authored_date"))
                or parse_timestamp(data.get("committed_date"))
                or utcnow()
            ),
            url=data.get("web_url"),
            parent_shas=list(data.get("parent_ids") or []),
        )

    def _to_branch(self, data: dict[str, Any]) -> Branch:
        commit = self._to_commit(data["commit"])
        updated_at = parse_timestamp(data["commit"].get("committed_date")) or commit.timestamp
        return Branch(
            name=data["name"],
            sha=commit.sha,
            is_protected=bool(data.get("protected")),
            is_default=bool(data.get("default")),
            last_commit=commit,
            updated_at=updated_at,
            status=derive_branch_status(
                updated_at,
                merged=bool(data.get("merged")),
                stale_after_days=self.config.stale_after_days,
            ),
        )

    @staticmethod
    def _to_file_change(diff: dict[str, Any]) -> FileChange:
        if diff.get("new_file"):
            status = FileChangeStatus.ADDED
        elif diff.get("deleted_file"):
            status = FileChangeStatus.DELETED
        elif diff.get("renamed_file"):
            status = FileChangeStatus.RENAMED
        else:
            status = FileChangeStatus.MODIFIED

        patch = diff.get("diff")
        additions = deletions = 0
        for line in (patch or "").splitlines():
            if line.startswith("+") and not line.startswith("+++"):
                additions += 1
            elif line.startswith("-") and not line.startswith("---"):
                deletions += 1
        return FileChange(
            path=diff.get("new_path") or diff.get("old_path", ""),
            status=status,
            additions=additions,
            deletions=deletions,
            changes=additions + deletions,
            old_path=diff.get("old_path") if status is FileChangeStatus.RENAMED else None,
            patch=patch,
        )

    @staticmethod
    def _to_protection(data: dict[str, Any]) -> BranchProtection:
        push_levels = data.get("push_access_levels") or []
        users = [str(level["user_id"]) for level in push_levels if level.get("user_id")]
        groups = [str(level["group_id"]) for level in push_levels if level.get("group_id")]
        code_owners = bool(data.get("code_owner_approval_required"))
        return BranchProtection(
            enabled=True,
            id=str(data["id"]) if data.get("id") is not None else None,
            required_pull_request_reviews=(
                RequiredReviews(required=True, require_code_owner_reviews=True) if code_owners else None
            ),
            restrictions=PushRestrictions(users=users, teams=groups) if users or groups else None,
            allow_force_pushes=bool(data.get("allow_force_push")),
        )

    def _to_merge_request(self, data: dict[str, Any]) -> MergeRequest:
        state = data.get("state")
        draft = bool(data.get("draft") or data.get("work_in_progress"))
        raw_status = data.get("merge_status") or ""
        if raw_status == "can_be_merged":
            merge_status = MergeStatus.CAN_BE_MERGED
        elif raw_status == "cannot_be_merged":
            merge_status = MergeStatus.CANNOT_BE_MERGED
        else:
            merge_status = MergeStatus.CHECKING
        changes_count = str(data.get("changes_count") or "0").rstrip("+")
        milestone = data.get("milestone") or {}
        return MergeRequest(
            id=data["id"],
            number=data["iid"],
            title=data.get("title", ""),
            state=derive_merge_request_state(
                merged=state == "merged",
                closed=state in ("closed", "locked"),
                draft=draft,
            ),
            author=self._to_user(data.get("author") or {}),
            source_branch=data.get("source_branch", ""),
            target_branch=data.get("target_branch", ""),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
            web_url=data.get("web_url", ""),
            description=data.get("description"),
            assignees=[self._to_user(u) for u in data.get("assignees") or []],
            reviewers=[self._to_user(u) for u in data.get("reviewers") or []],
            changed_files=int(changes_count) if changes_count.isdigit() else 0,
            merged_at=parse_timestamp(data.get("merged_at")),
            closed_at=parse_timestamp(data.get("closed_at")),
            is_mergeable=merge_status is MergeStatus.CAN_BE_MERGED,
            merge_status=merge_status,
            is_draft=draft,
            has_conflicts=bool(data.get("has_conflicts")),
            labels=[label if isinstance(label, str) else label.get("name", "") for label in data.get("labels") or []],
            milestone=milestone.get("title"),
        )


def _encode(value: str) -> str:
    """Percent-encode a path segment, including slashes."""
    return quote(value, safe="")
