"""
GitHub adapter.

Translates the GitHub REST API v3 into the platform-neutral model. Pagination
follows the ``Link`` header; rate limits come from ``X-RateLimit-*``.
"""

import asyncio
import base64
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from gitplex.adapters.base import BaseGitPlatformAdapter, adapter_operation, parse_timestamp
from gitplex.adapters.pagination import (
    link_pagination,
    rate_limit_from_headers,
    search_pagination,
)
from gitplex.config import PlatformConfig, build_platform_config
from gitplex.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError
from gitplex.transport import HTTPResult
from gitplex.types.branches import (
    Branch,
    BranchComparison,
    BranchProtection,
    PushRestrictions,
    RequiredReviews,
    RequiredStatusChecks,
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

_SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")

_FILE_STATUS = {
    "added": FileChangeStatus.ADDED,
    "removed": FileChangeStatus.DELETED,
    "modified": FileChangeStatus.MODIFIED,
    "changed": FileChangeStatus.MODIFIED,
    "unchanged": FileChangeStatus.MODIFIED,
    "renamed": FileChangeStatus.RENAMED,
    "copied": FileChangeStatus.COPIED,
}


class GitHubAdapter(BaseGitPlatformAdapter):
    """Adapter for github.com and GitHub Enterprise Server."""

    auth_scheme = "token"

    def __init__(
        self,
        config: PlatformConfig | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config or build_platform_config(GitPlatform.GITHUB), http_transport)

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/vnd.github.v3+json"}

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
            "sort": options.sort or "updated",
            "direction": options.order or "desc",
        }
        # GitHub rejects `type` combined with visibility/affiliation
        if options.type:
            params["type"] = options.type
        else:
            params["visibility"] = options.visibility or "all"
            params["affiliation"] = options.affiliation or "owner,collaborator,organization_member"

        result = await self._get("/user/repos", params)
        repositories = [self._to_repository(item) for item in result.data]
        return self._page(repositories, result, page, per_page)

    @adapter_operation("Failed to get repository")
    async def get_repository(self, owner: str, repo: str) -> Repository:
        result = await self._get(self._repo_path(owner, repo))
        return self._to_repository(result.data)

    @adapter_operation("Failed to search repositories", scoped=False)
    async def search_repositories(
        self, query: str, options: SearchOptions | None = None
    ) -> ApiResponse[list[Repository]]:
        options = coerce_options(SearchOptions, options) or SearchOptions()
        page, per_page = self.page_params(options)
        result = await self._get(
            "/search/repositories",
            {
                "q": query,
                "page": page,
                "per_page": per_page,
                "sort": options.sort or "updated",
                "order": options.order or "desc",
            },
        )
        repositories = [self._to_repository(item) for item in result.data["items"]]
        return ApiResponse(
            data=repositories,
            pagination=search_pagination(result.data.get("total_count", 0), page, per_page),
            rate_limit=rate_limit_from_headers(result.headers),
        )

    # Branches

    @adapter_operation("Failed to list branches")
    async def list_branches(
        self, owner: str, repo: str, options: BranchListOptions | None = None
    ) -> ApiResponse[list[Branch]]:
        options = coerce_options(BranchListOptions, options) or BranchListOptions()
        page, per_page = self.page_params(options)
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if options.protected is not None:
            params["protected"] = options.protected

        result = await self._get(f"{self._repo_path(owner, repo)}/branches", params)
        repository = await self._get(self._repo_path(owner, repo))
        default_branch = repository.data["default_branch"]
        items = result.data
        if options.search:
            needle = options.search.lower()
            items = [item for item in items if needle in item["name"].lower()]

        if options.include_commit_details:
            commits = await asyncio.gather(
                *(self._fetch_commit(owner, repo, item["commit"]["sha"]) for item in items)
            )
            branches = [
                self._to_branch(item, default_branch, commit) for item, commit in zip(items, commits)
            ]
        else:
            fallback = parse_timestamp(repository.data.get("pushed_at")) or utcnow()
            branches = [
                self._to_branch(item, default_branch, fallback_time=fallback) for item in items
            ]
        return self._page(branches, result, page, per_page)

    @adapter_operation("Failed to get branch")
    async def get_branch(self, owner: str, repo: str, branch: str) -> Branch:
        return await self._fetch_branch(owner, repo, branch)

    @adapter_operation("Failed to create branch")
    async def create_branch(self, owner: str, repo: str, options: CreateBranchOptions) -> Branch:
        options = coerce_options(CreateBranchOptions, options)
        sha = await self._resolve_ref(owner, repo, options.ref)
        # a duplicate ref is rejected with 422
        await self.with_retry(
            lambda: self.transport.post(
                f"{self._repo_path(owner, repo)}/git/refs",
                {"ref": f"refs/heads/{options.name}", "sha": sha},
            )
        )
        self.logger.info("Created branch %s in %s/%s from %s", options.name, owner, repo, options.ref)
        return await self._fetch_branch(owner, repo, options.name)

    @adapter_operation("Failed to delete branch")
    async def delete_branch(self, owner: str, repo: str, branch: str) -> OperationResult[None]:
        await self.transport.delete(f"{self._repo_path(owner, repo)}/git/refs/heads/{_ref(branch)}")
        self.logger.info("Deleted branch %s in %s/%s", branch, owner, repo)
        return self.success_result(None, f"Branch {branch} deleted")

    @adapter_operation("Failed to compare branches")
    async def compare_branches(self, owner: str, repo: str, base: str, head: str) -> BranchComparison:
        result = await self._get(f"{self._repo_path(owner, repo)}/compare/{_ref(base)}...{_ref(head)}")
        data = result.data
        merge_base = data.get("merge_base_commit") or {}
        return BranchComparison(
            base_branch=base,
            head_branch=head,
            ahead_by=data.get("ahead_by", 0),
            behind_by=data.get("behind_by", 0),
            total_commits=data.get("total_commits", 0),
            commits=[self._to_commit(c) for c in data.get("commits", [])],
            files=[self._to_file_change(f) for f in data.get("files", [])],
            mergeable=data.get("status") != "diverged",
            merge_base=merge_base.get("sha"),
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
        path = self._protection_path(owner, repo, branch)
        if not protection.enabled:
            await self._delete_protection(path)
            return BranchProtection(enabled=False)

        checks = protection.required_status_checks
        reviews = protection.required_pull_request_reviews
        restrictions = protection.restrictions
        body: dict[str, Any] = {
            "required_status_checks": (
                {"strict": checks.strict, "contexts": checks.contexts} if checks else None
            ),
            "enforce_admins": protection.enforce_admins,
            "required_pull_request_reviews": (
                {
                    "dismiss_stale_reviews": reviews.dismiss_stale_reviews,
                    "require_code_owner_reviews": reviews.require_code_owner_reviews,
                    "required_approving_review_count": reviews.required_reviewer_count,
                }
                if reviews and reviews.required
                else None
            ),
            "restrictions": (
                {"users": restrictions.users, "teams": restrictions.teams} if restrictions else None
            ),
        }
        if protection.allow_force_pushes is not None:
            body["allow_force_pushes"] = protection.allow_force_pushes
        if protection.allow_deletions is not None:
            body["allow_deletions"] = protection.allow_deletions

        result = await self.with_retry(lambda: self.transport.put(path, body))
        return self._to_protection(result.data)

    @adapter_operation("Failed to remove branch protection")
    async def remove_branch_protection(self, owner: str, repo: str, branch: str) -> None:
        await self._delete_protection(self._protection_path(owner, repo, branch))

    # Commits

    @adapter_operation("Failed to list commits")
    async def list_commits(
        self, owner: str, repo: str, options: CommitListOptions | None = None
    ) -> ApiResponse[list[Commit]]:
        options = coerce_options(CommitListOptions, options) or CommitListOptions()
        page, per_page = self.page_params(options)
        result = await self._get(
            f"{self._repo_path(owner, repo)}/commits",
            {
                "page": page,
                "per_page": per_page,
                "sha": options.sha,
                "path": options.path,
                "author": options.author,
                "since": options.since.isoformat() if options.since else None,
                "until": options.until.isoformat() if options.until else None,
            },
        )
        return self._page([self._to_commit(c) for c in result.data], result, page, per_page)

    @adapter_operation("Failed to get commit")
    async def get_commit(self, owner: str, repo: str, sha: str) -> Commit:
        return await self._fetch_commit(owner, repo, sha)

    @adapter_operation("Failed to get commit changes")
    async def get_commit_changes(self, owner: str, repo: str, sha: str) -> list[FileChange]:
        result = await self._get(f"{self._repo_path(owner, repo)}/commits/{sha}")
        return [self._to_file_change(f) for f in result.data.get("files", [])]

    # Merge requests

    @adapter_operation("Failed to list merge requests")
    async def list_merge_requests(
        self, owner: str, repo: str, options: MergeRequestListOptions | None = None
    ) -> ApiResponse[list[MergeRequest]]:
        options = coerce_options(MergeRequestListOptions, options) or MergeRequestListOptions()
        page, per_page = self.page_params(options)
        state = options.state or "open"
        result = await self._get(
            f"{self._repo_path(owner, repo)}/pulls",
            {
                "page": page,
                "per_page": per_page,
                # pulls have no "merged" state; merged ones are closed with merged_at set
                "state": "closed" if state == "merged" else state,
                "sort": options.sort or "created",
                "direction": options.order or "desc",
            },
        )
        items = result.data
        if state == "merged":
            items = [pr for pr in items if pr.get("merged_at")]
        if options.author:
            items = [pr for pr in items if (pr.get("user") or {}).get("login") == options.author]
        if options.assignee:
            items = [
                pr for pr in items
                if any(a.get("login") == options.assignee for a in pr.get("assignees") or [])
            ]
        if options.labels:
            wanted = set(options.labels)
            items = [
                pr for pr in items
                if wanted.issubset({label["name"] for label in pr.get("labels") or []})
            ]
        if options.reviewer:
            items = [
                pr for pr in items
                if any(r.get("login") == options.reviewer for r in pr.get("requested_reviewers") or [])
            ]
        if options.milestone:
            items = [pr for pr in items if (pr.get("milestone") or {}).get("title") == options.milestone]
        if options.query:
            needle = options.query.lower()
            items = [
                pr for pr in items
                if needle in (pr.get("title") or "").lower() or needle in (pr.get("body") or "").lower()
            ]
        return self._page([self._to_merge_request(pr) for pr in items], result, page, per_page)

    @adapter_operation("Failed to get merge request")
    async def get_merge_request(self, owner: str, repo: str, number: int) -> MergeRequest:
        return await self._fetch_pull(owner, repo, number)

    @adapter_operation("Failed to create merge request")
    async def create_merge_request(
        self, owner: str, repo: str, options: CreateMergeRequestOptions
    ) -> MergeRequest:
        options = coerce_options(CreateMergeRequestOptions, options)
        issue_fields = await self._issue_fields(
            owner, repo, options.assignee_ids, options.labels, options.milestone
        )
        result = await self.transport.post(
            f"{self._repo_path(owner, repo)}/pulls",
            {
                "title": options.title,
                "body": options.description or "",
                "head": options.source_branch,
                "base": options.target_branch,
                "draft": options.is_draft,
            },
        )
        number = result.data["number"]
        changed = await self._patch_issue(owner, repo, number, issue_fields)
        changed |= await self._request_reviewers(owner, repo, number, options.reviewer_ids)
        if changed:
            return await self._fetch_pull(owner, repo, number)
        return self._to_merge_request(result.data)

    @adapter_operation("Failed to update merge request")
    async def update_merge_request(
        self, owner: str, repo: str, number: int, options: UpdateMergeRequestOptions
    ) -> MergeRequest:
        options = coerce_options(UpdateMergeRequestOptions, options)
        issue_fields = await self._issue_fields(
            owner, repo, options.assignee_ids, options.labels, options.milestone
        )
        body = {
            key: value
            for key, value in (
                ("title", options.title),
                ("body", options.description),
                ("state", options.state),
            )
            if value is not None
        }
        if body:
            await self.transport.patch(f"{self._repo_path(owner, repo)}/pulls/{number}", body)
        await self._patch_issue(owner, repo, number, issue_fields)
        await self._request_reviewers(owner, repo, number, options.reviewer_ids)
        return await self._fetch_pull(owner, repo, number)

    @adapter_operation("Failed to merge merge request")
    async def merge_merge_request(
        self, owner: str, repo: str, number: int, options: MergeBranchOptions | None = None
    ) -> OperationResult[MergeRequest]:
        options = coerce_options(MergeBranchOptions, options) or MergeBranchOptions()
        pull = await self._get(f"{self._repo_path(owner, repo)}/pulls/{number}")
        if pull.data.get("merged"):
            return self.success_result(self._to_merge_request(pull.data), "Already merged")

        body: dict[str, Any] = {"merge_method": options.merge_method or "merge"}
        if options.commit_message:
            body["commit_message"] = options.commit_message
        if options.sha:
            body["sha"] = options.sha
        try:
            await self.transport.put(f"{self._repo_path(owner, repo)}/pulls/{number}/merge", body)
        except (ConflictError, ValidationError):
            # a concurrent merge surfaces as 405/409; report it as merged
            refreshed = await self._fetch_pull(owner, repo, number)
            if refreshed.merged_at is None:
                raise
            return self.success_result(refreshed, "Already merged")

        if options.remove_source_branch:
            await self._remove_head_branch(owner, repo, pull.data)
        self.logger.info("Merged pull request #%s in %s/%s", number, owner, repo)
        return self.success_result(await self._fetch_pull(owner, repo, number), "Merged")

    @adapter_operation("Failed to close merge request")
    async def close_merge_request(self, owner: str, repo: str, number: int) -> MergeRequest:
        result = await self.transport.patch(
            f"{self._repo_path(owner, repo)}/pulls/{number}", {"state": "closed"}
        )
        return self._to_merge_request(result.data)

    # Files

    @adapter_operation("Failed to get file content")
    async def get_file_content(
        self, owner: str, repo: str, path: str, options: GetFileContentOptions | None = None
    ) -> str:
        options = coerce_options(GetFileContentOptions, options) or GetFileContentOptions()
        result = await self._get(self._contents_path(owner, repo, path), {"ref": options.ref})
        if isinstance(result.data, list):
            raise ValidationError(ErrorCode.VALIDATION_FAILED, f"{path} is a directory")
        encoded = (result.data.get("content") or "").replace("\n", "")
        if options.format == "base64":
            return encoded
        return base64.b64decode(encoded).decode("utf-8")

    @adapter_operation("Failed to create file")
    async def create_file(self, owner: str, repo: str, path: str, options: FileOperationOptions) -> Commit:
        options = coerce_options(FileOperationOptions, options)
        result = await self.transport.put(
            self._contents_path(owner, repo, path), self._file_body(options)
        )
        return self._to_git_commit(result.data["commit"])

    @adapter_operation("Failed to update file")
    async def update_file(self, owner: str, repo: str, path: str, options: FileOperationOptions) -> Commit:
        options = coerce_options(FileOperationOptions, options)
        if not options.sha:
            raise ValidationError(ErrorCode.INVALID_OPTIONS, "Updating a file requires the current blob sha")
        result = await self.transport.put(
            self._contents_path(owner, repo, path), self._file_body(options)
        )
        return self._to_git_commit(result.data["commit"])

    @adapter_operation("Failed to delete file")
    async def delete_file(self, owner: str, repo: str, path: str, options: DeleteFileOptions) -> Commit:
        options = coerce_options(DeleteFileOptions, options)
        body: dict[str, Any] = {"message": options.message, "sha": options.sha}
        if options.branch:
            body["branch"] = options.branch
        if options.author_name and options.author_email:
            body["author"] = {"name": options.author_name, "email": options.author_email}
        result = await self.transport.delete(self._contents_path(owner, repo, path), json=body)
        return self._to_git_commit(result.data["commit"])

    # Search

    @adapter_operation("Failed to search code", scoped=False)
    async def search_code(
        self, query: str, options: SearchOptions | None = None
    ) -> ApiResponse[list[CodeSearchResult]]:
        options = coerce_options(SearchOptions, options) or SearchOptions()
        page, per_page = self.page_params(options)
        result = await self._get("/search/code", {"q": query, "page": page, "per_page": per_page})
        hits = [
            CodeSearchResult(
                path=item["path"],
                name=item["name"],
                repository=(item.get("repository") or {}).get("full_name", ""),
                sha=item.get("sha"),
                url=item.get("html_url"),
                fragment=next(
                    (m.get("fragment") for m in item.get("text_matches") or []), None
                ),
            )
            for item in result.data["items"]
        ]
        return ApiResponse(
            data=hits,
            pagination=search_pagination(result.data.get("total_count", 0), page, per_page),
            rate_limit=rate_limit_from_headers(result.headers),
        )

    @adapter_operation("Failed to search commits", scoped=False)
    async def search_commits(
        self, query: str, options: SearchOptions | None = None
    ) -> ApiResponse[list[Commit]]:
        options = coerce_options(SearchOptions, options) or SearchOptions()
        page, per_page = self.page_params(options)
        params: dict[str, Any] = {"q": query, "page": page, "per_page": per_page}
        if options.sort:
            params["sort"] = options.sort
            params["order"] = options.order or "desc"
        result = await self._get("/search/commits", params)
        return ApiResponse(
            data=[self._to_commit(item) for item in result.data["items"]],
            pagination=search_pagination(result.data.get("total_count", 0), page, per_page),
            rate_limit=rate_limit_from_headers(result.headers),
        )

    # Diagnostics

    @adapter_operation("Failed to get rate limit", scoped=False)
    async def get_rate_limit(self) -> RateLimit:
        result = await self._get("/rate_limit")
        rate = (result.data.get("resources") or {}).get("core") or result.data["rate"]
        return RateLimit(
            limit=rate["limit"],
            remaining=rate["remaining"],
            reset=datetime.fromtimestamp(rate["reset"], tz=timezone.utc),
        )

    # Raw helpers

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def _protection_path(self, owner: str, repo: str, branch: str) -> str:
        return f"{self._repo_path(owner, repo)}/branches/{_ref(branch)}/protection"

    def _contents_path(self, owner: str, repo: str, path: str) -> str:
        return f"{self._repo_path(owner, repo)}/contents/{quote(path.lstrip('/'), safe='/')}"

    def _page(self, data: list[Any], result: HTTPResult, page: int, per_page: int) -> ApiResponse[list[Any]]:
        return ApiResponse(
            data=data,
            pagination=link_pagination(result.headers.get("Link"), page, per_page),
            rate_limit=rate_limit_from_headers(result.headers),
        )

    async def _fetch_branch(self, owner: str, repo: str, branch: str) -> Branch:
        result = await self._get(f"{self._repo_path(owner, repo)}/branches/{_ref(branch)}")
        repository = await self._get(self._repo_path(owner, repo))
        return self._to_branch(result.data, repository.data["default_branch"])

    async def _fetch_commit(self, owner: str, repo: str, sha: str) -> Commit:
        result = await self._get(f"{self._repo_path(owner, repo)}/commits/{sha}")
        return self._to_commit(result.data)

    async def _fetch_pull(self, owner: str, repo: str, number: int) -> MergeRequest:
        result = await self._get(f"{self._repo_path(owner, repo)}/pulls/{number}")
        return self._to_merge_request(result.data)

    async def _resolve_ref(self, owner: str, repo: str, ref: str) -> str:
        """Commit SHA of ``ref``, which is either a SHA or a branch name."""
        if _SHA_PATTERN.match(ref):
            return ref
        result = await self._get(f"{self._repo_path(owner, repo)}/git/ref/heads/{_ref(ref)}")
        return result.data["object"]["sha"]

    async def _delete_protection(self, path: str) -> None:
        try:
            await self.transport.delete(path)
        except NotFoundError:
            self.logger.debug("Branch already unprotected: %s", path)

    async def _issue_fields(
        self,
        owner: str,
        repo: str,
        assignees: list[str] | None,
        labels: list[str] | None,
        milestone: str | None,
    ) -> dict[str, Any]:
        """Body for the issue endpoint, which carries pull request metadata."""
        body: dict[str, Any] = {}
        if assignees is not None:
            body["assignees"] = assignees
        if labels is not None:
            body["labels"] = labels
        if milestone is not None:
            body["milestone"] = await self._milestone_number(owner, repo, milestone)
        return body

    async def _patch_issue(self, owner: str, repo: str, number: int, body: dict[str, Any]) -> bool:
        if not body:
            return False
        await self.transport.patch(f"{self._repo_path(owner, repo)}/issues/{number}", body)
        return True

    async def _milestone_number(self, owner: str, repo: str, milestone: str) -> int | None:
        """
        Milestone number for a number or a title.

        An empty string clears the milestone; an unknown title is rejected
        instead of being sent as a clear.
        """
        if not milestone:
            return None
        if milestone.isdigit():
            return int(milestone)
        result = await self._get(
            f"{self._repo_path(owner, repo)}/milestones", {"state": "all", "per_page": 100}
        )
        for item in result.data:
            if item.get("title") == milestone:
                return item["number"]
        raise ValidationError(ErrorCode.INVALID_OPTIONS, f"Unknown milestone: {milestone}")

    async def _request_reviewers(
        self, owner: str, repo: str, number: int, reviewers: list[str] | None
    ) -> bool:
        if not reviewers:
            return False
        await self.transport.post(
            f"{self._repo_path(owner, repo)}/pulls/{number}/requested_reviewers",
            {"reviewers": reviewers},
        )
        return True

    async def _remove_head_branch(self, owner: str, repo: str, pull: dict[str, Any]) -> None:
        head_repo = (pull.get("head") or {}).get("repo") or {}
        base_repo = (pull.get("base") or {}).get("repo") or {}
        if not head_repo or head_repo.get("full_name") != base_repo.get("full_name"):
            self.logger.info("Source branch lives in a fork; not removing it")
            return
        head_ref = pull["head"]["ref"]
        try:
            await self.transport.delete(f"{self._repo_path(owner, repo)}/git/refs/heads/{_ref(head_ref)}")
        except NotFoundError:
            self.logger.debug("Source branch %s already removed", head_ref)

    @staticmethod
    def _file_body(options: FileOperationOptions) -> dict[str, Any]:
        content = options.content
        if options.encoding != "base64":
            content = base64.b64encode(content.encode("utf-8")).decode("ascii")
        body: dict[str, Any] = {"message": options.message, "content": content}
        if options.branch:
            body["branch"] = options.branch
        if options.sha:
            body["sha"] = options.sha
        if options.author_name and options.author_email:
            body["author"] = {"name": options.author_name, "email": options.author_email}
        if options.committer_name and options.committer_email:
            body["committer"] = {"name": options.committer_name, "email": options.committer_email}
        return body

    # Translation

    @staticmethod
    def _to_user(data: dict[str, Any]) -> GitUser:
        return GitUser(
            id=data.get("id", 0),
            username=data.get("login", ""),
            display_name=data.get("name") or data.get("login", ""),
            email=data.get("email"),
            avatar_url=data.get("avatar_url"),
            profile_url=data.get("html_url"),
        )

    def _to_git_user(self, account: dict[str, Any] | None, signature: dict[str, Any]) -> GitUser:
        """User from a linked account, falling back to the raw git signature."""
        if account:
            user = self._to_user(account)
            if user.email is None:
                user.email = signature.get("email")
            return user
        name = signature.get("name", "")
        return GitUser(id=0, username=name, display_name=name, email=signature.get("email"))

    def _to_repository(self, data: dict[str, Any]) -> Repository:
        permissions = data.get("permissions") or {}
        can_push = bool(permissions.get("push"))
        return Repository(
            id=str(data["id"]),
            name=data["name"],
            full_name=data["full_name"],
            platform=GitPlatform.GITHUB,
            owner=self._to_user(data.get("owner") or {}),
            permissions=RepoPermissions(
                can_read=bool(permissions.get("pull")),
                can_write=can_push,
                can_admin=bool(permissions.get("admin")),
                can_create_branch=can_push,
                can_delete_branch=can_push,
                can_merge=can_push,
                can_create_merge_request=bool(permissions.get("pull")),
            ),
            default_branch=data.get("default_branch") or "main",
            is_private=bool(data.get("private")),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
            description=data.get("description"),
            is_fork=bool(data.get("fork")),
            forks_count=data.get("forks_count", 0),
            stars_count=data.get("stargazers_count", 0),
            watchers_count=data.get("watchers_count", 0),
            size=data.get("size", 0),
            language=data.get("language"),
            topics=list(data.get("topics") or []),
            pushed_at=parse_timestamp(data.get("pushed_at")),
            clone_url=data.get("clone_url", ""),
            ssh_url=data.get("ssh_url", ""),
            web_url=data.get("html_url", ""),
            is_archived=bool(data.get("archived")),
            is_disabled=bool(data.get("disabled")),
            has_issues=bool(data.get("has_issues", True)),
            has_projects=bool(data.get("has_projects")),
            has_wiki=bool(data.get("has_wiki")),
            has_pages=bool(data.get("has_pages")),
            has_downloads=bool(data.get("has_downloads")),
        )

    def _to_commit(self, data: dict[str, Any]) -> Commit:
        git = data.get("commit") or {}
        author = git.get("author") or {}
        committer = git.get("committer") or {}
        return Commit(
            sha=data["sha"],
            message=git.get("message", ""),
            author=self._to_git_user(data.get("author"), author),
            committer=self._to_git_user(data.get("committer"), committer),
            timestamp=parse_timestamp(author.get("date")) or utcnow(),
            url=data.get("html_url"),
            parent_shas=[p["sha"] for p in data.get("parents") or []],
        )

    def _to_git_commit(self, data: dict[str, Any]) -> Commit:
        """Commit from the git data shape returned by the contents API."""
        author = data.get("author") or {}
        committer = data.get("committer") or {}
        return Commit(
            sha=data["sha"],
            message=data.get("message", ""),
            author=self._to_git_user(None, author),
            committer=self._to_git_user(None, committer),
            timestamp=parse_timestamp(author.get("date")) or utcnow(),
            url=data.get("html_url"),
            parent_shas=[p["sha"] for p in data.get("parents") or []],
        )

    def _to_branch(
        self,
        data: dict[str, Any],
        default_branch: str,
        commit: Commit | None = None,
        fallback_time: datetime | None = None,
    ) -> Branch:
        raw_commit = data.get("commit") or {}
        if commit is None:
            if "commit" in raw_commit:
                commit = self._to_commit(raw_commit)
            else:
                # the listing endpoint returns only the head SHA
                placeholder = GitUser(id=0, username="", display_name="")
                commit = Commit(
                    sha=raw_commit.get("sha", ""),
                    message="",
                    author=placeholder,
                    committer=placeholder,
                    timestamp=fallback_time or utcnow(),
                )
        committed = (raw_commit.get("commit") or {}).get("committer") or {}
        updated_at = parse_timestamp(committed.get("date")) or commit.timestamp
        return Branch(
            name=data["name"],
            sha=raw_commit.get("sha") or commit.sha,
            is_protected=bool(data.get("protected")),
            is_default=data["name"] == default_branch,
            last_commit=commit,
            updated_at=updated_at,
            status=derive_branch_status(updated_at, stale_after_days=self.config.stale_after_days),
        )

    @staticmethod
    def _to_file_change(data: dict[str, Any]) -> FileChange:
        return FileChange(
            path=data["filename"],
            status=_FILE_STATUS.get(data.get("status", ""), FileChangeStatus.MODIFIED),
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            changes=data.get("changes", 0),
            old_path=data.get("previous_filename"),
            patch=data.get("patch"),
            blob_url=data.get("blob_url"),
        )

    @staticmethod
    def _to_protection(data: dict[str, Any]) -> BranchProtection:
        checks = data.get("required_status_checks")
        reviews = data.get("required_pull_request_reviews")
        restrictions = data.get("restrictions")
        return BranchProtection(
            enabled=True,
            id=data.get("url"),
            required_status_checks=(
                RequiredStatusChecks(
                    strict=bool(checks.get("strict")),
                    contexts=list(checks.get("contexts") or []),
                )
                if checks
                else None
            ),
            enforce_admins=(data.get("enforce_admins") or {}).get("enabled"),
            required_pull_request_reviews=(
                RequiredReviews(
                    required=True,
                    required_reviewer_count=reviews.get("required_approving_review_count", 1),
                    dismiss_stale_reviews=bool(reviews.get("dismiss_stale_reviews")),
                    require_code_owner_reviews=bool(reviews.get("require_code_owner_reviews")),
                )
                if reviews
                else None
            ),
            restrictions=(
                PushRestrictions(
                    users=[u["login"] for u in restrictions.get("users") or []],
                    teams=[t["slug"] for t in restrictions.get("teams") or []],
                )
                if restrictions
                else None
            ),
            allow_force_pushes=(data.get("allow_force_pushes") or {}).get("enabled"),
            allow_deletions=(data.get("allow_deletions") or {}).get("enabled"),
        )

    def _to_merge_request(self, data: dict[str, Any]) -> MergeRequest:
        head = data.get("head") or {}
        base = data.get("base") or {}
        mergeable = data.get("mergeable")
        if mergeable is None:
            merge_status = MergeStatus.CHECKING
        else:
            merge_status = MergeStatus.CAN_BE_MERGED if mergeable else MergeStatus.CANNOT_BE_MERGED
        merged = bool(data.get("merged") or data.get("merged_at"))
        milestone = data.get("milestone") or {}
        return MergeRequest(
            id=data["id"],
            number=data["number"],
            title=data.get("title", ""),
            state=derive_merge_request_state(
                merged=merged,
                closed=data.get("state") == "closed",
                draft=bool(data.get("draft")),
            ),
            author=self._to_user(data.get("user") or {}),
            source_branch=head.get("ref", ""),
            target_branch=base.get("ref", ""),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
            web_url=data.get("html_url", ""),
            description=data.get("body"),
            assignees=[self._to_user(u) for u in data.get("assignees") or []],
            reviewers=[self._to_user(u) for u in data.get("requested_reviewers") or []],
            source_repository=self._to_repository(head["repo"]) if head.get("repo") else None,
            target_repository=self._to_repository(base["repo"]) if base.get("repo") else None,
            changed_files=data.get("changed_files", 0),
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            merged_at=parse_timestamp(data.get("merged_at")),
            closed_at=parse_timestamp(data.get("closed_at")),
            is_mergeable=bool(mergeable),
            merge_status=merge_status,
            is_draft=bool(data.get("draft")),
            has_conflicts=data.get("mergeable_state") == "dirty",
            labels=[label["name"] for label in data.get("labels") or []],
            milestone=milestone.get("title"),
        )


def _ref(name: str) -> str:
    """Percent-encode a ref for use in a URL path; slashes are kept."""
    return quote(name, safe="/")
