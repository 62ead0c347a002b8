#!/usr/bin/env python3
"""
GitPlex Python SDK - Branch Workflow Example

This example walks through a typical branch workflow:
1. Authenticate with GitHub and/or GitLab
2. List repositories across platforms
3. Create a feature branch and compare it with the default branch
4. Filter branches and print statistics
5. Clean up with a batch delete

Install the SDK first (pip install -e .), then run:

    GITHUB_TOKEN=... GITHUB_REPO=owner/repo python examples/python/branch_workflow.py
"""

import asyncio
import logging
import os
import random
import string

from gitplex import (
    BranchContext,
    BranchManager,
    BranchOperations,
    GitIntegration,
    GitPlatform,
    GitService,
    configure_logging,
)


def generate_random_suffix(length: int = 6) -> str:
    """Generate a random alphanumeric suffix."""
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


async def main() -> None:
    """Run the branch workflow example."""
    print("=== GitPlex Python SDK Example ===\n")
    configure_logging(logging.WARNING)

    credentials = {
        GitPlatform.GITHUB: (os.environ.get("GITHUB_TOKEN"), os.environ.get("GITHUB_REPO")),
        GitPlatform.GITLAB: (os.environ.get("GITLAB_TOKEN"), os.environ.get("GITLAB_REPO")),
    }
    credentials = {p: c for p, c in credentials.items() if c[0]}
    if not credentials:
        print("Set GITHUB_TOKEN/GITHUB_REPO or GITLAB_TOKEN/GITLAB_REPO to run this example.")
        return

    async with GitService.from_env() as service:
        context = BranchContext()
        integration = GitIntegration(service, context)

        # Step 1: Authenticate
        print("1. Authenticating...")
        for platform, (token, _) in credentials.items():
            result = await integration.authenticate_platform(platform, token)
            if result.success:
                print(f"   {platform.value}: signed in as {result.data.username}")
            else:
                print(f"   {platform.value}: {result.error.message}")

        if not context.authenticated_platforms:
            return

        # Step 2: Repositories across every connected platform
        print("\n2. Listing repositories...")
        repos = await integration.load_all_repositories()
        if repos.success:
            for repo in repos.data[:5]:
                print(f"   [{repo.platform.value}] {repo.full_name} (default: {repo.default_branch})")
        if service.last_aggregate_errors:
            for platform, error in service.last_aggregate_errors.items():
                print(f"   {platform.value} failed: {error.message}")

        platform = context.current_platform
        full_name = credentials[platform][1]
        if not full_name:
            print("\nNo repository configured for the branch workflow.")
            return
        owner, _, name = full_name.rpartition("/")
        repository = await service.get_repository(platform, owner, name)
        if not repository.success:
            print(f"\n   Could not open {full_name}: {repository.error.message}")
            return
        integration.select_repository(repository.data)

        manager = BranchManager(service, context)
        ops = BranchOperations(service, context)
        await manager.load_branches()

        # Step 3: Feature branch
        feature = f"example-{generate_random_suffix()}"
        default_branch = repository.data.default_branch
        print(f"\n3. Creating feature/{feature} from {default_branch}...")
        created = await ops.create_feature_branch(feature, base=default_branch)
        if not created.success:
            print(f"   Failed: {created.error.message}")
            return
        await manager.refresh_branches()

        comparison = await ops.compare_branches(default_branch, created.data.name)
        if comparison.success:
            print(f"   {comparison.data.ahead_by} ahead, {comparison.data.behind_by} behind")

        # Step 4: Views and statistics
        print("\n4. Branch overview...")
        manager.set_filter(search="example", sort_by="name", sort_order="asc")
        for branch in manager.filtered_branches:
            print(f"   {branch.name} [{branch.status.value}]")
        stats = manager.branch_stats
        print(f"   total={stats.total} active={stats.active} stale={stats.stale} protected={stats.protected}")

        # Step 5: Clean up
        print("\n5. Cleaning up...")
        outcome = await ops.batch_delete_branches([created.data.name])
        print(f"   Deleted: {outcome.success}, failed: {outcome.failed}")

        print("\n   History:")
        for item in ops.history:
            print(f"   {item.timestamp:%H:%M:%S} {item.type.value:8} {item.target} - {item.message}")

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
