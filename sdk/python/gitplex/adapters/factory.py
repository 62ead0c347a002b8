"""Adapter factory keyed by the closed set of supported platforms."""

from collections.abc import Mapping
from typing import Any

import httpx

from gitplex.adapters.base import BaseGitPlatformAdapter
from gitplex.adapters.github import GitHubAdapter
from gitplex.adapters.gitlab import GitLabAdapter
from gitplex.config import build_platform_config
from gitplex.exceptions import UnsupportedPlatformError
from gitplex.types.common import GitPlatform

_ADAPTERS: dict[GitPlatform, type[BaseGitPlatformAdapter]] = {
    GitPlatform.GITHUB: GitHubAdapter,
    GitPlatform.GITLAB: GitLabAdapter,
}


class AdapterFactory:
    """
    Build adapters from merged default and per-platform configuration.

    The factory does not cache instances; every call returns a new adapter
    built from the same configuration shape.
    """

    def __init__(
        self,
        platform_configs: Mapping[GitPlatform, Mapping[str, Any]] | None = None,
        http_transports: Mapping[GitPlatform, httpx.AsyncBaseTransport] | None = None,
    ) -> None:
        """
        Args:
            platform_configs: Per-platform config overrides applied to every adapter
            http_transports: Per-platform httpx transports (tests, proxies)
        """
        self._platform_configs = dict(platform_configs or {})
        self._http_transports = dict(http_transports or {})

    def create_adapter(
        self,
        platform: GitPlatform | str,
        config: Mapping[str, Any] | None = None,
    ) -> BaseGitPlatformAdapter:
        """
        Create an adapter for ``platform``.

        Raises:
            UnsupportedPlatformError: If the platform has no adapter
            ConfigurationError: If ``config`` names an unknown field
        """
        try:
            platform = GitPlatform(platform)
        except ValueError as e:
            raise UnsupportedPlatformError(platform) from e
        adapter_cls = _ADAPTERS.get(platform)
        if adapter_cls is None:
            raise UnsupportedPlatformError(platform)

        merged = build_platform_config(platform, self._platform_configs.get(platform), config)
        return adapter_cls(merged, http_transport=self._http_transports.get(platform))

    @staticmethod
    def get_supported_platforms() -> list[GitPlatform]:
        return list(_ADAPTERS)

    @staticmethod
    def is_platform_supported(platform: GitPlatform | str) -> bool:
        try:
            return GitPlatform(platform) in _ADAPTERS
        except ValueError:
            return False


__all__ = ["AdapterFactory"]
