"""
Configuration for GitPlex.

Per-platform defaults (base URL, page sizes, timeouts, retry policy) are merged
with caller overrides. ``GitServiceConfig.from_env`` reads ``GITPLEX_*``
environment variables.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

from gitplex.exceptions import ConfigurationError
from gitplex.types.common import GitPlatform


@dataclass(frozen=True)
class PlatformConfig:
    """Connection settings for one platform adapter."""

    platform: GitPlatform
    base_url: str
    api_version: str
    default_per_page: int
    max_per_page: int
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delay: float = 1.0  # base of the exponential backoff, seconds
    max_backoff: float = 30.0
    jitter: float = 0.1
    user_agent: str = "gitplex"
    stale_after_days: int | None = None

    def clamp_per_page(self, per_page: int | None) -> int:
        """Requested page size, defaulted and capped at ``max_per_page``."""
        if per_page is None:
            return self.default_per_page
        return max(1, min(per_page, self.max_per_page))


DEFAULT_PLATFORM_CONFIGS: dict[GitPlatform, PlatformConfig] = {
    GitPlatform.GITHUB: PlatformConfig(
        platform=GitPlatform.GITHUB,
        base_url="https://api.github.com",
        api_version="v3",
        default_per_page=30,
        max_per_page=100,
    ),
    GitPlatform.GITLAB: PlatformConfig(
        platform=GitPlatform.GITLAB,
        base_url="https://gitlab.com/api/v4",
        api_version="v4",
        default_per_page=20,
        max_per_page=100,
    ),
}

_OVERRIDABLE = {f.name for f in fields(PlatformConfig)} - {"platform"}


def build_platform_config(
    platform: GitPlatform | str,
    *overrides: Mapping[str, Any] | None,
) -> PlatformConfig:
    """
    Merge built-in defaults with partial override mappings, left to right.

    Raises:
        ConfigurationError: If the platform has no defaults or an override
            names an unknown field.
    """
    try:
        platform = GitPlatform(platform)
    except ValueError as e:
        raise ConfigurationError(f"Unknown platform: {platform}") from e

    base = DEFAULT_PLATFORM_CONFIGS.get(platform)
    if base is None:
        raise ConfigurationError(f"No configuration available for platform: {platform.value}")

    for override in overrides:
        if not override:
            continue
        unknown = sorted(set(override) - _OVERRIDABLE)
        if unknown:
            raise ConfigurationError(
                f"Unknown {platform.value} config field(s): {', '.join(unknown)}"
            )
        base = replace(base, **override)

    if base.max_per_page < base.default_per_page:
        raise ConfigurationError("max_per_page must be >= default_per_page")
    if base.retry_attempts < 1:
        raise ConfigurationError("retry_attempts must be >= 1")
    return base


@dataclass
class GitServiceConfig:
    """Settings of the orchestration service."""

    default_platform: GitPlatform = GitPlatform.GITHUB
    platform_configs: dict[GitPlatform, dict[str, Any]] = field(default_factory=dict)
    cache_enabled: bool = True
    cache_ttl: float = 300.0
    branch_cache_ttl: float = 120.0
    stats_sample_size: int = 5
    max_concurrent_requests: int = 10
    scheduled_eviction: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GitServiceConfig":
        """
        Build a configuration from ``GITPLEX_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If a numeric variable is malformed
        """
        env = os.environ if environ is None else environ
        config = cls()

        if "GITPLEX_CACHE_ENABLED" in env:
            config.cache_enabled = env["GITPLEX_CACHE_ENABLED"].strip().lower() in (
                "1",
                "true",
                "yes",
                "on",
            )
        if "GITPLEX_CACHE_TTL" in env:
            config.cache_ttl = _parse_number(env, "GITPLEX_CACHE_TTL", float)
        if "GITPLEX_BRANCH_CACHE_TTL" in env:
            config.branch_cache_ttl = _parse_number(env, "GITPLEX_BRANCH_CACHE_TTL", float)
        if "GITPLEX_STATS_SAMPLE_SIZE" in env:
            config.stats_sample_size = _parse_number(env, "GITPLEX_STATS_SAMPLE_SIZE", int)

        shared: dict[str, Any] = {}
        if "GITPLEX_TIMEOUT" in env:
            shared["timeout"] = _parse_number(env, "GITPLEX_TIMEOUT", float)
        if "GITPLEX_RETRY_ATTEMPTS" in env:
            shared["retry_attempts"] = _parse_number(env, "GITPLEX_RETRY_ATTEMPTS", int)

        for platform in DEFAULT_PLATFORM_CONFIGS:
            overrides = dict(shared)
            base_url = env.get(f"GITPLEX_{platform.name}_BASE_URL")
            if base_url:
                overrides["base_url"] = base_url
            if overrides:
                config.platform_configs[platform] = overrides

        return config


def _parse_number(env: Mapping[str, str], name: str, kind: type) -> Any:
    raw = env[name]
    try:
        value = kind(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return value
