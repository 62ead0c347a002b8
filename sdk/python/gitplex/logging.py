"""
GitPlex logging utilities.

Provides configurable logging for HTTP requests/responses and cache activity.
Ensures no credentials (tokens, passwords, secrets) are ever logged.
"""

import logging
import re
from typing import Any

# SDK-specific loggers
_sdk_logger = logging.getLogger("gitplex")
_http_logger = logging.getLogger("gitplex.http")
_cache_logger = logging.getLogger("gitplex.cache")

# Patterns for sensitive data that should be masked
_SENSITIVE_PATTERNS = [
    # Authorization header values ("token abc", "Bearer abc")
    (re.compile(r"(Authorization['\"]?\s*[:=]\s*['\"]?)(token|Bearer|Basic)\s+[^\s'\",}]+", re.IGNORECASE), r"\1\2 [REDACTED]"),
    # GitLab private token header
    (re.compile(r"(PRIVATE-TOKEN['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+", re.IGNORECASE), r"\1[REDACTED]"),
    # Well-known token prefixes (GitHub ghp_/gho_/ghs_/github_pat_, GitLab glpat-)
    (re.compile(r"\b(ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9]{20,}\b"), "[TOKEN_REDACTED]"),
    (re.compile(r"\bgithub_pat_[A-Za-z0-9_]{20,}\b"), "[TOKEN_REDACTED]"),
    (re.compile(r"\bglpat-[A-Za-z0-9_\-]{20,}\b"), "[TOKEN_REDACTED]"),
    # Secret/token key-value patterns
    (re.compile(r"(secret|token|password|api_key)['\"]?\s*[:=]\s*['\"][^'\"]+['\"]", re.IGNORECASE), r"\1: [REDACTED]"),
]

_DEFAULT_SENSITIVE_KEYS = {"authorization", "private-token", "token", "password", "secret", "api_key"}

# Characters of a token kept visible by mask_token
_TOKEN_PREVIEW_LENGTH = 4


def configure_logging(
    level: int = logging.INFO,
    http_level: int | None = None,
    cache_level: int | None = None,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure GitPlex logging.

    Args:
        level: Default log level for all GitPlex loggers (default: INFO)
        http_level: Log level for HTTP request/response logging (default: same as level)
        cache_level: Log level for response cache activity (default: same as level)
        handler: Custom handler to use (default: StreamHandler to stderr)
        format_string: Custom format string (default: includes timestamp, level, logger name)

    Example:
        ```python
        import logging
        from gitplex.logging import configure_logging

        # Trace every HTTP round trip and cache hit/miss
        configure_logging(http_level=logging.DEBUG, cache_level=logging.DEBUG)
        ```
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string)

    if handler is None:
        handler = logging.StreamHandler()

    handler.setFormatter(formatter)

    _sdk_logger.setLevel(level)
    _sdk_logger.addHandler(handler)

    _http_logger.setLevel(http_level if http_level is not None else level)
    _cache_logger.setLevel(cache_level if cache_level is not None else level)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a GitPlex logger.

    Args:
        name: Logger name suffix (e.g., "http", "service"). If None, returns main logger.

    Returns:
        Logger instance
    """
    if name is None:
        return _sdk_logger
    return logging.getLogger(f"gitplex.{name}")


def mask_sensitive_data(text: str) -> str:
    """
    Mask credentials in a string.

    Args:
        text: Text that may contain tokens or authorization headers

    Returns:
        Text with sensitive data masked
    """
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def mask_token(token: str | None) -> str:
    """
    Produce a safe preview of a token, e.g. ``"ghp_...[REDACTED]"``.

    Short tokens are fully redacted.
    """
    if not token:
        return "none"
    if len(token) <= _TOKEN_PREVIEW_LENGTH * 3:
        return "[REDACTED]"
    return f"{token[:_TOKEN_PREVIEW_LENGTH]}...[REDACTED]"


def safe_log_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """
    Create a copy of a dictionary with sensitive values masked.

    Args:
        data: Dictionary that may contain sensitive values
        sensitive_keys: Set of lower-case keys to mask (default: authorization,
            private-token, token, password, secret, api_key)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if sensitive_keys is None:
        sensitive_keys = _DEFAULT_SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if key_lower in sensitive_keys or any(sk in key_lower for sk in sensitive_keys):
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = safe_log_dict(value, sensitive_keys)
        elif isinstance(value, list):
            result[key] = [
                safe_log_dict(item, sensitive_keys) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value

    return result


def log_http_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    body: dict[str, Any] | None = None,
) -> None:
    """
    Log an HTTP request at DEBUG level with credentials masked.

    Args:
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        headers: Request headers (optional)
        params: Query parameters (optional)
        body: Request body (optional)
    """
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"{method} {url}"]

    if headers:
        log_parts.append(f"headers={safe_log_dict(dict(headers))}")

    if params:
        log_parts.append(f"params={params}")

    if body:
        log_parts.append(f"body={safe_log_dict(body)}")

    _http_logger.debug(" | ".join(log_parts))


def log_http_response(
    status_code: int,
    url: str,
    elapsed_ms: float | None = None,
    rate_limit_remaining: str | None = None,
) -> None:
    """
    Log an HTTP response at DEBUG level.

    Args:
        status_code: HTTP status code
        url: Request URL
        elapsed_ms: Request duration in milliseconds (optional)
        rate_limit_remaining: Remaining rate-limit budget reported by the platform (optional)
    """
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"Response {status_code} from {url}"]

    if elapsed_ms is not None:
        log_parts.append(f"elapsed={elapsed_ms:.2f}ms")

    if rate_limit_remaining is not None:
        log_parts.append(f"rate_limit_remaining={rate_limit_remaining}")

    _http_logger.debug(" | ".join(log_parts))


def log_cache_event(event: str, key: str, detail: str | None = None) -> None:
    """
    Log a response cache event at DEBUG level.

    Args:
        event: Event name ("hit", "miss", "store", "expire", "invalidate")
        key: Cache key or prefix involved
        detail: Extra context (optional)
    """
    if not _cache_logger.isEnabledFor(logging.DEBUG):
        return

    message = f"cache {event}: {key}"
    if detail:
        message = f"{message} | {detail}"
    _cache_logger.debug(message)


__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "mask_token",
    "safe_log_dict",
    "log_http_request",
    "log_http_response",
    "log_cache_event",
]
