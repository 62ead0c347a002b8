"""Normalization of platform pagination and rate-limit headers."""

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

from gitplex.types.common import Pagination, RateLimit

_LINK_PATTERN = re.compile(r'<([^>]+)>\s*;\s*rel="([^"]+)"')


def parse_link_header(link_header: str | None) -> dict[str, int]:
    """Map each ``rel`` of an RFC 8288 Link header to its ``page`` query value."""
    links: dict[str, int] = {}
    if not link_header:
        return links
    for url, rel in _LINK_PATTERN.findall(link_header):
        page = parse_qs(urlsplit(url).query).get("page")
        if page:
            try:
                links[rel] = int(page[0])
            except ValueError:
                continue
    return links


def link_pagination(link_header: str | None, page: int, per_page: int) -> Pagination:
    """
    Pagination from a link-header style response (GitHub).

    The total item count is not reported (0); the page count is known only
    when a ``last`` link is present or when this is the final page.
    """
    links = parse_link_header(link_header)
    has_next = "next" in links
    if "last" in links:
        total_pages = links["last"]
    elif not has_next:
        total_pages = page
    else:
        total_pages = 0
    return Pagination(
        page=page,
        per_page=per_page,
        total=0,
        total_pages=total_pages,
        has_next=has_next,
        has_prev="prev" in links or page > 1,
    )


def numeric_pagination(headers: Mapping[str, str], page: int, per_page: int) -> Pagination:
    """Pagination from numeric ``X-Page``/``X-Total`` style headers (GitLab)."""
    page = _int_header(headers, "X-Page", page)
    per_page = _int_header(headers, "X-Per-Page", per_page)
    total = _int_header(headers, "X-Total", 0)
    total_pages = _int_header(headers, "X-Total-Pages", 0)
    next_page = headers.get("X-Next-Page")
    prev_page = headers.get("X-Prev-Page")
    return Pagination(
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
        has_next=bool(next_page) if next_page is not None else page < total_pages,
        has_prev=bool(prev_page) if prev_page is not None else page > 1,
    )


def search_pagination(total_count: int, page: int, per_page: int) -> Pagination:
    """Pagination for search endpoints that report ``total_count`` in the body."""
    total_pages = -(-total_count // per_page) if per_page else 0
    return Pagination(
        page=page,
        per_page=per_page,
        total=total_count,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def rate_limit_from_headers(headers: Mapping[str, str], prefix: str = "X-RateLimit-") -> RateLimit | None:
    """Read ``<prefix>Limit/Remaining/Reset``; None when the platform sent none."""
    limit = headers.get(f"{prefix}Limit")
    remaining = headers.get(f"{prefix}Remaining")
    if limit is None or remaining is None:
        return None
    try:
        reset = datetime.fromtimestamp(int(headers.get(f"{prefix}Reset", "0")), tz=timezone.utc)
        return RateLimit(limit=int(limit), remaining=int(remaining), reset=reset)
    except ValueError:
        return None


def _int_header(headers: Mapping[str, str], name: str, default: int) -> int:
    value = headers.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default
