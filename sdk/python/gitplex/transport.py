"""
Async HTTP Transport for GitPlex.

Handles authenticated HTTP communication with a platform REST API using an
httpx async client, and parses error responses into typed exceptions. Retry
policy lives in the adapter base class, so each call here is a single attempt.
"""

import time
from dataclasses import dataclass
from typing import Any

import httpx

from gitplex.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ErrorCode,
    GitPlexError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    TransportError,
    ValidationError,
)
from gitplex.logging import log_http_request, log_http_response


@dataclass
class HTTPResult:
    """A successful (2xx/3xx) response."""

    status_code: int
    data: Any
    headers: httpx.Headers


class AsyncHTTPTransport:
    """
    Async HTTP transport bound to one platform API.

    Handles:
    - Attaching the credential header to every request
    - Debug logging of requests and responses with credentials masked
    - Error response parsing into typed exceptions
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        auth_scheme: str | None = "Bearer",
        auth_header: str = "Authorization",
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize async HTTP transport.

        Args:
            base_url: Base URL for API requests (e.g., "https://api.github.com")
            timeout: Request timeout in seconds
            headers: Extra default headers
            auth_scheme: Prefix of the credential value ("token", "Bearer"),
                or None to send the bare token
            auth_header: Name of the credential header
            http_transport: Custom httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.auth_scheme = auth_scheme
        self.auth_header = auth_header
        self._token: str | None = None

        default_headers = {"Accept": "application/json", "Content-Type": "application/json"}
        default_headers.update(headers or {})

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=default_headers,
            transport=http_transport,
        )

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def set_token(self, token: str | None) -> None:
        """Attach (or with None, detach) the credential for subsequent requests."""
        self._token = token
        if token is None:
            self._client.headers.pop(self.auth_header, None)
        elif self.auth_scheme:
            self._client.headers[self.auth_header] = f"{self.auth_scheme} {token}"
        else:
            self._client.headers[self.auth_header] = token

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> HTTPResult:
        """
        Make a single request.

        Args:
            method: HTTP method
            path: API path relative to the base URL
            params: Query parameters; None values are dropped
            json: Request body

        Returns:
            HTTPResult with the decoded body (None for empty bodies)

        Raises:
            GitPlexError: On error responses and transport failures
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        log_http_request(method, f"{self.base_url}{path}", dict(self._client.headers), params, json)
        started = time.perf_counter()

        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise TransportError(ErrorCode.TIMEOUT, f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            raise TransportError(ErrorCode.NETWORK_ERROR, f"Network error: {e}") from e

        log_http_response(
            response.status_code,
            str(response.url),
            (time.perf_counter() - started) * 1000,
            response.headers.get("X-RateLimit-Remaining") or response.headers.get("RateLimit-Remaining"),
        )

        if response.status_code >= 400:
            raise self._parse_error_response(response)

        return HTTPResult(response.status_code, self._decode(response), response.headers)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> HTTPResult:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> HTTPResult:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None, params: dict[str, Any] | None = None) -> HTTPResult:
        return await self.request("PUT", path, params=params, json=json)

    async def patch(self, path: str, json: Any = None) -> HTTPResult:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str, json: Any = None, params: dict[str, Any] | None = None) -> HTTPResult:
        return await self.request("DELETE", path, params=params, json=json)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _parse_error_response(self, response: httpx.Response) -> GitPlexError:
        """
        Parse an error response into a typed exception.

        Args:
            response: HTTP response with error status

        Returns:
            Appropriate GitPlexError subclass
        """
        data = self._decode(response)
        if not isinstance(data, dict):
            data = {"message": data} if data else {}

        message = _error_message(data) or f"HTTP {response.status_code}"
        details = {k: v for k, v in data.items() if k in ("errors", "documentation_url", "error")} or None
        status_code = response.status_code

        if status_code == 401:
            return AuthenticationError(ErrorCode.AUTHENTICATION_FAILED, message, status_code, details)
        elif status_code == 403:
            remaining = response.headers.get("X-RateLimit-Remaining")
            if remaining == "0" or "retry-after" in response.headers:
                return RateLimitedError(
                    ErrorCode.RATE_LIMITED, message, _retry_after(response), status_code
                )
            return AuthorizationError(ErrorCode.FORBIDDEN, message, status_code, details)
        elif status_code == 404:
            return NotFoundError(ErrorCode.NOT_FOUND, message, status_code, details)
        elif status_code == 409:
            return ConflictError(ErrorCode.CONFLICT, message, status_code, details)
        elif status_code == 429:
            return RateLimitedError(ErrorCode.RATE_LIMITED, message, _retry_after(response), status_code)
        elif status_code >= 500:
            return ServerError(ErrorCode.SERVER_ERROR, message, status_code, details)
        else:
            return ValidationError(ErrorCode.VALIDATION_FAILED, message, status_code, details)


def _error_message(data: dict[str, Any]) -> str | None:
    for key in ("message", "error_description", "error"):
        value = data.get(key)
        if not value:
            continue
        if isinstance(value, str):
            return value
        # GitLab reports field errors as {"field": ["reason", ...]}
        if isinstance(value, dict):
            return "; ".join(
                f"{field} {', '.join(map(str, reasons)) if isinstance(reasons, list) else reasons}"
                for field, reasons in value.items()
            )
        if isinstance(value, list):
            return "; ".join(map(str, value))
        return str(value)
    return None


def _retry_after(response: httpx.Response) -> float | None:
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            pass
    reset = response.headers.get("X-RateLimit-Reset")
    if reset:
        try:
            return max(0.0, float(reset) - time.time())
        except ValueError:
            pass
    return None
