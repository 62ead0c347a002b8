"""
Tests for shared adapter plumbing: retry with backoff, result conversion and
credential handling.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gitplex.adapters.base import adapter_operation, parse_timestamp
from gitplex.adapters.github import GitHubAdapter
from gitplex.config import build_platform_config
from gitplex.exceptions import (
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from gitplex.testing import create_mock_auth
from gitplex.types import GitPlatform
from gitplex.types.options import PaginationOptions

# Test strategies
base_delay_strategy = st.floats(min_value=0.1, max_value=5.0)
attempt_strategy = st.integers(min_value=1, max_value=6)
retry_after_strategy = st.integers(min_value=1, max_value=120)


def _adapter(**overrides) -> GitHubAdapter:
    return GitHubAdapter(build_platform_config(GitPlatform.GITHUB, overrides))


class ProbeAdapter(GitHubAdapter):
    """GitHub adapter with one extra decorated operation."""

    @adapter_operation("Failed to probe")
    async def probe(self, owner: str, repo: str, outcome=None):
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@given(base_delay=base_delay_strategy, attempt=attempt_strategy)
@settings(max_examples=100)
def test_exponential_backoff_timing(base_delay: float, attempt: int) -> None:
    """
    The wait after the n-th failure is base * 2**(n-1), give or take the jitter.
    """
    adapter = _adapter(jitter=0.1, max_backoff=1000.0)
    expected = base_delay * (2 ** (attempt - 1))

    wait = adapter._get_backoff_time(attempt, base_delay, ServerError(ErrorCode.SERVER_ERROR, "boom"))

    assert expected * 0.9 - 1e-9 <= wait <= expected * 1.1 + 1e-9


@given(attempt=attempt_strategy)
@settings(max_examples=50)
def test_backoff_capped(attempt: int) -> None:
    adapter = _adapter(jitter=0.0, max_backoff=3.0)
    wait = adapter._get_backoff_time(attempt, 2.0, ServerError(ErrorCode.SERVER_ERROR, "boom"))
    assert wait <= 3.0


@given(retry_after=retry_after_strategy)
@settings(max_examples=50)
def test_retry_after_respected(retry_after: int) -> None:
    """
    A rate-limited response waits for the platform's Retry-After, capped at max_backoff.
    """
    adapter = _adapter(max_backoff=60.0)
    error = RateLimitedError(ErrorCode.RATE_LIMITED, "slow down", retry_after=float(retry_after))

    assert adapter._get_backoff_time(1, 1.0, error) == min(float(retry_after), 60.0)


class TestWithRetry:
    """Tests for BaseGitPlatformAdapter.with_retry."""

    async def test_transient_failures_then_success(self) -> None:
        adapter = _adapter(retry_attempts=3, retry_delay=1.0, jitter=0.0)
        operation = AsyncMock(
            side_effect=[ServerError(ErrorCode.SERVER_ERROR, "boom"), ServerError(ErrorCode.SERVER_ERROR, "boom"), "done"]
        )

        with patch("gitplex.adapters.base.asyncio") as mock_asyncio:
            mock_asyncio.sleep = AsyncMock()
            result = await adapter.with_retry(operation)

        assert result == "done"
        assert operation.await_count == 3
        assert [c.args[0] for c in mock_asyncio.sleep.await_args_list] == [1.0, 2.0]
        await adapter.close()

    async def test_gives_up_after_max_attempts(self) -> None:
        adapter = _adapter(retry_attempts=3, retry_delay=0.0)
        operation = AsyncMock(side_effect=ServerError(ErrorCode.SERVER_ERROR, "still down"))

        with pytest.raises(ServerError):
            await adapter.with_retry(operation)

        assert operation.await_count == 3
        await adapter.close()

    async def test_non_transient_not_retried(self) -> None:
        adapter = _adapter(retry_attempts=5, retry_delay=0.0)
        operation = AsyncMock(side_effect=NotFoundError(ErrorCode.NOT_FOUND, "gone"))

        with pytest.raises(NotFoundError):
            await adapter.with_retry(operation)

        assert operation.await_count == 1
        await adapter.close()

    async def test_explicit_attempts_override_config(self) -> None:
        adapter = _adapter(retry_attempts=5, retry_delay=0.0)
        operation = AsyncMock(side_effect=ServerError(ErrorCode.SERVER_ERROR, "boom"))

        with pytest.raises(ServerError):
            await adapter.with_retry(operation, max_attempts=1)

        assert operation.await_count == 1
        await adapter.close()


class TestAdapterOperation:
    """The decorator turns exceptions into error results."""

    async def test_plain_data_wrapped(self) -> None:
        adapter = ProbeAdapter()
        result = await adapter.probe("octo", "hello", outcome=[1, 2])

        assert result.success
        assert result.data == [1, 2]
        assert result.platform is GitPlatform.GITHUB
        await adapter.close()

    async def test_gitplex_error_converted(self) -> None:
        adapter = ProbeAdapter()
        error = ValidationError(ErrorCode.VALIDATION_FAILED, "Reference already exists", 422, {"errors": []})

        result = await adapter.probe("octo", "hello", outcome=error)

        assert not result.success
        assert result.error_code == ErrorCode.VALIDATION_FAILED
        assert result.error.message == "Failed to probe: Reference already exists"
        assert result.error.repository == "octo/hello"
        assert result.error.details == {"status_code": 422, "context": {"errors": []}}
        await adapter.close()

    async def test_unexpected_error_becomes_unknown(self) -> None:
        adapter = ProbeAdapter()

        result = await adapter.probe("octo", "hello", outcome=KeyError("default_branch"))

        assert result.error_code == ErrorCode.UNKNOWN_ERROR
        assert result.error.details == {"exception": "KeyError"}
        await adapter.close()

    async def test_not_implemented(self) -> None:
        adapter = _adapter()
        result = adapter.not_implemented("search_commits")

        assert result.error_code == ErrorCode.NOT_IMPLEMENTED
        assert result.error.details == {"capability": "search_commits"}
        assert "github" in result.error.message
        await adapter.close()


class TestCredentials:
    """Credential handling and validation."""

    async def test_platform_mismatch(self) -> None:
        adapter = _adapter()
        with pytest.raises(ConfigurationError):
            adapter.set_auth(create_mock_auth(GitPlatform.GITLAB))
        await adapter.close()

    async def test_clear_auth(self) -> None:
        adapter = _adapter()
        adapter.set_auth(create_mock_auth())
        assert adapter.is_authenticated
        adapter.clear_auth()
        assert not adapter.is_authenticated
        assert not adapter.transport.has_token
        await adapter.close()

    async def test_operation_without_credential(self) -> None:
        adapter = _adapter()
        result = await adapter.get_current_user()
        assert result.error_code == ErrorCode.AUTHENTICATION_FAILED
        await adapter.close()

    @pytest.mark.parametrize(
        ("status", "expected"),
        [(200, True), (401, False), (403, False)],
    )
    async def test_validate_auth(self, status: int, expected: bool) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(status, json={"login": "octocat"}))
        adapter = GitHubAdapter(build_platform_config(GitPlatform.GITHUB), http_transport=transport)
        adapter.set_auth(create_mock_auth())

        result = await adapter.validate_auth()

        assert result.success
        assert result.data is expected
        await adapter.close()

    async def test_validate_auth_without_credential(self) -> None:
        adapter = _adapter()
        result = await adapter.validate_auth()
        assert result.success
        assert result.data is False
        await adapter.close()

    async def test_validate_auth_server_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"message": "down"}))
        adapter = GitHubAdapter(
            build_platform_config(GitPlatform.GITHUB, {"retry_delay": 0.0}), http_transport=transport
        )
        adapter.set_auth(create_mock_auth())

        result = await adapter.validate_auth()

        assert not result.success
        assert result.error_code == ErrorCode.SERVER_ERROR
        await adapter.close()


class TestCheckConnection:
    """Reachability is independent of the credential."""

    async def test_rejected_credential_still_reachable(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "Bad credentials"}))
        adapter = GitHubAdapter(http_transport=transport)

        result = await adapter.check_connection()

        assert result.success and result.data is True
        await adapter.close()

    async def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        adapter = GitHubAdapter(http_transport=httpx.MockTransport(handler))

        result = await adapter.check_connection()

        assert result.success and result.data is False
        await adapter.close()


class TestHelpers:
    """Small helpers."""

    async def test_page_params(self) -> None:
        adapter = _adapter()
        assert adapter.page_params(None) == (1, 30)
        assert adapter.page_params(PaginationOptions(page=3, per_page=500)) == (3, 100)
        await adapter.close()

    def test_parse_timestamp(self) -> None:
        assert parse_timestamp("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert parse_timestamp("2024-01-15T10:30:00.000+00:00").tzinfo is not None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
