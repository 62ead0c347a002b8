"""
Tests for typed option objects.

Unknown keys and out-of-range enumerated values are rejected with
INVALID_OPTIONS rather than silently ignored.
"""

from datetime import datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gitplex.exceptions import ErrorCode, ValidationError
from gitplex.types import BranchStatus
from gitplex.types.options import (
    BranchFilter,
    BranchListOptions,
    CreateBranchOptions,
    DateRange,
    MergeBranchOptions,
    MergeRequestListOptions,
    PaginationOptions,
    RepositoryListOptions,
    coerce_options,
)

KNOWN_BRANCH_LIST_FIELDS = {"page", "per_page", "protected", "sort", "search", "include_commit_details"}


@given(key=st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=20))
@settings(max_examples=50)
def test_unknown_keys_rejected(key: str) -> None:
    """Any key that is not a field of the option type is rejected."""
    if key in KNOWN_BRANCH_LIST_FIELDS:
        return
    with pytest.raises(ValidationError) as exc_info:
        BranchListOptions.from_dict({key: 1})
    assert exc_info.value.code == ErrorCode.INVALID_OPTIONS
    assert key in exc_info.value.message


class TestChoices:
    """Enumerated fields only accept their documented values."""

    def test_invalid_merge_method(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            MergeBranchOptions(merge_method="octopus")
        assert exc_info.value.code == ErrorCode.INVALID_OPTIONS

    def test_invalid_state(self) -> None:
        with pytest.raises(ValidationError):
            MergeRequestListOptions(state="opened")

    def test_valid_values_accepted(self) -> None:
        options = RepositoryListOptions(visibility="private", sort="pushed", order="asc")
        assert options.visibility == "private"

    def test_page_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PaginationOptions(page=0)
        with pytest.raises(ValidationError):
            PaginationOptions(per_page=0)


class TestCreateBranchOptions:
    """Branch creation requires a name and a ref."""

    def test_blank_name(self) -> None:
        with pytest.raises(ValidationError):
            CreateBranchOptions(name="  ", ref="main")

    def test_blank_ref(self) -> None:
        with pytest.raises(ValidationError):
            CreateBranchOptions(name="feature/x", ref="")

    def test_missing_field_from_dict(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            CreateBranchOptions.from_dict({"name": "feature/x"})
        assert exc_info.value.code == ErrorCode.INVALID_OPTIONS


class TestCoerceOptions:
    """Tests for coerce_options."""

    def test_none_passes_through(self) -> None:
        assert coerce_options(BranchListOptions, None) is None

    def test_instance_passes_through(self) -> None:
        options = BranchListOptions(per_page=5)
        assert coerce_options(BranchListOptions, options) is options

    def test_mapping_is_converted(self) -> None:
        options = coerce_options(BranchListOptions, {"per_page": 5, "protected": True})
        assert isinstance(options, BranchListOptions)
        assert options.per_page == 5
        assert options.protected is True

    def test_other_types_rejected(self) -> None:
        with pytest.raises(ValidationError):
            coerce_options(BranchListOptions, ["per_page", 5])


class TestBranchFilter:
    """Tests for BranchFilter construction."""

    def test_defaults(self) -> None:
        f = BranchFilter()
        assert f.search == ""
        assert f.status == []
        assert f.sort_by == "updated"
        assert f.sort_order == "desc"

    def test_status_strings_become_enums(self) -> None:
        f = BranchFilter.from_dict({"status": ["active", "stale"]})
        assert f.status == [BranchStatus.ACTIVE, BranchStatus.STALE]

    def test_unknown_status(self) -> None:
        with pytest.raises(ValidationError):
            BranchFilter(status=["archived"])

    def test_date_range_mapping(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 2, 1, tzinfo=timezone.utc)
        f = BranchFilter.from_dict({"date_range": {"start": start, "end": end}})
        assert f.date_range == DateRange(start=start, end=end)

    def test_invalid_sort_key(self) -> None:
        with pytest.raises(ValidationError):
            BranchFilter(sort_by="size")
