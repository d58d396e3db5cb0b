"""Tests for loan lifecycle transitions and item enums."""

import pytest

from lmsctl.domain.lifecycle import LOAN_TRANSITIONS, LoanStatus, is_valid_transition
from lmsctl.domain.types import AvailabilityStatus, ItemKind


class TestLoanStatus:
    def test_members(self) -> None:
        assert {s.value for s in LoanStatus} == {"active", "returned"}

    def test_transitions(self) -> None:
        assert is_valid_transition("active", "returned", LOAN_TRANSITIONS)
        assert not is_valid_transition("returned", "active", LOAN_TRANSITIONS)
        assert not is_valid_transition("returned", "returned", LOAN_TRANSITIONS)
        assert not is_valid_transition("unknown", "returned", LOAN_TRANSITIONS)


class TestAvailabilityStatus:
    def test_values_match_storage_encoding(self) -> None:
        assert [int(s) for s in AvailabilityStatus] == [0, 1, 2, 3]

    def test_label(self) -> None:
        assert AvailabilityStatus.MAINTENANCE.label == "Maintenance"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("borrowed", AvailabilityStatus.BORROWED),
            ("RESERVED", AvailabilityStatus.RESERVED),
            ("3", AvailabilityStatus.MAINTENANCE),
            (0, AvailabilityStatus.AVAILABLE),
        ],
    )
    def test_parse(self, raw: str | int, expected: AvailabilityStatus) -> None:
        assert AvailabilityStatus.parse(raw) is expected

    def test_parse_unknown(self) -> None:
        with pytest.raises(KeyError):
            AvailabilityStatus.parse("lost")
        with pytest.raises(ValueError):
            AvailabilityStatus.parse("7")

    def test_item_kind_serialization(self) -> None:
        assert str(ItemKind.BOOK) == "Book"
