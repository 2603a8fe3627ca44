"""Unit tests for invoice status derivation."""

from datetime import datetime

import pytest

from services.importer.status import derive_status, map_harvest_state

NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.mark.parametrize("balance", ["0", "0.00", 0, 0.0, "", None])
def test_zero_balance_is_paid(balance: str | float | None) -> None:
    """Zero (or missing) balance means paid."""
    assert derive_status(balance, "2024-01-01", NOW) == "paid"


def test_zero_balance_wins_over_future_date() -> None:
    """A fully paid invoice stays paid even when dated in the future."""
    assert derive_status("0", "2030-01-01", NOW) == "paid"


def test_future_dated_with_balance_is_draft() -> None:
    """Future issue date with an outstanding balance means draft."""
    assert derive_status("100", "2024-07-01", NOW) == "draft"
    assert derive_status("1,250.00", "06/02/2024", NOW) == "draft"


def test_past_dated_with_balance_is_sent() -> None:
    """Past issue date with an outstanding balance means sent."""
    assert derive_status("100", "2024-01-01", NOW) == "sent"


def test_issued_today_is_sent() -> None:
    """An invoice issued today is not in the future."""
    assert derive_status("100", "2024-06-01", NOW) == "sent"


def test_unparsable_issue_date_is_sent() -> None:
    """Missing or bad issue dates fall through to sent."""
    assert derive_status("100", "", NOW) == "sent"
    assert derive_status("100", None, NOW) == "sent"
    assert derive_status("100", "abc", NOW) == "sent"


def test_negative_balance_is_not_paid() -> None:
    """Only an exact zero balance counts as paid."""
    assert derive_status("-5", "2024-01-01", NOW) == "sent"


def test_defaults_to_current_time() -> None:
    """Without an explicit reference time, far-future dates are drafts."""
    assert derive_status("100", "2999-01-01") == "draft"


@pytest.mark.parametrize(
    ("state", "expected"),
    [
        ("paid", "paid"),
        ("draft", "draft"),
        ("closed", "written_off"),
        ("open", "sent"),
        ("PAID", "paid"),
        ("", "sent"),
        (None, "sent"),
        ("something-new", "sent"),
    ],
)
def test_map_harvest_state(state: str | None, expected: str) -> None:
    """Harvest states map onto local statuses."""
    assert map_harvest_state(state) == expected
