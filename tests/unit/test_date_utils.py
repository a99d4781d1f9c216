"""Unit tests for date helpers"""

import pytest
from datetime import date
from credit_ledger.utils.date_utils import add_days, days_between, period_bounds


def test_add_days_crosses_month_end():
    assert add_days(date(2026, 1, 20), 30) == date(2026, 2, 19)


def test_days_between_is_signed():
    assert days_between(date(2026, 3, 1), date(2026, 3, 11)) == 10
    assert days_between(date(2026, 3, 11), date(2026, 3, 1)) == -10


def test_period_bounds_half_open_month():
    assert period_bounds("2026-02") == (date(2026, 2, 1), date(2026, 3, 1))


def test_period_bounds_december_rolls_year():
    assert period_bounds("2025-12") == (date(2025, 12, 1), date(2026, 1, 1))


@pytest.mark.parametrize("bad", ["2026-13", "2026-00", "2026-3", "March 2026", ""])
def test_period_bounds_rejects_malformed(bad):
    with pytest.raises(ValueError):
        period_bounds(bad)
