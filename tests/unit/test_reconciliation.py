"""Unit tests for balance and status arithmetic"""

import pytest
from datetime import date, timedelta
from credit_ledger.domain.exceptions import LedgerIntegrityError
from credit_ledger.domain.models import CreditStatus
from credit_ledger.domain.reconciliation import (
    commitment_met,
    compute_remaining,
    days_overdue,
    derive_status,
    effective_status,
    outstanding_balance,
)


def test_compute_remaining_sums_full_history():
    assert compute_remaining(80000, [50000, 20000]) == 10000
    assert compute_remaining(80000, []) == 80000


def test_compute_remaining_reversal_adds_back():
    """A reversal is a negative entry and restores the remainder"""
    assert compute_remaining(80000, [50000, -50000]) == 80000


def test_compute_remaining_rejects_overpaid_history():
    with pytest.raises(LedgerIntegrityError):
        compute_remaining(80000, [50000, 40000])


def test_compute_remaining_rejects_negative_net_payments():
    with pytest.raises(LedgerIntegrityError):
        compute_remaining(80000, [-100])


@pytest.mark.parametrize(
    "remaining, expected",
    [
        (80000, CreditStatus.OUTSTANDING),
        (30000, CreditStatus.PARTIALLY_PAID),
        (0, CreditStatus.PAID),
    ],
)
def test_derive_status_from_remaining(remaining, expected):
    assert derive_status(80000, remaining, CreditStatus.OUTSTANDING) == expected


def test_derive_status_written_off_is_terminal():
    assert derive_status(80000, 0, CreditStatus.WRITTEN_OFF) == CreditStatus.WRITTEN_OFF
    assert derive_status(80000, 30000, CreditStatus.WRITTEN_OFF) == CreditStatus.WRITTEN_OFF


def test_derive_status_paid_reopens_after_reversal():
    assert derive_status(80000, 80000, CreditStatus.PAID) == CreditStatus.OUTSTANDING


def test_effective_status_refines_open_sales_past_due():
    due = date(2026, 3, 10)
    after = due + timedelta(days=1)

    assert effective_status(CreditStatus.OUTSTANDING, due, after) == CreditStatus.OVERDUE
    assert effective_status(CreditStatus.PARTIALLY_PAID, due, after) == CreditStatus.OVERDUE
    # Due today is not overdue yet
    assert effective_status(CreditStatus.OUTSTANDING, due, due) == CreditStatus.OUTSTANDING


def test_effective_status_leaves_closed_sales_alone():
    due = date(2026, 3, 10)
    later = date(2026, 6, 1)

    assert effective_status(CreditStatus.PAID, due, later) == CreditStatus.PAID
    assert effective_status(CreditStatus.WRITTEN_OFF, due, later) == CreditStatus.WRITTEN_OFF


def test_days_overdue_never_negative():
    due = date(2026, 3, 10)
    assert days_overdue(due, date(2026, 3, 20)) == 10
    assert days_overdue(due, date(2026, 3, 1)) == 0


def test_outstanding_balance_excludes_written_off():
    remainders = [
        (CreditStatus.OUTSTANDING, 80000),
        (CreditStatus.PARTIALLY_PAID, 30000),
        (CreditStatus.PAID, 0),
        (CreditStatus.WRITTEN_OFF, 50000),
    ]
    assert outstanding_balance(remainders) == 110000


def test_commitment_met_counts_everything_received_to_date():
    assert commitment_met(30000, paid_to_date_cents=30000) is True
    assert commitment_met(30000, paid_to_date_cents=20000) is False
    assert commitment_met(30000, paid_to_date_cents=0) is False
