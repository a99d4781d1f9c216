"""Balance and status arithmetic for credit sales - pure functions, no I/O"""

from datetime import date
from typing import Iterable

from credit_ledger.domain.exceptions import LedgerIntegrityError
from credit_ledger.domain.models import CreditStatus
from credit_ledger.utils.date_utils import days_between

# Statuses a sale can still be paid against; OVERDUE refines exactly these
OPEN_STATUSES = (CreditStatus.OUTSTANDING, CreditStatus.PARTIALLY_PAID)


def compute_remaining(credit_amount_cents: int, payment_amounts: Iterable[int]) -> int:
    """
    Remaining balance of a credit sale from its full payment history.

    Reversal entries are negative, so they add back to the remainder.

    Raises:
        LedgerIntegrityError: if payments exceed the credit or reversals push
            the remainder above the original amount
    """
    paid = sum(payment_amounts)
    remaining = credit_amount_cents - paid

    if remaining < 0:
        raise LedgerIntegrityError(
            f"Payments ({paid}) exceed credit amount ({credit_amount_cents})"
        )
    if remaining > credit_amount_cents:
        raise LedgerIntegrityError(
            f"Net payments are negative ({paid}) for credit amount {credit_amount_cents}"
        )
    return remaining


def derive_status(credit_amount_cents: int, remaining_cents: int, current: CreditStatus) -> CreditStatus:
    """
    Map a remainder onto the stored status.

    - WRITTEN_OFF is terminal and kept regardless of the remainder
    - 0 remaining -> PAID
    - 0 < remaining < credit -> PARTIALLY_PAID
    - remaining == credit -> OUTSTANDING
    """
    if current == CreditStatus.WRITTEN_OFF:
        return CreditStatus.WRITTEN_OFF
    if remaining_cents == 0:
        return CreditStatus.PAID
    if remaining_cents < credit_amount_cents:
        return CreditStatus.PARTIALLY_PAID
    return CreditStatus.OUTSTANDING


def effective_status(stored: CreditStatus, due_date: date, as_of: date) -> CreditStatus:
    """Read-time view: an open sale past its due date reads as OVERDUE"""
    if stored in OPEN_STATUSES and due_date < as_of:
        return CreditStatus.OVERDUE
    return stored


def days_overdue(due_date: date, as_of: date) -> int:
    return max(0, days_between(due_date, as_of))


def outstanding_balance(remainders: Iterable[tuple[CreditStatus, int]]) -> int:
    """Customer balance: sum of remainders over sales that are not written off"""
    return sum(
        remaining for status, remaining in remainders
        if status != CreditStatus.WRITTEN_OFF
    )


def commitment_met(promised_amount_cents: int, paid_to_date_cents: int) -> bool:
    """A promise is met once the sale has received at least the promised amount"""
    return paid_to_date_cents >= promised_amount_cents
