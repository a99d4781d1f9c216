"""Balance Reconciler - derives credit sale status and customer balance from the payment ledger

Always runs inside the caller's transaction, against rows the caller has
locked. Balances are recomputed from the authoritative payment history on
every call, never adjusted incrementally.
"""

import logging
from datetime import date
from typing import Optional

from credit_ledger.domain.models import (
    CommitmentStatus,
    CommitmentView,
    CreditSaleView,
    CreditStatus,
    PaymentMethod,
    PaymentView,
    ReminderType,
    ReminderView,
)
from credit_ledger.domain.reconciliation import (
    compute_remaining,
    derive_status,
    effective_status,
    outstanding_balance,
)
from credit_ledger.infrastructure.database.models import (
    CreditPayment,
    CreditSale,
    Customer,
    PaymentCommitment,
    PaymentReminder,
)
from credit_ledger.infrastructure.database.repositories import LedgerRepository


def reconcile_credit_sale(repo: LedgerRepository, credit_sale: CreditSale) -> int:
    """Recompute remaining and stored status for one sale; returns remaining cents"""
    repo.ensure_owned(credit_sale)
    paid = repo.sum_payments(credit_sale.id)
    remaining = compute_remaining(credit_sale.credit_amount_cents, [paid])

    status = derive_status(credit_sale.credit_amount_cents, remaining, CreditStatus(credit_sale.status))
    if status.value != credit_sale.status:
        logging.debug(
            f"Credit sale {credit_sale.id} status {credit_sale.status} -> {status.value}",
            extra={"tenant_id": repo.tenant_id},
        )
        credit_sale.status = status.value
        repo.flush()

    return remaining


def reconcile_customer(repo: LedgerRepository, customer: Customer) -> int:
    """Set the customer's outstanding balance to the sum over their active sales"""
    repo.ensure_owned(customer)
    totals = repo.sale_totals_for_customer(customer.id)
    balance = outstanding_balance(
        (CreditStatus(status), compute_remaining(amount, [paid]))
        for status, amount, paid in totals
    )
    if customer.outstanding_balance_cents != balance:
        customer.outstanding_balance_cents = balance
        repo.flush()
    return balance


def to_credit_sale_view(credit_sale: CreditSale, paid_cents: int, as_of: Optional[date] = None) -> CreditSaleView:
    as_of = as_of or date.today()
    stored = CreditStatus(credit_sale.status)
    return CreditSaleView(
        id=credit_sale.id,
        sale_id=credit_sale.sale_id,
        customer_id=credit_sale.customer_id,
        credit_amount_cents=credit_sale.credit_amount_cents,
        paid_cents=paid_cents,
        remaining_cents=credit_sale.credit_amount_cents - paid_cents,
        issued_on=credit_sale.issued_on,
        due_date=credit_sale.due_date,
        terms_in_days=credit_sale.terms_in_days,
        interest_rate=credit_sale.interest_rate,
        status=effective_status(stored, credit_sale.due_date, as_of),
        stored_status=stored,
        approved_by=credit_sale.approved_by,
        notes=credit_sale.notes,
    )


def load_credit_sale_view(repo: LedgerRepository, credit_sale: CreditSale, as_of: Optional[date] = None) -> CreditSaleView:
    return to_credit_sale_view(credit_sale, repo.sum_payments(credit_sale.id), as_of)


def to_payment_view(payment: CreditPayment) -> PaymentView:
    return PaymentView(
        id=payment.id,
        credit_sale_id=payment.credit_sale_id,
        amount_cents=payment.amount_cents,
        payment_date=payment.payment_date,
        method=PaymentMethod(payment.method),
        received_by=payment.received_by,
        reference=payment.reference,
        notes=payment.notes,
        reverses_payment_id=payment.reverses_payment_id,
    )


def to_commitment_view(commitment: PaymentCommitment) -> CommitmentView:
    return CommitmentView(
        id=commitment.id,
        credit_sale_id=commitment.credit_sale_id,
        promised_amount_cents=commitment.promised_amount_cents,
        promised_date=commitment.promised_date,
        status=CommitmentStatus(commitment.status),
        resolved_on=commitment.resolved_on,
        notes=commitment.notes,
    )


def to_reminder_view(reminder: PaymentReminder) -> ReminderView:
    return ReminderView(
        id=reminder.id,
        credit_sale_id=reminder.credit_sale_id,
        reminder_type=ReminderType(reminder.reminder_type),
        scheduled_date=reminder.scheduled_date,
        sent=reminder.sent,
        sent_via=reminder.sent_via,
        sent_at=reminder.sent_at,
        response_received=reminder.response_received,
        response_notes=reminder.response_notes,
    )
