"""Commitment & Reminder Tracker - promises-to-pay, reminder state and credit history rollups"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError

from credit_ledger.domain.credit_history import summarize_period
from credit_ledger.domain.exceptions import (
    ConcurrencyConflict,
    CreditSaleClosed,
    DomainException,
    NotFound,
    ValidationError,
)
from credit_ledger.domain.models import (
    CommitmentStatus,
    CommitmentView,
    CreditHistorySummary,
    CreditStatus,
    ReminderType,
    ReminderView,
    SweepResult,
)
from credit_ledger.domain.reconciliation import commitment_met
from credit_ledger.infrastructure.database.models import (
    CustomerCreditHistory,
    PaymentCommitment,
    PaymentReminder,
)
from credit_ledger.infrastructure.database.repositories import LedgerRepository
from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.infrastructure.observability.logging import log_sweep, report_rejection
from credit_ledger.infrastructure.observability.metrics import commitment_resolved_counter
from credit_ledger.services.reconciler import (
    reconcile_credit_sale,
    to_commitment_view,
    to_reminder_view,
)
from credit_ledger.utils.date_utils import period_bounds

CLOSED_STATUSES = (CreditStatus.PAID.value, CreditStatus.WRITTEN_OFF.value)


def commitment_satisfied(repo: LedgerRepository, commitment: PaymentCommitment) -> bool:
    """Net payments on the sale dated on or before the promised date cover the promise"""
    paid_through = repo.sum_payments(commitment.credit_sale_id, through=commitment.promised_date)
    return commitment_met(commitment.promised_amount_cents, paid_through)


def resolve_commitment(commitment: PaymentCommitment, status: CommitmentStatus, resolved_on: date) -> None:
    commitment.status = status.value
    commitment.resolved_on = resolved_on


def _parse_reminder_type(reminder_type) -> ReminderType:
    try:
        return ReminderType(reminder_type)
    except ValueError:
        allowed = ", ".join(t.value for t in ReminderType)
        raise ValidationError(f"Unknown reminder type {reminder_type!r}, expected one of {allowed}")


class CommitmentTracker:
    """Records promises and reminders, and resolves promises when they fall due"""

    def __init__(self, store: LedgerStore):
        self.store = store

    def record_commitment(
        self,
        tenant_id: str,
        credit_sale_id,
        promised_amount_cents: int,
        promised_date: date,
        notes: Optional[str] = None,
    ) -> CommitmentView:
        """
        Record a customer's promise to pay an amount by a date.

        The promise is measured against everything received on the sale up
        to the promised date, so it can never exceed the credit amount.
        """
        try:
            if (
                not isinstance(promised_amount_cents, int)
                or isinstance(promised_amount_cents, bool)
                or promised_amount_cents <= 0
            ):
                raise ValidationError(
                    f"Promised amount must be a positive whole number of cents, got {promised_amount_cents!r}"
                )
            if not isinstance(promised_date, date):
                raise ValidationError(f"Promised date must be a date, got {promised_date!r}")
            if promised_date < date.today():
                raise ValidationError(f"Promised date {promised_date} is in the past")

            with self.store.transaction(tenant_id) as repo:
                credit_sale = repo.lock_credit_sale(credit_sale_id)
                if credit_sale is None:
                    raise NotFound("Credit sale", credit_sale_id)
                if credit_sale.status in CLOSED_STATUSES:
                    raise CreditSaleClosed(credit_sale.id, credit_sale.status, "record a commitment")

                reconcile_credit_sale(repo, credit_sale)
                if promised_amount_cents > credit_sale.credit_amount_cents:
                    raise ValidationError(
                        f"Promised amount {promised_amount_cents} exceeds credit amount "
                        f"{credit_sale.credit_amount_cents}"
                    )

                commitment = repo.add(
                    PaymentCommitment(
                        credit_sale_id=credit_sale.id,
                        promised_amount_cents=promised_amount_cents,
                        promised_date=promised_date,
                        status=CommitmentStatus.PENDING.value,
                        notes=notes,
                    )
                )
                return to_commitment_view(commitment)

        except DomainException as e:
            report_rejection(tenant_id, e, credit_sale_id=credit_sale_id)
            raise

    def sweep_overdue_commitments(self, tenant_id: str, as_of: date) -> SweepResult:
        """
        Resolve every PENDING commitment whose promised date is before `as_of`.

        Met promises become KEPT, unmet ones BROKEN. Already resolved
        commitments are not touched, so repeating a sweep is a no-op.
        """
        result = SweepResult(as_of=as_of)
        with self.store.transaction(tenant_id) as repo:
            for commitment in repo.lock_pending_commitments_due_before(as_of):
                if commitment_satisfied(repo, commitment):
                    resolve_commitment(commitment, CommitmentStatus.KEPT, as_of)
                    result.kept.append(commitment.id)
                else:
                    resolve_commitment(commitment, CommitmentStatus.BROKEN, as_of)
                    result.broken.append(commitment.id)

        commitment_resolved_counter.labels(status=CommitmentStatus.KEPT.value).inc(len(result.kept))
        commitment_resolved_counter.labels(status=CommitmentStatus.BROKEN.value).inc(len(result.broken))
        log_sweep(repo.tenant_id, as_of.isoformat(), kept=len(result.kept), broken=len(result.broken))
        return result

    def record_reminder(
        self,
        tenant_id: str,
        credit_sale_id,
        reminder_type,
        scheduled_date: Optional[date] = None,
    ) -> ReminderView:
        try:
            kind = _parse_reminder_type(reminder_type)
            with self.store.transaction(tenant_id) as repo:
                credit_sale = repo.get_credit_sale(credit_sale_id)
                if credit_sale is None:
                    raise NotFound("Credit sale", credit_sale_id)
                if credit_sale.status in CLOSED_STATUSES:
                    raise CreditSaleClosed(credit_sale.id, credit_sale.status, "schedule a reminder")

                reminder = repo.add(
                    PaymentReminder(
                        credit_sale_id=credit_sale.id,
                        reminder_type=kind.value,
                        scheduled_date=scheduled_date or date.today(),
                        sent=False,
                        response_received=False,
                    )
                )
                return to_reminder_view(reminder)

        except DomainException as e:
            report_rejection(tenant_id, e, credit_sale_id=credit_sale_id)
            raise

    def mark_reminder_sent(
        self,
        tenant_id: str,
        reminder_id,
        sent_via: str,
        sent_at: Optional[datetime] = None,
    ) -> ReminderView:
        try:
            if not sent_via or not sent_via.strip():
                raise ValidationError("Reminder channel is required")
            with self.store.transaction(tenant_id) as repo:
                reminder = repo.lock_reminder(reminder_id)
                if reminder is None:
                    raise NotFound("Reminder", reminder_id)
                if reminder.sent:
                    raise ValidationError(f"Reminder {reminder.id} was already sent")

                reminder.sent = True
                reminder.sent_via = sent_via.strip()
                reminder.sent_at = sent_at or datetime.now(timezone.utc)
                repo.flush()
                return to_reminder_view(reminder)

        except DomainException as e:
            report_rejection(tenant_id, e, reminder_id=reminder_id)
            raise

    def record_reminder_response(self, tenant_id: str, reminder_id, notes: Optional[str] = None) -> ReminderView:
        try:
            with self.store.transaction(tenant_id) as repo:
                reminder = repo.lock_reminder(reminder_id)
                if reminder is None:
                    raise NotFound("Reminder", reminder_id)
                if not reminder.sent:
                    raise ValidationError(f"Reminder {reminder.id} has not been sent yet")

                reminder.response_received = True
                reminder.response_notes = notes
                repo.flush()
                return to_reminder_view(reminder)

        except DomainException as e:
            report_rejection(tenant_id, e, reminder_id=reminder_id)
            raise

    def regenerate_credit_history(self, tenant_id: str, customer_id: str, period: str) -> CreditHistorySummary:
        """Recompute one customer's rollup for a month, overwriting any existing row"""
        try:
            try:
                start, end = period_bounds(period)
            except ValueError as e:
                raise ValidationError(str(e)) from e

            with self.store.transaction(tenant_id) as repo:
                if repo.get_customer(customer_id) is None:
                    raise NotFound("Customer", customer_id)

                summary = summarize_period(
                    period,
                    repo.credit_issued_between(customer_id, start, end),
                    repo.payment_facts_between(customer_id, start, end),
                )

                row = repo.get_credit_history(customer_id, period)
                if row is None:
                    row = CustomerCreditHistory(customer_id=str(customer_id), period=period)
                    _apply_summary(row, summary)
                    try:
                        repo.add(row)
                    except IntegrityError as e:
                        raise ConcurrencyConflict(
                            f"Credit history for {customer_id} {period} was regenerated concurrently"
                        ) from e
                else:
                    _apply_summary(row, summary)
                return summary

        except DomainException as e:
            report_rejection(tenant_id, e, customer_id=customer_id, period=period)
            raise


def _apply_summary(row: CustomerCreditHistory, summary: CreditHistorySummary) -> None:
    row.total_credit_cents = summary.total_credit_cents
    row.total_repaid_cents = summary.total_repaid_cents
    row.late_payment_count = summary.late_payment_count
    row.average_payment_delay_days = summary.average_payment_delay_days
    row.credit_score = summary.credit_score
