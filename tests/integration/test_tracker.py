"""Integration tests for commitments, reminders and credit history"""

import pytest
from datetime import date, datetime, timedelta, timezone
from credit_ledger.domain.exceptions import CreditSaleClosed, NotFound, ValidationError
from credit_ledger.domain.models import CommitmentStatus, ReminderType
from credit_ledger.infrastructure.database.models import CreditPayment

TENANT = "shop-1"


@pytest.fixture
def sale(services, add_customer):
    add_customer("cust-1", credit_limit_cents=100000)
    return services.issuance.issue_credit(TENANT, "cust-1", "sale-1", 80000)


# Commitments


def test_record_commitment_pending(services, sale, today):
    commitment = services.tracker.record_commitment(TENANT, sale.id, 30000, today + timedelta(days=5), notes="after harvest")

    assert commitment.status == CommitmentStatus.PENDING
    assert commitment.promised_amount_cents == 30000
    assert commitment.resolved_on is None
    assert commitment.notes == "after harvest"


def test_commitment_validation(services, sale, today):
    with pytest.raises(ValidationError):
        services.tracker.record_commitment(TENANT, sale.id, 0, today)
    with pytest.raises(ValidationError):
        services.tracker.record_commitment(TENANT, sale.id, 1000, today - timedelta(days=1))
    with pytest.raises(ValidationError, match="exceeds credit amount"):
        services.tracker.record_commitment(TENANT, sale.id, 90000, today)
    with pytest.raises(ValidationError, match="whole number"):
        services.tracker.record_commitment(TENANT, sale.id, 100.5, today)
    with pytest.raises(ValidationError, match="whole number"):
        services.tracker.record_commitment(TENANT, sale.id, None, today)
    with pytest.raises(ValidationError, match="whole number"):
        services.tracker.record_commitment(TENANT, sale.id, True, today)
    with pytest.raises(NotFound):
        services.tracker.record_commitment(TENANT, "missing", 1000, today)


def test_commitment_rejected_on_paid_sale(services, sale, today):
    services.payments.apply_payment(TENANT, sale.id, 80000, "CASH")
    with pytest.raises(CreditSaleClosed):
        services.tracker.record_commitment(TENANT, sale.id, 1000, today)


def test_payment_keeps_commitment(services, sale, today):
    commitment = services.tracker.record_commitment(TENANT, sale.id, 30000, today + timedelta(days=5))

    first = services.payments.apply_payment(TENANT, sale.id, 20000, "CASH")
    assert first.kept_commitment_ids == []

    second = services.payments.apply_payment(TENANT, sale.id, 10000, "CASH")
    assert second.kept_commitment_ids == [commitment.id]

    stored = services.queries.list_commitments(TENANT, sale.id)[0]
    assert stored.status == CommitmentStatus.KEPT
    assert stored.resolved_on == today


def test_money_paid_before_the_promise_counts(services, sale, today):
    services.payments.apply_payment(TENANT, sale.id, 50000, "CASH")
    commitment = services.tracker.record_commitment(TENANT, sale.id, 20000, today)

    result = services.tracker.sweep_overdue_commitments(TENANT, today + timedelta(days=1))

    assert result.kept == [commitment.id]
    assert result.broken == []


def test_payment_completing_promise_keeps_it(services, add_customer, today):
    add_customer("cust-2", credit_limit_cents=200000)
    sale = services.issuance.issue_credit(TENANT, "cust-2", "sale-2", 100000)
    services.payments.apply_payment(TENANT, sale.id, 50000, "CASH")
    commitment = services.tracker.record_commitment(TENANT, sale.id, 30000, today + timedelta(days=5))

    receipt = services.payments.apply_payment(TENANT, sale.id, 10000, "CASH")

    assert receipt.kept_commitment_ids == [commitment.id]
    assert services.queries.list_commitments(TENANT, sale.id)[0].status == CommitmentStatus.KEPT


def test_promise_above_paid_total_waits_for_more_money(services, sale, today):
    services.payments.apply_payment(TENANT, sale.id, 20000, "CASH")
    commitment = services.tracker.record_commitment(TENANT, sale.id, 50000, today + timedelta(days=5))

    first = services.payments.apply_payment(TENANT, sale.id, 20000, "CASH")
    second = services.payments.apply_payment(TENANT, sale.id, 10000, "UPI")

    assert first.kept_commitment_ids == []
    assert second.kept_commitment_ids == [commitment.id]


def test_sweep_breaks_unmet_and_is_idempotent(services, sale, today):
    commitment = services.tracker.record_commitment(TENANT, sale.id, 30000, today)
    later = services.tracker.record_commitment(TENANT, sale.id, 10000, today + timedelta(days=10))

    first = services.tracker.sweep_overdue_commitments(TENANT, today + timedelta(days=1))
    second = services.tracker.sweep_overdue_commitments(TENANT, today + timedelta(days=1))

    assert first.broken == [commitment.id]
    assert second.broken == [] and second.kept == []

    statuses = {c.id: c.status for c in services.queries.list_commitments(TENANT, sale.id)}
    assert statuses[commitment.id] == CommitmentStatus.BROKEN
    assert statuses[later.id] == CommitmentStatus.PENDING


def test_sweep_keeps_commitment_met_by_imported_payment(services, store, sale, today):
    """A payment that landed without going through apply_payment is still honoured by the sweep"""
    commitment = services.tracker.record_commitment(TENANT, sale.id, 30000, today)
    with store.transaction(TENANT) as repo:
        repo.add(CreditPayment(credit_sale_id=sale.id, amount_cents=30000, payment_date=today, method="CASH"))

    result = services.tracker.sweep_overdue_commitments(TENANT, today + timedelta(days=1))

    assert result.kept == [commitment.id]
    assert result.broken == []


def test_sweep_ignores_late_payment(services, store, sale, today):
    services.tracker.record_commitment(TENANT, sale.id, 30000, today)
    with store.transaction(TENANT) as repo:
        repo.add(
            CreditPayment(
                credit_sale_id=sale.id, amount_cents=30000, payment_date=today + timedelta(days=2), method="CASH"
            )
        )

    result = services.tracker.sweep_overdue_commitments(TENANT, today + timedelta(days=3))

    assert len(result.broken) == 1


def test_sweep_is_tenant_scoped(services, sale, add_customer, today):
    add_customer("cust-x", tenant_id="shop-2")
    other = services.issuance.issue_credit("shop-2", "cust-x", "sale-x", 5000)
    services.tracker.record_commitment("shop-2", other.id, 5000, today)
    services.tracker.record_commitment(TENANT, sale.id, 5000, today)

    result = services.tracker.sweep_overdue_commitments(TENANT, today + timedelta(days=1))

    assert len(result.broken) == 1
    assert services.queries.list_commitments("shop-2", other.id)[0].status == CommitmentStatus.PENDING


# Reminders


def test_reminder_lifecycle(services, sale, today):
    reminder = services.tracker.record_reminder(TENANT, sale.id, "DUE_SOON", today + timedelta(days=2))
    assert reminder.reminder_type == ReminderType.DUE_SOON
    assert reminder.sent is False

    sent_at = datetime(2026, 3, 8, 10, 30, tzinfo=timezone.utc)
    reminder = services.tracker.mark_reminder_sent(TENANT, reminder.id, "WHATSAPP", sent_at=sent_at)
    assert reminder.sent is True
    assert reminder.sent_via == "WHATSAPP"

    reminder = services.tracker.record_reminder_response(TENANT, reminder.id, notes="Will pay Friday")
    assert reminder.response_received is True
    assert reminder.response_notes == "Will pay Friday"

    listed = services.queries.list_reminders(TENANT, sale.id)
    assert [r.id for r in listed] == [reminder.id]


def test_reminder_defaults_to_today(services, sale, today):
    reminder = services.tracker.record_reminder(TENANT, sale.id, ReminderType.FOLLOW_UP)
    assert reminder.scheduled_date == today


def test_reminder_state_rules(services, sale):
    reminder = services.tracker.record_reminder(TENANT, sale.id, "OVERDUE")

    with pytest.raises(ValidationError, match="not been sent"):
        services.tracker.record_reminder_response(TENANT, reminder.id)
    with pytest.raises(ValidationError):
        services.tracker.mark_reminder_sent(TENANT, reminder.id, "")

    services.tracker.mark_reminder_sent(TENANT, reminder.id, "SMS")
    with pytest.raises(ValidationError, match="already sent"):
        services.tracker.mark_reminder_sent(TENANT, reminder.id, "SMS")


def test_reminder_validation(services, sale):
    with pytest.raises(ValidationError, match="Unknown reminder type"):
        services.tracker.record_reminder(TENANT, sale.id, "CARRIER_PIGEON")
    with pytest.raises(NotFound):
        services.tracker.mark_reminder_sent(TENANT, "nope", "SMS")


def test_reminder_not_scheduled_for_closed_sale(services, sale):
    services.payments.apply_payment(TENANT, sale.id, 80000, "CASH")
    with pytest.raises(CreditSaleClosed):
        services.tracker.record_reminder(TENANT, sale.id, "DUE_TODAY")


# Credit history


def test_regenerate_credit_history(services, add_customer):
    add_customer("cust-h", credit_limit_cents=200000)
    sale = services.issuance.issue_credit(
        TENANT, "cust-h", "sale-h", 100000, issued_on=date(2026, 3, 2), due_date=date(2026, 3, 10)
    )
    services.payments.apply_payment(TENANT, sale.id, 30000, "CASH", payment_date=date(2026, 3, 5))
    services.payments.apply_payment(TENANT, sale.id, 50000, "UPI", payment_date=date(2026, 3, 16))
    # Outside the period
    services.payments.apply_payment(TENANT, sale.id, 10000, "CASH", payment_date=date(2026, 4, 2))

    summary = services.tracker.regenerate_credit_history(TENANT, "cust-h", "2026-03")

    assert summary.total_credit_cents == 100000
    assert summary.total_repaid_cents == 80000
    assert summary.late_payment_count == 1
    assert summary.average_payment_delay_days == 3
    assert summary.credit_score == 73

    stored = services.queries.get_credit_history(TENANT, "cust-h", "2026-03")
    assert stored == summary


def test_regenerate_credit_history_overwrites(services, add_customer):
    add_customer("cust-h", credit_limit_cents=200000)
    sale = services.issuance.issue_credit(
        TENANT, "cust-h", "sale-h", 100000, issued_on=date(2026, 3, 2), due_date=date(2026, 3, 10)
    )
    first = services.tracker.regenerate_credit_history(TENANT, "cust-h", "2026-03")
    assert first.total_repaid_cents == 0

    services.payments.apply_payment(TENANT, sale.id, 100000, "CASH", payment_date=date(2026, 3, 9))
    second = services.tracker.regenerate_credit_history(TENANT, "cust-h", "2026-03")
    again = services.tracker.regenerate_credit_history(TENANT, "cust-h", "2026-03")

    assert second.total_repaid_cents == 100000
    assert second.credit_score == 100
    assert again == second
    assert services.queries.get_credit_history(TENANT, "cust-h", "2026-03") == second


def test_regenerate_credit_history_validation(services, add_customer):
    add_customer("cust-h")
    with pytest.raises(ValidationError):
        services.tracker.regenerate_credit_history(TENANT, "cust-h", "2026-13")
    with pytest.raises(NotFound):
        services.tracker.regenerate_credit_history(TENANT, "ghost", "2026-03")
    with pytest.raises(NotFound):
        services.queries.get_credit_history(TENANT, "cust-h", "2026-03")
