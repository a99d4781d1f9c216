"""Integration tests for dashboard reads and overdue refinement"""

import pytest
from datetime import timedelta
from credit_ledger.domain.exceptions import NotFound, ValidationError
from credit_ledger.domain.models import CreditStatus

TENANT = "shop-1"


@pytest.fixture
def overdue_sale(services, add_customer, today):
    """Issued 40 days ago on 30 day terms: ten days past due"""
    add_customer("cust-1", credit_limit_cents=100000)
    return services.issuance.issue_credit(
        TENANT, "cust-1", "sale-old", 40000, issued_on=today - timedelta(days=40), terms_in_days=30
    )


def test_overdue_is_computed_at_read_time(services, overdue_sale, today):
    view = services.queries.get_credit_sale(TENANT, overdue_sale.id)

    assert view.status == CreditStatus.OVERDUE
    assert view.stored_status == CreditStatus.OUTSTANDING

    # Viewed as of the due date it is not overdue yet
    view = services.queries.get_credit_sale(TENANT, overdue_sale.id, as_of=today - timedelta(days=10))
    assert view.status == CreditStatus.OUTSTANDING


def test_partially_paid_sale_reads_overdue(services, overdue_sale):
    services.payments.apply_payment(TENANT, overdue_sale.id, 10000, "CASH")

    view = services.queries.get_credit_sale(TENANT, overdue_sale.id)

    assert view.status == CreditStatus.OVERDUE
    assert view.stored_status == CreditStatus.PARTIALLY_PAID
    assert view.remaining_cents == 30000


def test_list_overdue(services, overdue_sale, today):
    services.issuance.issue_credit(TENANT, "cust-1", "sale-new", 10000)
    services.payments.apply_payment(TENANT, overdue_sale.id, 15000, "CASH")

    items = services.queries.list_overdue(TENANT, today)

    assert len(items) == 1
    assert items[0].credit_sale_id == overdue_sale.id
    assert items[0].remaining_cents == 25000
    assert items[0].days_overdue == 10


def test_paid_sale_is_never_overdue(services, overdue_sale, today):
    services.payments.apply_payment(TENANT, overdue_sale.id, 40000, "CASH")

    assert services.queries.list_overdue(TENANT, today) == []
    assert services.queries.get_credit_sale(TENANT, overdue_sale.id).status == CreditStatus.PAID


def test_list_credit_sales_for_customer_filters_by_effective_status(services, overdue_sale):
    fresh = services.issuance.issue_credit(TENANT, "cust-1", "sale-new", 10000)

    all_sales = services.queries.list_credit_sales_for_customer(TENANT, "cust-1")
    overdue = services.queries.list_credit_sales_for_customer(TENANT, "cust-1", status=CreditStatus.OVERDUE)
    outstanding = services.queries.list_credit_sales_for_customer(TENANT, "cust-1", status="OUTSTANDING")

    # Newest first
    assert [s.id for s in all_sales] == [fresh.id, overdue_sale.id]
    assert [s.id for s in overdue] == [overdue_sale.id]
    assert [s.id for s in outstanding] == [fresh.id]


def test_list_credit_sales_rejects_unknown_status(services, overdue_sale):
    with pytest.raises(ValidationError):
        services.queries.list_credit_sales_for_customer(TENANT, "cust-1", status="LOST")


def test_customer_balance(services, overdue_sale):
    services.payments.apply_payment(TENANT, overdue_sale.id, 10000, "CASH")

    balance = services.queries.get_customer_balance(TENANT, "cust-1")

    assert balance.outstanding_balance_cents == 30000
    assert balance.credit_limit_cents == 100000
    assert balance.available_credit_cents == 70000
    assert balance.open_credit_sales == 1


def test_missing_entities(services):
    with pytest.raises(NotFound):
        services.queries.get_credit_sale(TENANT, "00000000-0000-4000-8000-000000000000")
    with pytest.raises(NotFound):
        services.queries.get_customer_balance(TENANT, "ghost")
    with pytest.raises(NotFound):
        services.queries.list_credit_sales_for_customer(TENANT, "ghost")
    with pytest.raises(NotFound):
        services.queries.list_payments(TENANT, "junk")
