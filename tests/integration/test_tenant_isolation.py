"""Integration tests for per-tenant scoping of every ledger entity"""

import pytest
from credit_ledger.domain.exceptions import NotFound, TenantIsolationError, TenantRequired
from credit_ledger.infrastructure.database.models import Customer

SHOP_A = "shop-a"
SHOP_B = "shop-b"


@pytest.fixture
def sale_a(services, add_customer):
    add_customer("cust-a", credit_limit_cents=100000, tenant_id=SHOP_A)
    return services.issuance.issue_credit(SHOP_A, "cust-a", "sale-1", 50000)


def test_other_tenant_cannot_see_sale(services, sale_a):
    with pytest.raises(NotFound):
        services.queries.get_credit_sale(SHOP_B, sale_a.id)
    with pytest.raises(NotFound):
        services.queries.list_payments(SHOP_B, sale_a.id)


def test_other_tenant_cannot_pay_or_write_off(services, sale_a, customer_balance):
    with pytest.raises(NotFound):
        services.payments.apply_payment(SHOP_B, sale_a.id, 1000, "CASH")
    with pytest.raises(NotFound):
        services.payments.write_off(SHOP_B, sale_a.id, approved_by="owner")

    assert customer_balance("cust-a", tenant_id=SHOP_A) == 50000


def test_other_tenant_cannot_issue_for_customer(services, sale_a):
    with pytest.raises(NotFound):
        services.issuance.issue_credit(SHOP_B, "cust-a", "sale-2", 1000)


def test_sale_id_uniqueness_is_per_tenant(services, sale_a, add_customer):
    add_customer("cust-b", tenant_id=SHOP_B)

    view = services.issuance.issue_credit(SHOP_B, "cust-b", "sale-1", 1000)

    assert view.sale_id == "sale-1"
    assert view.id != sale_a.id


def test_customer_id_is_unique_per_tenant(services, sale_a, add_customer, customer_balance):
    add_customer("cust-a", credit_limit_cents=20000, tenant_id=SHOP_B)

    view = services.issuance.issue_credit(SHOP_B, "cust-a", "sale-9", 15000)

    assert view.customer_id == "cust-a"
    assert customer_balance("cust-a", tenant_id=SHOP_A) == 50000
    assert customer_balance("cust-a", tenant_id=SHOP_B) == 15000
    history = services.tracker.regenerate_credit_history(SHOP_B, "cust-a", view.issued_on.strftime("%Y-%m"))
    assert history.total_credit_cents == 15000


def test_other_tenant_cannot_reverse_payment(services, sale_a):
    receipt = services.payments.apply_payment(SHOP_A, sale_a.id, 1000, "CASH")
    with pytest.raises(NotFound):
        services.payments.reverse_payment(SHOP_B, receipt.payment_id, reason="not ours")


def test_writing_foreign_entity_is_a_programming_error(store):
    with pytest.raises(TenantIsolationError):
        with store.transaction(SHOP_B) as repo:
            repo.add(Customer(id="cust-z", tenant_id=SHOP_A, name="Foreign"))

    with store.read(SHOP_A) as repo:
        assert repo.get_customer("cust-z") is None


def test_tenant_isolation_error_is_not_a_domain_error():
    from credit_ledger.domain.exceptions import DomainException

    assert not issubclass(TenantIsolationError, DomainException)


def test_store_requires_tenant(store):
    with pytest.raises(TenantRequired):
        with store.transaction(None):
            pass
    with pytest.raises(TenantRequired):
        with store.read(""):
            pass
