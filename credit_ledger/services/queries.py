"""Read queries over last-committed ledger state; no locks, no writes"""

from datetime import date
from typing import List, Optional

from credit_ledger.domain.exceptions import NotFound, ValidationError
from credit_ledger.domain.models import (
    CommitmentView,
    CreditHistorySummary,
    CreditSaleView,
    CreditStatus,
    CustomerBalance,
    OverdueItem,
    PaymentView,
    ReminderView,
)
from credit_ledger.domain.reconciliation import compute_remaining, days_overdue, outstanding_balance
from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.services.reconciler import (
    load_credit_sale_view,
    to_commitment_view,
    to_credit_sale_view,
    to_payment_view,
    to_reminder_view,
)


class LedgerQueries:
    """Dashboard and reporting reads consumed by the POS front end"""

    def __init__(self, store: LedgerStore):
        self.store = store

    def get_credit_sale(self, tenant_id: str, credit_sale_id, as_of: Optional[date] = None) -> CreditSaleView:
        with self.store.read(tenant_id) as repo:
            credit_sale = repo.get_credit_sale(credit_sale_id)
            if credit_sale is None:
                raise NotFound("Credit sale", credit_sale_id)
            return load_credit_sale_view(repo, credit_sale, as_of)

    def list_credit_sales_for_customer(
        self,
        tenant_id: str,
        customer_id: str,
        status: Optional[CreditStatus] = None,
        as_of: Optional[date] = None,
    ) -> List[CreditSaleView]:
        """Customer's credit sales, newest first, optionally filtered by effective status"""
        if status is not None:
            try:
                status = CreditStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown credit status {status!r}")

        with self.store.read(tenant_id) as repo:
            if repo.get_customer(customer_id) is None:
                raise NotFound("Customer", customer_id)

            sales = repo.list_credit_sales_for_customer(customer_id)
            paid = repo.paid_by_sale([s.id for s in sales])
            views = [to_credit_sale_view(s, paid.get(s.id, 0), as_of) for s in sales]

        if status is not None:
            views = [v for v in views if v.status == status]
        return views

    def get_customer_balance(self, tenant_id: str, customer_id: str) -> CustomerBalance:
        """Balance recomputed from the ledger, alongside the customer's limit"""
        with self.store.read(tenant_id) as repo:
            customer = repo.get_customer(customer_id)
            if customer is None:
                raise NotFound("Customer", customer_id)

            remainders = [
                (CreditStatus(status), compute_remaining(amount, [paid]))
                for status, amount, paid in repo.sale_totals_for_customer(customer.id)
            ]
            balance = outstanding_balance(remainders)
            open_sales = sum(
                1 for status, remaining in remainders
                if status != CreditStatus.WRITTEN_OFF and remaining > 0
            )

            return CustomerBalance(
                customer_id=customer.id,
                outstanding_balance_cents=balance,
                credit_limit_cents=customer.credit_limit_cents,
                available_credit_cents=max(customer.credit_limit_cents - balance, 0),
                open_credit_sales=open_sales,
            )

    def list_overdue(self, tenant_id: str, as_of: Optional[date] = None) -> List[OverdueItem]:
        """Open credit sales past their due date, oldest due first"""
        as_of = as_of or date.today()
        with self.store.read(tenant_id) as repo:
            sales = repo.list_open_credit_sales_due_before(as_of)
            paid = repo.paid_by_sale([s.id for s in sales])
            return [
                OverdueItem(
                    credit_sale_id=s.id,
                    customer_id=s.customer_id,
                    due_date=s.due_date,
                    remaining_cents=s.credit_amount_cents - paid.get(s.id, 0),
                    days_overdue=days_overdue(s.due_date, as_of),
                )
                for s in sales
            ]

    def list_payments(self, tenant_id: str, credit_sale_id) -> List[PaymentView]:
        with self.store.read(tenant_id) as repo:
            credit_sale = repo.get_credit_sale(credit_sale_id)
            if credit_sale is None:
                raise NotFound("Credit sale", credit_sale_id)
            return [to_payment_view(p) for p in repo.list_payments(credit_sale.id)]

    def list_commitments(self, tenant_id: str, credit_sale_id) -> List[CommitmentView]:
        with self.store.read(tenant_id) as repo:
            credit_sale = repo.get_credit_sale(credit_sale_id)
            if credit_sale is None:
                raise NotFound("Credit sale", credit_sale_id)
            return [to_commitment_view(c) for c in repo.list_commitments(credit_sale.id)]

    def list_reminders(self, tenant_id: str, credit_sale_id) -> List[ReminderView]:
        with self.store.read(tenant_id) as repo:
            credit_sale = repo.get_credit_sale(credit_sale_id)
            if credit_sale is None:
                raise NotFound("Credit sale", credit_sale_id)
            return [to_reminder_view(r) for r in repo.list_reminders(credit_sale.id)]

    def get_credit_history(self, tenant_id: str, customer_id: str, period: str) -> CreditHistorySummary:
        with self.store.read(tenant_id) as repo:
            row = repo.get_credit_history(customer_id, period)
            if row is None:
                raise NotFound("Credit history", f"{customer_id}/{period}")
            return CreditHistorySummary(
                period=row.period,
                total_credit_cents=row.total_credit_cents,
                total_repaid_cents=row.total_repaid_cents,
                late_payment_count=row.late_payment_count,
                average_payment_delay_days=row.average_payment_delay_days,
                credit_score=row.credit_score,
            )
