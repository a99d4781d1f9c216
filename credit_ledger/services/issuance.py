"""Credit Issuance Service - validates and creates credit sales against customer limits"""

from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError

from credit_ledger.config import settings
from credit_ledger.domain.exceptions import (
    CreditLimitExceeded,
    DomainException,
    DuplicateCreditSale,
    NotFound,
    ValidationError,
)
from credit_ledger.domain.models import CreditSaleView, CreditStatus
from credit_ledger.infrastructure.database.models import CreditSale
from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.infrastructure.observability.logging import log_credit_issued, report_rejection
from credit_ledger.infrastructure.observability.metrics import record_credit_issued
from credit_ledger.services.reconciler import reconcile_customer, to_credit_sale_view
from credit_ledger.utils.date_utils import add_days


class CreditIssuanceService:
    """Creates credit sales when the POS marks a sale as pay-later"""

    def __init__(self, store: LedgerStore, default_terms_days: int | None = None):
        self.store = store
        self.default_terms_days = (
            settings.default_terms_days if default_terms_days is None else default_terms_days
        )

    def issue_credit(
        self,
        tenant_id: str,
        customer_id: str,
        sale_id: str,
        amount_cents: int,
        due_date: Optional[date] = None,
        terms_in_days: Optional[int] = None,
        interest_rate: float = 0.0,
        approved_by: Optional[str] = None,
        notes: Optional[str] = None,
        issued_on: Optional[date] = None,
    ) -> CreditSaleView:
        """
        Extend credit to a customer for an originating sale.

        Flow:
        1. Validate inputs before touching the store
        2. Reject a second credit record for the same sale
        3. Lock the customer and recompute their balance from the ledger
        4. Enforce the credit limit unless an approver overrides it
        5. Insert the credit sale and reconcile the customer balance

        Raises:
            ValidationError: bad amount, terms, rate or dates
            DuplicateCreditSale: sale already has a credit record
            NotFound: customer does not exist for this tenant
            CreditLimitExceeded: over limit without an approver
        """
        issued_on = issued_on or date.today()
        terms = self.default_terms_days if terms_in_days is None else terms_in_days
        approver = approved_by.strip() if approved_by and approved_by.strip() else None

        try:
            self._validate(sale_id, amount_cents, terms, interest_rate)
            if due_date is None:
                due_date = add_days(issued_on, terms)
            if due_date < issued_on:
                raise ValidationError(f"Due date {due_date} is before issue date {issued_on}")

            with self.store.transaction(tenant_id) as repo:
                if repo.get_credit_sale_by_sale_id(sale_id) is not None:
                    raise DuplicateCreditSale(sale_id)

                customer = repo.lock_customer(customer_id)
                if customer is None:
                    raise NotFound("Customer", customer_id)

                balance = reconcile_customer(repo, customer)
                over_limit = balance + amount_cents > customer.credit_limit_cents
                if over_limit and approver is None:
                    raise CreditLimitExceeded(
                        customer_id=customer.id,
                        credit_limit_cents=customer.credit_limit_cents,
                        outstanding_cents=balance,
                        requested_cents=amount_cents,
                    )

                credit_sale = CreditSale(
                    sale_id=sale_id,
                    customer_id=customer.id,
                    credit_amount_cents=amount_cents,
                    issued_on=issued_on,
                    due_date=due_date,
                    terms_in_days=terms,
                    interest_rate=interest_rate,
                    status=CreditStatus.OUTSTANDING.value,
                    approved_by=approver,
                    notes=notes,
                )
                try:
                    repo.add(credit_sale)
                except IntegrityError as e:
                    # Lost a race with another session issuing credit for the same sale
                    raise DuplicateCreditSale(sale_id) from e

                reconcile_customer(repo, customer)
                if customer.last_purchase_date is None or customer.last_purchase_date < issued_on:
                    customer.last_purchase_date = issued_on

                view = to_credit_sale_view(credit_sale, paid_cents=0)

        except DomainException as e:
            report_rejection(tenant_id, e, sale_id=sale_id, customer_id=customer_id)
            raise

        record_credit_issued(amount_cents, limit_override=over_limit)
        log_credit_issued(
            tenant_id=repo.tenant_id,
            credit_sale_id=str(view.id),
            customer_id=view.customer_id,
            amount_cents=amount_cents,
            approved_by=approver,
            limit_override=over_limit,
        )
        return view

    @staticmethod
    def _validate(sale_id: str, amount_cents: int, terms_in_days: int, interest_rate: float) -> None:
        if not sale_id or not str(sale_id).strip():
            raise ValidationError("Originating sale id is required")
        if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
            raise ValidationError(f"Credit amount must be a positive whole number of cents, got {amount_cents!r}")
        if terms_in_days < 0:
            raise ValidationError(f"Credit terms cannot be negative, got {terms_in_days}")
        if interest_rate < 0:
            raise ValidationError(f"Interest rate cannot be negative, got {interest_rate}")
