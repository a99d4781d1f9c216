"""Tenant-scoped data access layer for credit ledger entities"""

import uuid
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from credit_ledger.domain.exceptions import TenantIsolationError
from credit_ledger.domain.models import CommitmentStatus, CreditStatus, PaymentFact
from credit_ledger.infrastructure.database.models import (
    CreditPayment,
    CreditSale,
    Customer,
    CustomerCreditHistory,
    PaymentCommitment,
    PaymentReminder,
)

OPEN_STATUS_VALUES = (CreditStatus.OUTSTANDING.value, CreditStatus.PARTIALLY_PAID.value)


def _as_uuid(value) -> Optional[uuid.UUID]:
    """Coerce an id from the caller; malformed ids simply match nothing"""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class LedgerRepository:
    """
    Data access bound to a single tenant.

    Every query filters on the bound tenant_id, so a call site cannot forget
    the scope. Writing an entity that belongs to another tenant is a
    programming error and raises TenantIsolationError.
    """

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    def _scoped(self, model):
        return self.db.query(model).filter(model.tenant_id == self.tenant_id)

    def ensure_owned(self, entity) -> None:
        if entity.tenant_id != self.tenant_id:
            raise TenantIsolationError(
                f"{type(entity).__name__} belongs to tenant {entity.tenant_id!r}, "
                f"handle is bound to {self.tenant_id!r}"
            )

    def add(self, entity):
        """Stamp the bound tenant on a new entity and flush it to get its id"""
        if entity.tenant_id is None:
            entity.tenant_id = self.tenant_id
        self.ensure_owned(entity)
        self.db.add(entity)
        self.db.flush()
        return entity

    def flush(self) -> None:
        self.db.flush()

    # Customers

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self._scoped(Customer).filter(Customer.id == str(customer_id)).first()

    def lock_customer(self, customer_id: str) -> Optional[Customer]:
        """Fetch customer row with FOR UPDATE so balance writes serialize"""
        return (
            self._scoped(Customer)
            .filter(Customer.id == str(customer_id))
            .with_for_update()
            .populate_existing()
            .first()
        )

    # Credit sales

    def get_credit_sale(self, credit_sale_id) -> Optional[CreditSale]:
        sale_uuid = _as_uuid(credit_sale_id)
        if sale_uuid is None:
            return None
        return self._scoped(CreditSale).filter(CreditSale.id == sale_uuid).first()

    def lock_credit_sale(self, credit_sale_id) -> Optional[CreditSale]:
        """Fetch credit sale row with FOR UPDATE; concurrent payments queue here"""
        sale_uuid = _as_uuid(credit_sale_id)
        if sale_uuid is None:
            return None
        return (
            self._scoped(CreditSale)
            .filter(CreditSale.id == sale_uuid)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_credit_sale_by_sale_id(self, sale_id: str) -> Optional[CreditSale]:
        return self._scoped(CreditSale).filter(CreditSale.sale_id == sale_id).first()

    def list_credit_sales_for_customer(self, customer_id: str) -> List[CreditSale]:
        return (
            self._scoped(CreditSale)
            .filter(CreditSale.customer_id == str(customer_id))
            .order_by(CreditSale.issued_on.desc(), CreditSale.created_at.desc())
            .all()
        )

    def list_open_credit_sales_due_before(self, as_of: date) -> List[CreditSale]:
        return (
            self._scoped(CreditSale)
            .filter(
                CreditSale.status.in_(OPEN_STATUS_VALUES),
                CreditSale.due_date < as_of,
            )
            .order_by(CreditSale.due_date.asc())
            .all()
        )

    # Payments

    def sum_payments(self, credit_sale_id: uuid.UUID, through: Optional[date] = None) -> int:
        """Net paid on a sale, optionally only counting payments dated on/before `through`"""
        query = self.db.query(func.coalesce(func.sum(CreditPayment.amount_cents), 0)).filter(
            CreditPayment.tenant_id == self.tenant_id,
            CreditPayment.credit_sale_id == credit_sale_id,
        )
        if through is not None:
            query = query.filter(CreditPayment.payment_date <= through)
        return int(query.scalar())

    def paid_by_sale(self, sale_ids: List[uuid.UUID]) -> dict:
        """Net paid per credit sale for a batch of sales"""
        if not sale_ids:
            return {}
        rows = (
            self.db.query(CreditPayment.credit_sale_id, func.sum(CreditPayment.amount_cents))
            .filter(
                CreditPayment.tenant_id == self.tenant_id,
                CreditPayment.credit_sale_id.in_(sale_ids),
            )
            .group_by(CreditPayment.credit_sale_id)
            .all()
        )
        return {sale_id: int(total or 0) for sale_id, total in rows}

    def sale_totals_for_customer(self, customer_id: str) -> List[Tuple[str, int, int]]:
        """(status, credit_amount_cents, paid_cents) for each of the customer's credit sales"""
        paid = (
            self.db.query(
                CreditPayment.credit_sale_id.label("credit_sale_id"),
                func.sum(CreditPayment.amount_cents).label("paid_cents"),
            )
            .filter(CreditPayment.tenant_id == self.tenant_id)
            .group_by(CreditPayment.credit_sale_id)
            .subquery()
        )
        rows = (
            self.db.query(
                CreditSale.status,
                CreditSale.credit_amount_cents,
                func.coalesce(paid.c.paid_cents, 0),
            )
            .outerjoin(paid, paid.c.credit_sale_id == CreditSale.id)
            .filter(
                CreditSale.tenant_id == self.tenant_id,
                CreditSale.customer_id == str(customer_id),
            )
            .all()
        )
        return [(status, int(amount), int(paid_cents)) for status, amount, paid_cents in rows]

    def get_payment(self, payment_id) -> Optional[CreditPayment]:
        payment_uuid = _as_uuid(payment_id)
        if payment_uuid is None:
            return None
        return self._scoped(CreditPayment).filter(CreditPayment.id == payment_uuid).first()

    def get_reversal_of(self, payment_id: uuid.UUID) -> Optional[CreditPayment]:
        return self._scoped(CreditPayment).filter(CreditPayment.reverses_payment_id == payment_id).first()

    def list_payments(self, credit_sale_id: uuid.UUID) -> List[CreditPayment]:
        return (
            self._scoped(CreditPayment)
            .filter(CreditPayment.credit_sale_id == credit_sale_id)
            .order_by(CreditPayment.payment_date.asc(), CreditPayment.created_at.asc())
            .all()
        )

    def payment_facts_between(self, customer_id: str, start: date, end: date) -> List[PaymentFact]:
        """Payments for a customer's sales dated in [start, end), with each sale's due date"""
        rows = (
            self.db.query(CreditPayment.amount_cents, CreditPayment.payment_date, CreditSale.due_date)
            .join(CreditSale, CreditSale.id == CreditPayment.credit_sale_id)
            .filter(
                CreditPayment.tenant_id == self.tenant_id,
                CreditSale.tenant_id == self.tenant_id,
                CreditSale.customer_id == str(customer_id),
                CreditPayment.payment_date >= start,
                CreditPayment.payment_date < end,
            )
            .all()
        )
        return [
            PaymentFact(amount_cents=int(amount), payment_date=paid_on, due_date=due)
            for amount, paid_on, due in rows
        ]

    def credit_issued_between(self, customer_id: str, start: date, end: date) -> List[int]:
        rows = (
            self.db.query(CreditSale.credit_amount_cents)
            .filter(
                CreditSale.tenant_id == self.tenant_id,
                CreditSale.customer_id == str(customer_id),
                CreditSale.issued_on >= start,
                CreditSale.issued_on < end,
            )
            .all()
        )
        return [int(amount) for (amount,) in rows]

    # Commitments

    def list_commitments(self, credit_sale_id: uuid.UUID) -> List[PaymentCommitment]:
        return (
            self._scoped(PaymentCommitment)
            .filter(PaymentCommitment.credit_sale_id == credit_sale_id)
            .order_by(PaymentCommitment.promised_date.asc())
            .all()
        )

    def list_pending_commitments(self, credit_sale_id: uuid.UUID) -> List[PaymentCommitment]:
        return (
            self._scoped(PaymentCommitment)
            .filter(
                PaymentCommitment.credit_sale_id == credit_sale_id,
                PaymentCommitment.status == CommitmentStatus.PENDING.value,
            )
            .order_by(PaymentCommitment.promised_date.asc())
            .all()
        )

    def lock_pending_commitments_due_before(self, as_of: date) -> List[PaymentCommitment]:
        return (
            self._scoped(PaymentCommitment)
            .filter(
                PaymentCommitment.status == CommitmentStatus.PENDING.value,
                PaymentCommitment.promised_date < as_of,
            )
            .order_by(PaymentCommitment.promised_date.asc())
            .with_for_update()
            .populate_existing()
            .all()
        )

    # Reminders

    def lock_reminder(self, reminder_id) -> Optional[PaymentReminder]:
        reminder_uuid = _as_uuid(reminder_id)
        if reminder_uuid is None:
            return None
        return (
            self._scoped(PaymentReminder)
            .filter(PaymentReminder.id == reminder_uuid)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_reminders(self, credit_sale_id: uuid.UUID) -> List[PaymentReminder]:
        return (
            self._scoped(PaymentReminder)
            .filter(PaymentReminder.credit_sale_id == credit_sale_id)
            .order_by(PaymentReminder.scheduled_date.asc())
            .all()
        )

    # Credit history

    def get_credit_history(self, customer_id: str, period: str) -> Optional[CustomerCreditHistory]:
        return (
            self._scoped(CustomerCreditHistory)
            .filter(
                CustomerCreditHistory.customer_id == str(customer_id),
                CustomerCreditHistory.period == period,
            )
            .first()
        )
