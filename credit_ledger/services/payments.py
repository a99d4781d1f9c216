"""Payment Application Service - applies repayments to a single credit sale"""

from datetime import date, datetime, timezone
from typing import List, Optional

from credit_ledger.domain.exceptions import (
    CreditSaleClosed,
    DomainException,
    NotFound,
    OverpaymentRejected,
    ValidationError,
)
from credit_ledger.domain.models import (
    CommitmentStatus,
    CreditSaleView,
    CreditStatus,
    PaymentMethod,
    PaymentReceipt,
)
from credit_ledger.infrastructure.database.models import CreditPayment, CreditSale
from credit_ledger.infrastructure.database.repositories import LedgerRepository
from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.infrastructure.observability.logging import log_payment_applied, report_rejection
from credit_ledger.infrastructure.observability.metrics import commitment_resolved_counter, payment_counter
from credit_ledger.services.reconciler import (
    load_credit_sale_view,
    reconcile_credit_sale,
    reconcile_customer,
)
from credit_ledger.services.tracker import commitment_satisfied, resolve_commitment


def parse_payment_method(method) -> PaymentMethod:
    try:
        return PaymentMethod(method)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Unknown payment method {method!r}, expected one of {allowed}")


class PaymentService:
    """
    Applies payments to exactly the credit sale they name.

    There is no cross-sale allocation: a payment larger than the sale's
    remaining balance is rejected, and paying off several sales takes
    several calls.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    def apply_payment(
        self,
        tenant_id: str,
        credit_sale_id,
        amount_cents: int,
        method,
        received_by: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        payment_date: Optional[date] = None,
    ) -> PaymentReceipt:
        """
        Record a repayment and reconcile the sale and its customer.

        Flow:
        1. Lock the credit sale (concurrent payments on the same sale queue here)
        2. Recompute remaining from the ledger and reject overpayment
        3. Insert the payment, reconcile sale status and customer balance
        4. Mark PENDING commitments that this payment fulfils as KEPT

        Raises:
            ValidationError: non-positive amount, unknown method or future payment date
            NotFound: credit sale does not exist for this tenant
            CreditSaleClosed: credit sale was written off
            OverpaymentRejected: amount exceeds the remaining balance
        """
        payment_date = payment_date or date.today()

        try:
            if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
                raise ValidationError(f"Payment amount must be a positive whole number of cents, got {amount_cents!r}")
            payment_method = parse_payment_method(method)
            if payment_date > date.today():
                raise ValidationError(f"Payment date {payment_date} is in the future")

            with self.store.transaction(tenant_id) as repo:
                credit_sale = self._lock_open_sale(repo, credit_sale_id, "apply a payment")

                remaining = reconcile_credit_sale(repo, credit_sale)
                if amount_cents > remaining:
                    raise OverpaymentRejected(credit_sale.id, remaining, amount_cents)

                payment = repo.add(
                    CreditPayment(
                        credit_sale_id=credit_sale.id,
                        amount_cents=amount_cents,
                        payment_date=payment_date,
                        method=payment_method.value,
                        received_by=received_by,
                        reference=reference,
                        notes=notes,
                    )
                )

                balance = self._reconcile(repo, credit_sale)
                kept = self._keep_fulfilled_commitments(repo, credit_sale, payment_date)
                receipt = PaymentReceipt(
                    payment_id=payment.id,
                    credit_sale=load_credit_sale_view(repo, credit_sale),
                    customer_balance_cents=balance,
                    kept_commitment_ids=kept,
                )

        except DomainException as e:
            report_rejection(tenant_id, e, credit_sale_id=credit_sale_id, amount_cents=amount_cents)
            raise

        payment_counter.labels(method=payment_method.value).inc()
        commitment_resolved_counter.labels(status=CommitmentStatus.KEPT.value).inc(len(receipt.kept_commitment_ids))
        log_payment_applied(
            tenant_id=repo.tenant_id,
            credit_sale_id=str(receipt.credit_sale.id),
            payment_id=str(receipt.payment_id),
            amount_cents=amount_cents,
            remaining_cents=receipt.credit_sale.remaining_cents,
            status=receipt.credit_sale.stored_status.value,
        )
        return receipt

    def reverse_payment(
        self,
        tenant_id: str,
        payment_id,
        reason: str,
        reversed_by: Optional[str] = None,
        reversal_date: Optional[date] = None,
    ) -> PaymentReceipt:
        """
        Correct a mistaken payment by appending an equal negative entry.

        The original payment is never modified. Commitments already marked
        KEPT stay KEPT; the reversal is visible in the payment history.
        """
        try:
            if not reason or not reason.strip():
                raise ValidationError("A reason is required to reverse a payment")

            with self.store.transaction(tenant_id) as repo:
                original = repo.get_payment(payment_id)
                if original is None:
                    raise NotFound("Payment", payment_id)
                if original.amount_cents < 0 or original.reverses_payment_id is not None:
                    raise ValidationError(f"Payment {original.id} is itself a reversal")

                credit_sale = self._lock_open_sale(repo, original.credit_sale_id, "reverse a payment")
                # Checked after taking the sale lock so two reversals cannot both pass
                if repo.get_reversal_of(original.id) is not None:
                    raise ValidationError(f"Payment {original.id} was already reversed")

                reversal = repo.add(
                    CreditPayment(
                        credit_sale_id=credit_sale.id,
                        amount_cents=-original.amount_cents,
                        payment_date=reversal_date or date.today(),
                        method=original.method,
                        received_by=reversed_by,
                        reference=f"REVERSAL:{original.id}",
                        notes=reason.strip(),
                        reverses_payment_id=original.id,
                    )
                )

                balance = self._reconcile(repo, credit_sale)
                receipt = PaymentReceipt(
                    payment_id=reversal.id,
                    credit_sale=load_credit_sale_view(repo, credit_sale),
                    customer_balance_cents=balance,
                )

        except DomainException as e:
            report_rejection(tenant_id, e, payment_id=payment_id)
            raise

        log_payment_applied(
            tenant_id=repo.tenant_id,
            credit_sale_id=str(receipt.credit_sale.id),
            payment_id=str(receipt.payment_id),
            amount_cents=-original.amount_cents,
            remaining_cents=receipt.credit_sale.remaining_cents,
            status=receipt.credit_sale.stored_status.value,
        )
        return receipt

    def write_off(
        self,
        tenant_id: str,
        credit_sale_id,
        approved_by: str,
        reason: Optional[str] = None,
    ) -> CreditSaleView:
        """
        Administratively close an unpaid credit sale as WRITTEN_OFF.

        The remainder drops out of the customer's balance and any PENDING
        commitments on the sale are BROKEN.
        """
        try:
            if not approved_by or not approved_by.strip():
                raise ValidationError("Writing off credit requires an approver")

            with self.store.transaction(tenant_id) as repo:
                credit_sale = self._lock_open_sale(repo, credit_sale_id, "write off")
                reconcile_credit_sale(repo, credit_sale)
                if credit_sale.status == CreditStatus.PAID.value:
                    raise CreditSaleClosed(credit_sale.id, credit_sale.status, "write off")

                credit_sale.status = CreditStatus.WRITTEN_OFF.value
                credit_sale.written_off_at = datetime.now(timezone.utc)
                credit_sale.written_off_by = approved_by.strip()
                credit_sale.write_off_reason = reason
                repo.flush()

                today = date.today()
                broken = repo.list_pending_commitments(credit_sale.id)
                for commitment in broken:
                    resolve_commitment(commitment, CommitmentStatus.BROKEN, today)

                self._reconcile(repo, credit_sale)
                view = load_credit_sale_view(repo, credit_sale)

        except DomainException as e:
            report_rejection(tenant_id, e, credit_sale_id=credit_sale_id)
            raise

        commitment_resolved_counter.labels(status=CommitmentStatus.BROKEN.value).inc(len(broken))
        return view

    @staticmethod
    def _lock_open_sale(repo: LedgerRepository, credit_sale_id, action: str) -> CreditSale:
        credit_sale = repo.lock_credit_sale(credit_sale_id)
        if credit_sale is None:
            raise NotFound("Credit sale", credit_sale_id)
        if credit_sale.status == CreditStatus.WRITTEN_OFF.value:
            raise CreditSaleClosed(credit_sale.id, credit_sale.status, action)
        return credit_sale

    @staticmethod
    def _reconcile(repo: LedgerRepository, credit_sale: CreditSale) -> int:
        """Reconcile the sale, then its customer; lock order is always sale before customer"""
        reconcile_credit_sale(repo, credit_sale)
        customer = repo.lock_customer(credit_sale.customer_id)
        if customer is None:
            raise NotFound("Customer", credit_sale.customer_id)
        return reconcile_customer(repo, customer)

    @staticmethod
    def _keep_fulfilled_commitments(repo: LedgerRepository, credit_sale: CreditSale, payment_date: date) -> List:
        kept = []
        for commitment in repo.list_pending_commitments(credit_sale.id):
            if commitment.promised_date >= payment_date and commitment_satisfied(repo, commitment):
                resolve_commitment(commitment, CommitmentStatus.KEPT, payment_date)
                kept.append(commitment.id)
        if kept:
            repo.flush()
        return kept
