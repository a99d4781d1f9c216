"""Domain-specific exceptions"""

from credit_ledger.domain.money import format_money


class DomainException(Exception):
    """Base exception for domain layer"""

    kind = "domain_error"
    retryable = False

    def context(self) -> dict:
        """Numeric details surfaced to the caller alongside the message"""
        return {}


class ValidationError(DomainException):
    """Bad amount, date or reference inputs, rejected before any write"""

    kind = "validation_error"


class TenantRequired(ValidationError):
    """Operation was invoked without an owning tenant"""

    kind = "tenant_required"

    def __init__(self, message: str = "An owning tenant id is required for every ledger operation"):
        super().__init__(message)


class CreditSaleClosed(ValidationError):
    """Credit sale is in a state that does not accept the operation"""

    kind = "credit_sale_closed"

    def __init__(self, credit_sale_id, status: str, action: str):
        self.credit_sale_id = credit_sale_id
        self.status = status
        super().__init__(f"Cannot {action}: credit sale {credit_sale_id} is {status}")

    def context(self) -> dict:
        return {"credit_sale_id": str(self.credit_sale_id), "status": self.status}


class NotFound(DomainException):
    """Unknown customer, credit sale, payment, reminder or commitment"""

    kind = "not_found"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")

    def context(self) -> dict:
        return {"entity": self.entity, "id": str(self.entity_id)}


class CreditLimitExceeded(DomainException):
    """Issuing the credit would push the customer over their limit"""

    kind = "credit_limit_exceeded"

    def __init__(self, customer_id: str, credit_limit_cents: int, outstanding_cents: int, requested_cents: int):
        self.customer_id = customer_id
        self.credit_limit_cents = credit_limit_cents
        self.outstanding_cents = outstanding_cents
        self.requested_cents = requested_cents
        self.excess_cents = outstanding_cents + requested_cents - credit_limit_cents
        super().__init__(
            f"Credit of {format_money(requested_cents)} exceeds credit limit by "
            f"{format_money(self.excess_cents)} (limit {format_money(credit_limit_cents)}, "
            f"outstanding {format_money(outstanding_cents)})"
        )

    def context(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "credit_limit_cents": self.credit_limit_cents,
            "outstanding_cents": self.outstanding_cents,
            "requested_cents": self.requested_cents,
            "excess_cents": self.excess_cents,
        }


class OverpaymentRejected(DomainException):
    """Payment is larger than what remains on the credit sale"""

    kind = "overpayment_rejected"

    def __init__(self, credit_sale_id, remaining_cents: int, amount_cents: int):
        self.credit_sale_id = credit_sale_id
        self.remaining_cents = remaining_cents
        self.amount_cents = amount_cents
        super().__init__(
            f"Payment of {format_money(amount_cents)} exceeds remaining balance "
            f"{format_money(remaining_cents)} on credit sale {credit_sale_id}"
        )

    def context(self) -> dict:
        return {
            "credit_sale_id": str(self.credit_sale_id),
            "remaining_cents": self.remaining_cents,
            "amount_cents": self.amount_cents,
        }


class DuplicateCreditSale(DomainException):
    """The originating sale already has a credit record"""

    kind = "duplicate_credit_sale"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__(f"Sale {sale_id} already has a credit sale")

    def context(self) -> dict:
        return {"sale_id": self.sale_id}


class ConcurrencyConflict(DomainException):
    """Write conflicted with another in-flight transaction; retry the whole operation"""

    kind = "concurrency_conflict"
    retryable = True


class StorageFailure(DomainException):
    """Store could not complete the transaction; it has been rolled back"""

    kind = "storage_failure"


class LedgerIntegrityError(StorageFailure):
    """Persisted ledger rows violate the balance invariant"""

    kind = "ledger_integrity_error"


class TenantIsolationError(RuntimeError):
    """A tenant-bound handle was asked to touch another tenant's rows.

    This is a programming error, not a business outcome, so it does not
    derive from DomainException and is never mapped to a client error.
    """
