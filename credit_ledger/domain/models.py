"""Domain models - pure Python dataclasses representing ledger entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class CreditStatus(str, Enum):
    """Lifecycle of a credit sale. OVERDUE is only ever computed at read time."""

    OUTSTANDING = "OUTSTANDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    WRITTEN_OFF = "WRITTEN_OFF"


class CommitmentStatus(str, Enum):
    PENDING = "PENDING"
    KEPT = "KEPT"
    BROKEN = "BROKEN"


class ReminderType(str, Enum):
    DUE_SOON = "DUE_SOON"
    DUE_TODAY = "DUE_TODAY"
    OVERDUE = "OVERDUE"
    FOLLOW_UP = "FOLLOW_UP"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    OTHER = "OTHER"


@dataclass
class CreditSaleView:
    """Credit sale as seen by callers: persisted fields plus derived balance"""

    id: uuid.UUID
    sale_id: str
    customer_id: str
    credit_amount_cents: int
    paid_cents: int
    remaining_cents: int
    issued_on: date
    due_date: date
    terms_in_days: int
    interest_rate: float
    status: CreditStatus  # effective, OVERDUE applied
    stored_status: CreditStatus
    approved_by: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class CustomerBalance:
    customer_id: str
    outstanding_balance_cents: int
    credit_limit_cents: int
    available_credit_cents: int
    open_credit_sales: int


@dataclass
class PaymentReceipt:
    """Result of applying a payment"""

    payment_id: uuid.UUID
    credit_sale: CreditSaleView
    customer_balance_cents: int
    kept_commitment_ids: List[uuid.UUID] = field(default_factory=list)


@dataclass
class SweepResult:
    as_of: date
    kept: List[uuid.UUID] = field(default_factory=list)
    broken: List[uuid.UUID] = field(default_factory=list)


@dataclass
class OverdueItem:
    credit_sale_id: uuid.UUID
    customer_id: str
    due_date: date
    remaining_cents: int
    days_overdue: int


@dataclass
class PaymentFact:
    """One ledger payment reduced to what the history rollup needs"""

    amount_cents: int
    payment_date: date
    due_date: date


@dataclass
class CreditHistorySummary:
    """Rollup of one customer's credit activity in one period"""

    period: str
    total_credit_cents: int
    total_repaid_cents: int
    late_payment_count: int
    average_payment_delay_days: int
    credit_score: Optional[int]


@dataclass
class PaymentView:
    id: uuid.UUID
    credit_sale_id: uuid.UUID
    amount_cents: int
    payment_date: date
    method: PaymentMethod
    received_by: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    reverses_payment_id: Optional[uuid.UUID] = None


@dataclass
class CommitmentView:
    id: uuid.UUID
    credit_sale_id: uuid.UUID
    promised_amount_cents: int
    promised_date: date
    status: CommitmentStatus
    resolved_on: Optional[date] = None
    notes: Optional[str] = None


@dataclass
class ReminderView:
    id: uuid.UUID
    credit_sale_id: uuid.UUID
    reminder_type: ReminderType
    scheduled_date: date
    sent: bool
    sent_via: Optional[str] = None
    sent_at: Optional[datetime] = None
    response_received: bool = False
    response_notes: Optional[str] = None
