"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from credit_ledger.domain.models import (
    CommitmentStatus,
    CreditStatus,
    PaymentMethod,
    ReminderType,
)


class IssueCreditRequest(BaseModel):
    """Request body for POST /v1/credit-sales"""

    customer_id: str = Field(..., min_length=1, description="Customer identifier")
    sale_id: str = Field(..., min_length=1, description="Originating sale identifier")
    amount_cents: int = Field(..., gt=0, description="Credit amount in minor units")
    due_date: Optional[date] = Field(None, description="Defaults to issue date + terms")
    terms_in_days: Optional[int] = Field(None, ge=0)
    interest_rate: float = Field(0.0, ge=0)
    approved_by: Optional[str] = Field(None, description="Approver overriding the credit limit")
    notes: Optional[str] = None
    issued_on: Optional[date] = None


class ApplyPaymentRequest(BaseModel):
    """Request body for POST /v1/credit-sales/{id}/payments"""

    amount_cents: int = Field(..., gt=0, description="Payment amount in minor units")
    method: PaymentMethod
    received_by: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[date] = None


class ReversePaymentRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    reversed_by: Optional[str] = None


class WriteOffRequest(BaseModel):
    approved_by: str = Field(..., min_length=1)
    reason: Optional[str] = None


class CommitmentRequest(BaseModel):
    promised_amount_cents: int = Field(..., gt=0)
    promised_date: date
    notes: Optional[str] = None


class SweepRequest(BaseModel):
    as_of: date


class ReminderRequest(BaseModel):
    reminder_type: ReminderType
    scheduled_date: Optional[date] = None


class ReminderSentRequest(BaseModel):
    sent_via: str = Field(..., min_length=1, description="Channel used, e.g. SMS or WHATSAPP")
    sent_at: Optional[datetime] = None


class ReminderResponseRequest(BaseModel):
    notes: Optional[str] = None


class CreditSaleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    status: CreditStatus
    stored_status: CreditStatus
    approved_by: Optional[str] = None
    notes: Optional[str] = None


class PaymentReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: uuid.UUID
    credit_sale: CreditSaleResponse
    customer_balance_cents: int
    kept_commitment_ids: List[uuid.UUID]


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    credit_sale_id: uuid.UUID
    amount_cents: int
    payment_date: date
    method: PaymentMethod
    received_by: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    reverses_payment_id: Optional[uuid.UUID] = None


class CommitmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    credit_sale_id: uuid.UUID
    promised_amount_cents: int
    promised_date: date
    status: CommitmentStatus
    resolved_on: Optional[date] = None
    notes: Optional[str] = None


class SweepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    as_of: date
    kept: List[uuid.UUID]
    broken: List[uuid.UUID]


class ReminderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    credit_sale_id: uuid.UUID
    reminder_type: ReminderType
    scheduled_date: date
    sent: bool
    sent_via: Optional[str] = None
    sent_at: Optional[datetime] = None
    response_received: bool
    response_notes: Optional[str] = None


class CustomerBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    outstanding_balance_cents: int
    credit_limit_cents: int
    available_credit_cents: int
    open_credit_sales: int


class OverdueItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    credit_sale_id: uuid.UUID
    customer_id: str
    due_date: date
    remaining_cents: int
    days_overdue: int


class OverdueResponse(BaseModel):
    as_of: date
    items: List[OverdueItemResponse]


class CreditHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period: str
    total_credit_cents: int
    total_repaid_cents: int
    late_payment_count: int
    average_payment_delay_days: int
    credit_score: Optional[int] = None

