"""SQLAlchemy ORM models for the credit ledger. Every table is tenant-scoped."""

import uuid
from sqlalchemy import (
    Column, String, BigInteger, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text,
    CheckConstraint, UniqueConstraint, Index, ForeignKeyConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Customer(Base):
    """Customer record owned by the customer CRUD layer; the ledger only maintains the balance"""

    __tablename__ = "customer"
    __table_args__ = (
        CheckConstraint("credit_limit_cents >= 0", name="ck_customer_credit_limit_non_negative"),
        CheckConstraint("outstanding_balance_cents >= 0", name="ck_customer_balance_non_negative"),
    )

    # Customer ids come from the CRUD layer and are only unique within a tenant
    tenant_id = Column(Text, primary_key=True)
    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    phone = Column(String(32), nullable=True)
    credit_limit_cents = Column(BigInteger, nullable=False, default=0)
    outstanding_balance_cents = Column(BigInteger, nullable=False, default=0)
    total_purchases_cents = Column(BigInteger, nullable=False, default=0)
    loyalty_points = Column(Integer, nullable=False, default=0)
    last_purchase_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit_sales = relationship("CreditSale", back_populates="customer")


class CreditSale(Base):
    """Deferred-payment sale; only status changes after creation"""

    __tablename__ = "credit_sale"
    __table_args__ = (
        UniqueConstraint("tenant_id", "sale_id", name="uq_credit_sale_tenant_sale"),
        ForeignKeyConstraint(["tenant_id", "customer_id"], ["customer.tenant_id", "customer.id"]),
        CheckConstraint("credit_amount_cents > 0", name="ck_credit_sale_amount_positive"),
        CheckConstraint("interest_rate >= 0", name="ck_credit_sale_interest_non_negative"),
        Index("ix_credit_sale_tenant_customer", "tenant_id", "customer_id"),
        Index("ix_credit_sale_tenant_status_due", "tenant_id", "status", "due_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False)
    sale_id = Column(Text, nullable=False)
    customer_id = Column(Text, nullable=False)
    credit_amount_cents = Column(BigInteger, nullable=False)
    issued_on = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    terms_in_days = Column(Integer, nullable=False, default=30)
    interest_rate = Column(Float, nullable=False, default=0.0)
    status = Column(Text, nullable=False, default="OUTSTANDING")
    approved_by = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    written_off_at = Column(DateTime(timezone=True), nullable=True)
    written_off_by = Column(Text, nullable=True)
    write_off_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("Customer", back_populates="credit_sales")
    payments = relationship("CreditPayment", back_populates="credit_sale", order_by="CreditPayment.created_at")
    commitments = relationship("PaymentCommitment", back_populates="credit_sale")
    reminders = relationship("PaymentReminder", back_populates="credit_sale")


class CreditPayment(Base):
    """Append-only repayment entry; a negative amount reverses an earlier payment"""

    __tablename__ = "credit_payment"
    __table_args__ = (
        CheckConstraint("amount_cents <> 0", name="ck_credit_payment_amount_non_zero"),
        # A payment can be reversed at most once
        UniqueConstraint("reverses_payment_id", name="uq_credit_payment_reverses"),
        Index("ix_credit_payment_tenant_sale", "tenant_id", "credit_sale_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False)
    credit_sale_id = Column(UUID(as_uuid=True), ForeignKey("credit_sale.id"), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    payment_date = Column(Date, nullable=False)
    method = Column(Text, nullable=False)
    received_by = Column(Text, nullable=True)
    reference = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    reverses_payment_id = Column(UUID(as_uuid=True), ForeignKey("credit_payment.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit_sale = relationship("CreditSale", back_populates="payments")


class PaymentReminder(Base):
    """Reminder lifecycle; delivery happens outside the ledger"""

    __tablename__ = "payment_reminder"
    __table_args__ = (
        Index("ix_payment_reminder_tenant_sale", "tenant_id", "credit_sale_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False)
    credit_sale_id = Column(UUID(as_uuid=True), ForeignKey("credit_sale.id"), nullable=False)
    reminder_type = Column(Text, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    sent = Column(Boolean, nullable=False, default=False)
    sent_via = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    response_received = Column(Boolean, nullable=False, default=False)
    response_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit_sale = relationship("CreditSale", back_populates="reminders")


class PaymentCommitment(Base):
    """Customer's promise to pay an amount by a date"""

    __tablename__ = "payment_commitment"
    __table_args__ = (
        CheckConstraint("promised_amount_cents > 0", name="ck_commitment_amount_positive"),
        Index("ix_payment_commitment_tenant_status_date", "tenant_id", "status", "promised_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False)
    credit_sale_id = Column(UUID(as_uuid=True), ForeignKey("credit_sale.id"), nullable=False, index=True)
    promised_amount_cents = Column(BigInteger, nullable=False)
    promised_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="PENDING")
    resolved_on = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit_sale = relationship("CreditSale", back_populates="commitments")


class CustomerCreditHistory(Base):
    """Recomputable per-period rollup, overwritten on regeneration"""

    __tablename__ = "customer_credit_history"
    __table_args__ = (
        UniqueConstraint("tenant_id", "customer_id", "period", name="uq_credit_history_period"),
        ForeignKeyConstraint(["tenant_id", "customer_id"], ["customer.tenant_id", "customer.id"]),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False)
    customer_id = Column(Text, nullable=False)
    period = Column(String(7), nullable=False)
    total_credit_cents = Column(BigInteger, nullable=False, default=0)
    total_repaid_cents = Column(BigInteger, nullable=False, default=0)
    late_payment_count = Column(Integer, nullable=False, default=0)
    average_payment_delay_days = Column(Integer, nullable=False, default=0)
    credit_score = Column(Integer, nullable=True)
