"""Structured JSON logging for ledger audit and observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from credit_ledger.config import settings
from credit_ledger.domain.exceptions import ConcurrencyConflict, StorageFailure
from credit_ledger.infrastructure.observability.metrics import record_rejection


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_credit_issued(
    tenant_id: str,
    credit_sale_id: str,
    customer_id: str,
    amount_cents: int,
    approved_by: Optional[str],
    limit_override: bool,
) -> None:
    """Audit record for every credit sale; overrides are logged at WARNING"""
    level = logging.WARNING if limit_override else logging.INFO
    logging.log(
        level,
        "Credit issued over limit by manual approval" if limit_override else "Credit issued",
        extra={
            "tenant_id": tenant_id,
            "step": "credit_issued",
            "credit_sale_id": credit_sale_id,
            "customer_id": customer_id,
            "amount_cents": amount_cents,
            "approved_by": approved_by,
            "limit_override": limit_override,
        },
    )


def log_payment_applied(
    tenant_id: str,
    credit_sale_id: str,
    payment_id: str,
    amount_cents: int,
    remaining_cents: int,
    status: str,
) -> None:
    logging.info(
        "Payment applied" if amount_cents > 0 else "Payment reversed",
        extra={
            "tenant_id": tenant_id,
            "step": "payment_applied",
            "credit_sale_id": credit_sale_id,
            "payment_id": payment_id,
            "amount_cents": amount_cents,
            "remaining_cents": remaining_cents,
            "status": status,
        },
    )


def report_rejection(tenant_id: Optional[str], error: Exception, **context: Any) -> None:
    """
    Log and count a business-rule rejection; the transaction was rolled back.

    Conflicts and storage failures are reported by the store itself.
    """
    if isinstance(error, (ConcurrencyConflict, StorageFailure)):
        return
    kind = getattr(error, "kind", type(error).__name__)
    record_rejection(kind)
    logging.warning(
        f"Ledger operation rejected: {error}",
        extra={
            "tenant_id": tenant_id,
            "step": "rejected",
            "rejection": kind,
            **{key: str(value) for key, value in context.items()},
        },
    )


def log_sweep(tenant_id: str, as_of: str, kept: int, broken: int) -> None:
    logging.info(
        "Commitment sweep completed",
        extra={
            "tenant_id": tenant_id,
            "step": "commitment_sweep",
            "as_of": as_of,
            "kept": kept,
            "broken": broken,
        },
    )
