"""Prometheus metrics for credit issuance, repayments, rejections and store conflicts"""

from prometheus_client import Counter, Histogram

# Ledger metrics
credit_issued_counter = Counter(
    "credit_ledger_credit_issued_total",
    "Credit sales issued",
    ["override"],  # true | false
)

credit_issued_amount_counter = Counter(
    "credit_ledger_credit_issued_cents_total",
    "Credit extended, in minor currency units",
)

payment_counter = Counter(
    "credit_ledger_payments_total",
    "Payments applied to credit sales",
    ["method"],
)

rejection_counter = Counter(
    "credit_ledger_rejections_total",
    "Ledger operations rejected by a business rule",
    ["reason"],  # credit_limit_exceeded | overpayment_rejected | ...
)

commitment_resolved_counter = Counter(
    "credit_ledger_commitments_resolved_total",
    "Payment commitments resolved",
    ["status"],  # KEPT | BROKEN
)

# Store health
conflict_counter = Counter(
    "credit_ledger_conflicts_total",
    "Transactions aborted by a concurrent write",
)

request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_credit_issued(amount_cents: int, limit_override: bool) -> None:
    credit_issued_counter.labels(override=str(limit_override).lower()).inc()
    credit_issued_amount_counter.inc(amount_cents)


def record_rejection(reason: str) -> None:
    rejection_counter.labels(reason=reason).inc()
