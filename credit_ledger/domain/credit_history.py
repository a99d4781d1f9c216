"""Per-period customer credit rollup and credit score"""

from typing import List, Optional

from credit_ledger.domain.models import CreditHistorySummary, PaymentFact
from credit_ledger.utils.date_utils import days_between

# Average delay at which the delay component of the score reaches zero
MAX_DELAY_DAYS = 30


def summarize_period(
    period: str,
    credit_amounts_cents: List[int],
    payments: List[PaymentFact],
) -> CreditHistorySummary:
    """
    Roll one period of credit activity up into a history row.

    Requirements:
    - Total credit: sum of credit sales issued in the period
    - Total repaid: net of all payments in the period (reversals included)
    - Late payments: positive payments dated after their sale's due date
    - Average delay: mean days late over positive payments, on-time counts as 0
    """
    total_credit = sum(credit_amounts_cents)
    total_repaid = sum(p.amount_cents for p in payments)

    receipts = [p for p in payments if p.amount_cents > 0]
    delays = [max(0, days_between(p.due_date, p.payment_date)) for p in receipts]
    late_count = sum(1 for d in delays if d > 0)
    average_delay = round(sum(delays) / len(delays)) if delays else 0

    score = calculate_credit_score(
        total_credit_cents=total_credit,
        total_repaid_cents=total_repaid,
        payment_count=len(receipts),
        late_payment_count=late_count,
        average_delay_days=average_delay,
    )

    return CreditHistorySummary(
        period=period,
        total_credit_cents=total_credit,
        total_repaid_cents=total_repaid,
        late_payment_count=late_count,
        average_payment_delay_days=average_delay,
        credit_score=score,
    )


def calculate_credit_score(
    total_credit_cents: int,
    total_repaid_cents: int,
    payment_count: int,
    late_payment_count: int,
    average_delay_days: int,
) -> Optional[int]:
    """
    Score a period from 0 (worst) to 100 (best), or None without activity.

    Scoring weights:
    - 50%: Repayment ratio (repaid / credit, capped at 1.0; full marks with
      no new credit in the period as long as something was repaid)
    - 30%: On-time ratio over payments received
    - 20%: Delay penalty, linear down to zero at MAX_DELAY_DAYS
    """
    if total_credit_cents == 0 and payment_count == 0:
        return None

    if total_credit_cents > 0:
        repayment_score = min(max(total_repaid_cents, 0) / total_credit_cents, 1.0)
    else:
        repayment_score = 1.0

    if payment_count > 0:
        on_time_score = (payment_count - late_payment_count) / payment_count
    else:
        # Credit taken, nothing repaid yet: no evidence either way
        on_time_score = 0.5

    delay_score = max(0.0, 1.0 - average_delay_days / MAX_DELAY_DAYS)

    score = (0.5 * repayment_score) + (0.3 * on_time_score) + (0.2 * delay_score)
    return round(score * 100)
