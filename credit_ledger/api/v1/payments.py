"""Payment corrections"""

from fastapi import APIRouter, Depends

from credit_ledger.api.dependencies import get_services, get_tenant_id
from credit_ledger.api.v1.schemas import PaymentReceiptResponse, ReversePaymentRequest
from credit_ledger.services.container import LedgerServices
from credit_ledger.services.retry import run_with_retry

router = APIRouter()


@router.post("/payments/{payment_id}/reversal", response_model=PaymentReceiptResponse, status_code=201)
def reverse_payment(
    payment_id: str,
    request_body: ReversePaymentRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    """Append a negative correcting entry for a mistaken payment"""
    receipt = run_with_retry(
        lambda: services.payments.reverse_payment(
            tenant_id=tenant_id,
            payment_id=payment_id,
            reason=request_body.reason,
            reversed_by=request_body.reversed_by,
        )
    )
    return PaymentReceiptResponse.model_validate(receipt)
