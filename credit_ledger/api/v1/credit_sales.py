"""Credit sale endpoints - issuance, lookup, payments and write-off"""

from fastapi import APIRouter, Depends

from credit_ledger.api.dependencies import get_services, get_tenant_id
from credit_ledger.api.v1.schemas import (
    ApplyPaymentRequest,
    CreditSaleResponse,
    IssueCreditRequest,
    PaymentReceiptResponse,
    PaymentResponse,
    WriteOffRequest,
)
from credit_ledger.services.container import LedgerServices
from credit_ledger.services.retry import run_with_retry

router = APIRouter()


@router.post("/credit-sales", response_model=CreditSaleResponse, status_code=201)
def issue_credit(
    request_body: IssueCreditRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    """
    Extend credit for a sale marked "pay later".

    Rejected with 409 credit_limit_exceeded when the customer's balance plus
    this amount is over their limit, unless approved_by is supplied.
    """
    view = run_with_retry(
        lambda: services.issuance.issue_credit(
            tenant_id=tenant_id,
            customer_id=request_body.customer_id,
            sale_id=request_body.sale_id,
            amount_cents=request_body.amount_cents,
            due_date=request_body.due_date,
            terms_in_days=request_body.terms_in_days,
            interest_rate=request_body.interest_rate,
            approved_by=request_body.approved_by,
            notes=request_body.notes,
            issued_on=request_body.issued_on,
        )
    )
    return CreditSaleResponse.model_validate(view)


@router.get("/credit-sales/{credit_sale_id}", response_model=CreditSaleResponse)
def get_credit_sale(
    credit_sale_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    view = services.queries.get_credit_sale(tenant_id, credit_sale_id)
    return CreditSaleResponse.model_validate(view)


@router.post("/credit-sales/{credit_sale_id}/payments", response_model=PaymentReceiptResponse, status_code=201)
def apply_payment(
    credit_sale_id: str,
    request_body: ApplyPaymentRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    """Pay down one credit sale; amounts above the remaining balance are rejected"""
    receipt = run_with_retry(
        lambda: services.payments.apply_payment(
            tenant_id=tenant_id,
            credit_sale_id=credit_sale_id,
            amount_cents=request_body.amount_cents,
            method=request_body.method,
            received_by=request_body.received_by,
            reference=request_body.reference,
            notes=request_body.notes,
            payment_date=request_body.payment_date,
        )
    )
    return PaymentReceiptResponse.model_validate(receipt)


@router.get("/credit-sales/{credit_sale_id}/payments", response_model=list[PaymentResponse])
def list_payments(
    credit_sale_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    payments = services.queries.list_payments(tenant_id, credit_sale_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.post("/credit-sales/{credit_sale_id}/write-off", response_model=CreditSaleResponse)
def write_off(
    credit_sale_id: str,
    request_body: WriteOffRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    view = run_with_retry(
        lambda: services.payments.write_off(
            tenant_id=tenant_id,
            credit_sale_id=credit_sale_id,
            approved_by=request_body.approved_by,
            reason=request_body.reason,
        )
    )
    return CreditSaleResponse.model_validate(view)
