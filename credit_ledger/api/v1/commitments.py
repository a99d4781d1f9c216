"""Payment commitment endpoints"""

from fastapi import APIRouter, Depends

from credit_ledger.api.dependencies import get_services, get_tenant_id
from credit_ledger.api.v1.schemas import (
    CommitmentRequest,
    CommitmentResponse,
    SweepRequest,
    SweepResponse,
)
from credit_ledger.services.container import LedgerServices
from credit_ledger.services.retry import run_with_retry

router = APIRouter()


@router.post("/credit-sales/{credit_sale_id}/commitments", response_model=CommitmentResponse, status_code=201)
def record_commitment(
    credit_sale_id: str,
    request_body: CommitmentRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    commitment = run_with_retry(
        lambda: services.tracker.record_commitment(
            tenant_id=tenant_id,
            credit_sale_id=credit_sale_id,
            promised_amount_cents=request_body.promised_amount_cents,
            promised_date=request_body.promised_date,
            notes=request_body.notes,
        )
    )
    return CommitmentResponse.model_validate(commitment)


@router.get("/credit-sales/{credit_sale_id}/commitments", response_model=list[CommitmentResponse])
def list_commitments(
    credit_sale_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    commitments = services.queries.list_commitments(tenant_id, credit_sale_id)
    return [CommitmentResponse.model_validate(c) for c in commitments]


@router.post("/commitments/sweep", response_model=SweepResponse)
def sweep_overdue_commitments(
    request_body: SweepRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    """Batch-resolve commitments whose promised date has passed; safe to repeat"""
    result = run_with_retry(
        lambda: services.tracker.sweep_overdue_commitments(tenant_id, request_body.as_of)
    )
    return SweepResponse.model_validate(result)
