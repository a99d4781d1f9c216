"""Customer-level ledger views - balance, credit sales, history, overdue"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from credit_ledger.api.dependencies import get_services, get_tenant_id
from credit_ledger.api.v1.schemas import (
    CreditHistoryResponse,
    CreditSaleResponse,
    CustomerBalanceResponse,
    OverdueItemResponse,
    OverdueResponse,
)
from credit_ledger.domain.models import CreditStatus
from credit_ledger.services.container import LedgerServices
from credit_ledger.services.retry import run_with_retry

router = APIRouter()


@router.get("/customers/{customer_id}/balance", response_model=CustomerBalanceResponse)
def get_customer_balance(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    balance = services.queries.get_customer_balance(tenant_id, customer_id)
    return CustomerBalanceResponse.model_validate(balance)


@router.get("/customers/{customer_id}/credit-sales", response_model=list[CreditSaleResponse])
def list_credit_sales_for_customer(
    customer_id: str,
    status: Optional[CreditStatus] = Query(None, description="Filter by effective status"),
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    views = services.queries.list_credit_sales_for_customer(tenant_id, customer_id, status=status)
    return [CreditSaleResponse.model_validate(v) for v in views]


@router.post("/customers/{customer_id}/credit-history/{period}", response_model=CreditHistoryResponse)
def regenerate_credit_history(
    customer_id: str,
    period: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    """Recompute the month's rollup from ledger rows, overwriting the stored row"""
    summary = run_with_retry(
        lambda: services.tracker.regenerate_credit_history(tenant_id, customer_id, period)
    )
    return CreditHistoryResponse.model_validate(summary)


@router.get("/customers/{customer_id}/credit-history/{period}", response_model=CreditHistoryResponse)
def get_credit_history(
    customer_id: str,
    period: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    summary = services.queries.get_credit_history(tenant_id, customer_id, period)
    return CreditHistoryResponse.model_validate(summary)


@router.get("/overdue", response_model=OverdueResponse)
def list_overdue(
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    as_of = as_of or date.today()
    items = services.queries.list_overdue(tenant_id, as_of)
    return OverdueResponse(as_of=as_of, items=[OverdueItemResponse.model_validate(i) for i in items])
