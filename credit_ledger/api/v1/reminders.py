"""Payment reminder endpoints - state only, delivery happens elsewhere"""

from fastapi import APIRouter, Depends

from credit_ledger.api.dependencies import get_services, get_tenant_id
from credit_ledger.api.v1.schemas import (
    ReminderRequest,
    ReminderResponse,
    ReminderResponseRequest,
    ReminderSentRequest,
)
from credit_ledger.services.container import LedgerServices
from credit_ledger.services.retry import run_with_retry

router = APIRouter()


@router.post("/credit-sales/{credit_sale_id}/reminders", response_model=ReminderResponse, status_code=201)
def record_reminder(
    credit_sale_id: str,
    request_body: ReminderRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    reminder = run_with_retry(
        lambda: services.tracker.record_reminder(
            tenant_id, credit_sale_id, request_body.reminder_type, request_body.scheduled_date
        )
    )
    return ReminderResponse.model_validate(reminder)


@router.get("/credit-sales/{credit_sale_id}/reminders", response_model=list[ReminderResponse])
def list_reminders(
    credit_sale_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    reminders = services.queries.list_reminders(tenant_id, credit_sale_id)
    return [ReminderResponse.model_validate(r) for r in reminders]


@router.post("/reminders/{reminder_id}/sent", response_model=ReminderResponse)
def mark_reminder_sent(
    reminder_id: str,
    request_body: ReminderSentRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    reminder = run_with_retry(
        lambda: services.tracker.mark_reminder_sent(
            tenant_id, reminder_id, request_body.sent_via, request_body.sent_at
        )
    )
    return ReminderResponse.model_validate(reminder)


@router.post("/reminders/{reminder_id}/response", response_model=ReminderResponse)
def record_reminder_response(
    reminder_id: str,
    request_body: ReminderResponseRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: LedgerServices = Depends(get_services),
):
    reminder = run_with_retry(
        lambda: services.tracker.record_reminder_response(tenant_id, reminder_id, request_body.notes)
    )
    return ReminderResponse.model_validate(reminder)
