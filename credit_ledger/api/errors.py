"""Maps ledger errors to HTTP responses with their numeric context"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from credit_ledger.domain.exceptions import (
    ConcurrencyConflict,
    CreditLimitExceeded,
    DomainException,
    DuplicateCreditSale,
    NotFound,
    OverpaymentRejected,
    StorageFailure,
    TenantIsolationError,
    TenantRequired,
    ValidationError,
)

# Checked in order; subclasses before their bases
STATUS_BY_ERROR = [
    (TenantRequired, 401),
    (ValidationError, 422),
    (NotFound, 404),
    (CreditLimitExceeded, 409),
    (OverpaymentRejected, 409),
    (DuplicateCreditSale, 409),
    (ConcurrencyConflict, 409),
    (StorageFailure, 500),
]


def status_for(error: DomainException) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 400


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def handle_domain_exception(request: Request, exc: DomainException) -> JSONResponse:
        status_code = status_for(exc)
        detail = "Internal storage error" if isinstance(exc, StorageFailure) else str(exc)
        headers = {"Retry-After": "1"} if exc.retryable else None
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.kind, "detail": detail, **exc.context()},
            headers=headers,
        )

    @app.exception_handler(TenantIsolationError)
    async def handle_tenant_isolation(request: Request, exc: TenantIsolationError) -> JSONResponse:
        logging.critical(
            f"Tenant isolation violated: {exc}",
            extra={"request_id": getattr(request.state, "request_id", "unknown")},
        )
        return JSONResponse(status_code=500, content={"error": "internal_error", "detail": "Internal server error"})
