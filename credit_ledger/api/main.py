"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from credit_ledger.api.errors import register_error_handlers
from credit_ledger.api.middleware import MetricsMiddleware, RequestContextMiddleware
from credit_ledger.api.v1 import credit_sales, payments, commitments, reminders, customers
from credit_ledger.config import settings
from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.infrastructure.observability.logging import setup_logging
from credit_ledger.services.container import LedgerServices

# Setup structured logging
setup_logging(settings.log_level)


def create_app(store: LedgerStore | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    A host that passes its own store keeps ownership of it; otherwise the
    app opens one from settings at startup and disposes it at shutdown.
    """
    owns_store = store is None
    store = store or LedgerStore.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_store:
            store.create_schema()
        yield
        if owns_store:
            store.close()

    app = FastAPI(
        title="Credit Ledger",
        description="Customer credit sales, repayments and commitments for the POS",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = LedgerServices.build(store)

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(credit_sales.router, prefix="/v1", tags=["credit-sales"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(commitments.router, prefix="/v1", tags=["commitments"])
    app.include_router(reminders.router, prefix="/v1", tags=["reminders"])
    app.include_router(customers.router, prefix="/v1", tags=["customers"])

    return app


app = create_app()
