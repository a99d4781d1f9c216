"""Request context and latency middleware"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from credit_ledger.infrastructure.observability.metrics import request_duration_histogram


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attach a request id and the calling tenant to request.state.

    An upstream X-Request-ID is kept so POS and ledger logs can be joined;
    otherwise a fresh one is minted. Every request ends with one access
    record carrying both ids.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.tenant_id = request.headers.get("X-Tenant-ID")

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logging.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "request_id": request_id,
                "tenant_id": request.state.tenant_id,
                "step": "http_request",
            },
        )
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP latency per route template"""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        # Ids live in the path, so label by the matched template instead
        route = request.scope.get("route")
        request_duration_histogram.labels(
            method=request.method,
            endpoint=getattr(route, "path", "unmatched"),
            status=response.status_code,
        ).observe(elapsed)

        return response
