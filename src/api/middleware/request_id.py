"""
Correlation middleware.

Every request gets an X-Request-ID (the client's, or a fresh UUID). The
customize manager fills in the transaction UUID once it knows it; both ids
are carried by the logging context vars for the life of the request and
echoed back as response headers.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.config import get_settings
from src.logging_config import get_logger, request_id_var, transaction_uuid_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRANSACTION_HEADER = "X-Customize-Transaction"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind request and transaction correlation ids to logs and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        transaction_token = transaction_uuid_var.set(None)
        try:
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000

            response.headers[REQUEST_ID_HEADER] = request_id
            transaction_uuid = getattr(request.state, "transaction_uuid", None)
            if transaction_uuid:
                response.headers[TRANSACTION_HEADER] = transaction_uuid

            if duration_ms > get_settings().slow_request_ms:
                logger.warning(
                    "Slow request",
                    extra={
                        "path": request.url.path,
                        "method": request.method,
                        "duration_ms": round(duration_ms, 1),
                    },
                )
            return response
        finally:
            transaction_uuid_var.reset(transaction_token)
            request_id_var.reset(request_token)
