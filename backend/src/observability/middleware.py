"""FastAPI middleware for observability.

Provides request ID propagation and logging for all HTTP requests.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import generate_request_id, set_request_id

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or create one, and log the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        start_time = time.time()
        logger.info(f"{request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {type(e).__name__} after {round(duration_ms, 2)}ms",
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(f"Request completed: {response.status_code} in {round(duration_ms, 2)}ms")

        response.headers["X-Request-ID"] = request_id
        return response
