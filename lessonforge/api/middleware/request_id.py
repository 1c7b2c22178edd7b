"""
Request correlation: every request gets an X-Request-ID (the caller's, or a
fresh one), echoed on the response and visible to log records through
``request_id_var``.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from lessonforge.api.middleware.rate_limit import is_ai_request
from lessonforge.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            elapsed_ms = (time.perf_counter() - started) * 1000
            # Generate/refine/search wait on the content provider; their time is not ours.
            if elapsed_ms > SLOW_REQUEST_MS and not is_ai_request(request.url.path, request.method):
                logger.warning(
                    "Slow request %s %s took %.0f ms",
                    request.method,
                    request.url.path,
                    elapsed_ms,
                )
            return response
        finally:
            request_id_var.reset(token)
