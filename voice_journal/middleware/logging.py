"""
Request logging middleware with per-request ids.
"""
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from voice_journal.utils.logger import get_logger

logger = get_logger("middleware")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line when a request starts and one when it completes or fails.

    A caller-supplied X-Request-ID is reused; otherwise one is generated.
    The id is echoed back in the response headers.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            ip=request.client.host if request.client else "unknown",
            content_length=request.headers.get("content-length", "0")
        )

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=f"{(time.perf_counter() - start_time) * 1000:.2f}",
                error=str(e),
                exc_info=True
            )
            raise

        logger.info(
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=f"{(time.perf_counter() - start_time) * 1000:.2f}"
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
