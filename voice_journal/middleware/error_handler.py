"""
Global error handlers for the FastAPI application.

Converts JournalError subclasses and unhandled exceptions into a
consistent JSON envelope.
"""
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from voice_journal.exceptions import JournalError
from voice_journal.utils.logger import get_logger

logger = get_logger("error_handler")


def register_error_handlers(app: FastAPI) -> None:
    """
    Attach exception handlers to the FastAPI application.

    Request validation errors keep FastAPI's default 422 handling.

    Args:
        app: The FastAPI application instance to register handlers on
    """

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError) -> JSONResponse:
        """Convert domain errors into a JSON error envelope."""
        logger.warning(
            "Request failed with domain error",
            path=request.url.path,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "code": exc.code,
                "timestamp": exc.timestamp,
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler so stack traces never reach clients."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            error=str(exc),
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "code": "INTERNAL_ERROR",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
