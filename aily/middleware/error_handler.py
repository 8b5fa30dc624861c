"""
Error handling middleware.

Unhandled exceptions are logged with their traceback and turned into a JSON
500. The exception message is only exposed outside production.
"""
import logging
import traceback
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from aily.core.config import settings

logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catches anything the routes did not turn into an HTTP response."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"💥 Unhandled exception on {request.method} {request.url.path}: "
                f"{type(e).__name__}: {e}\n{traceback.format_exc()}"
            )

            content = {"detail": "Internal server error", "type": type(e).__name__}
            if not settings.is_production:
                content["detail"] = f"Internal server error: {str(e)}"
            return JSONResponse(status_code=500, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Log each validation error before returning the standard 422 body."""
    logger.warning(f"🚨 422 on {request.method} {request.url.path}")
    for error in exc.errors():
        logger.warning(
            f"   • {' -> '.join(str(loc) for loc in error['loc'])}: "
            f"{error['msg']} ({error['type']})"
        )

    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())}
    )


def setup_error_middleware(app):
    """
    Add error handling middleware to the FastAPI app.
    """
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    logger.info("🛡️  Error handling middleware enabled")
