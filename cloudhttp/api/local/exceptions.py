"""
Exception handlers of the local server.

Errors are answered as JSON: {"message": ..., "detail": ...}.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..exceptions import CloudHttpError, StaticSourceError

logger = logging.getLogger("cloudhttp.api.local")


class UpstreamError(CloudHttpError):
    """Raised when a proxied upstream cannot be reached."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"Upstream request failed for {url}: {cause}")


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "detail": str(exc)},
    )


async def cloudhttp_exception_handler(request: Request, exc: CloudHttpError):
    """
    Handler for errors raised by the routing core.
    """
    if isinstance(exc, UpstreamError):
        status_code = status.HTTP_502_BAD_GATEWAY
        message = "Bad Gateway"
    elif isinstance(exc, StaticSourceError):
        status_code = status.HTTP_404_NOT_FOUND
        message = "Not Found"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        message = "Internal Server Error"

    logger.error(
        str(exc),
        extra={"path": request.url.path, "method": request.method, "error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=status_code, content={"message": message, "detail": str(exc)})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})
