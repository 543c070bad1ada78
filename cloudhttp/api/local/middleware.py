"""
Where: cloudhttp/api/local/middleware.py
What: Access logging for the local server.
Why: Isolate cross-cutting request concerns from app assembly.
"""

import logging
import time

from fastapi import Request

from cloudhttp.common.core.request_context import clear_request_id, generate_request_id

logger = logging.getLogger("cloudhttp.api.local")


async def access_log_middleware(request: Request, call_next):
    """Bind a request id for the request and log one access line per response."""
    start_time = time.perf_counter()
    req_id = generate_request_id()

    try:
        response = await call_next(request)
        response.headers["x-amzn-RequestId"] = req_id

        process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info(
            "%s %s %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": str(request.query_params),
                "status": response.status_code,
                "latency_ms": process_time_ms,
                "user_agent": request.headers.get("user-agent"),
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
    finally:
        clear_request_id()
