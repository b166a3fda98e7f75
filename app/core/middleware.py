"""Custom middleware for request handling"""
import uuid
import time
import logging
from starlette.requests import Request

from app.utils.my_logging import correlation_id_var

logger = logging.getLogger(__name__)


async def correlation_id_middleware(request: Request, call_next):
    """Add correlation ID to all requests for tracing"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    token = correlation_id_var.set(correlation_id)

    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)

    response.headers["X-Correlation-ID"] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log all incoming requests"""
    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path}")

    response = await call_next(request)

    duration_ms = round((time.time() - start_time) * 1000, 2)
    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"-> {response.status_code} in {duration_ms}ms"
    )

    return response
