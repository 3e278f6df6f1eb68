"""Request context and access logging"""
import logging
import time
import uuid

from starlette.requests import Request

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

QUIET_PREFIXES = ("/health",)


async def request_context_middleware(request: Request, call_next):
    """Attach a correlation id to the request and log its outcome"""
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    started = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    response.headers[CORRELATION_HEADER] = correlation_id
    response.headers["X-Response-Time-Ms"] = str(elapsed_ms)

    path = request.url.path
    if path.startswith(QUIET_PREFIXES):
        return response

    level = logging.INFO if "/public/" in path or response.status_code >= 500 else logging.DEBUG
    logger.log(
        level,
        f"{request.method} {path} -> {response.status_code} ({elapsed_ms}ms)",
        extra={
            "correlation_id": correlation_id,
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
            "client": request.client.host if request.client else "unknown",
        }
    )
    return response
