"""Request/response middleware."""
import time
from fastapi import Request
from ..core.logging import logger


async def log_request_timing(request: Request, call_next):
    """
    Log each request and expose its duration in X-Process-Time.

    Args:
        request: FastAPI request object
        call_next: Next middleware callable

    Returns:
        Response with added processing time header
    """
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.error(
            f"{request.method} {request.url.path} failed after "
            f"{time.perf_counter() - started:.3f}s: {exc}"
        )
        raise

    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.6f}"
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s")
    return response
