"""Custom exceptions and their HTTP handlers."""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Dict, Any, Optional

from ..core.logging import logger


class ScrapeMonitorException(Exception):
    """Base exception for scrape monitor errors."""

    def __init__(self, message: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class BackendError(ScrapeMonitorException):
    """Raised when the bank backend cannot be reached or answers with an error."""

    def __init__(self, message: str, backend_status: Optional[int] = None, path: Optional[str] = None):
        super().__init__(
            message,
            status_code=502,
            details={"backend_status": backend_status, "path": path}
        )
        self.backend_status = backend_status


class UnknownAccountError(ScrapeMonitorException):
    """Raised when no progress is tracked for an account."""

    def __init__(self, account_number: str):
        super().__init__(
            f"No progress tracked for account ending {account_number[-4:]}",
            status_code=404,
            details={"account": account_number[-4:]}
        )


class MissingMasterKeyError(ScrapeMonitorException):
    """Raised when a refresh is requested without the master key."""

    def __init__(self):
        super().__init__(
            "X-Master-Key header is required to trigger a refresh",
            status_code=400
        )


async def scrape_monitor_exception_handler(request: Request, exc: ScrapeMonitorException):
    """Handle scrape monitor exceptions."""
    logger.error(f"Scrape monitor error: {exc.message}", extra={"details": exc.details})

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "type": "scrape_monitor_error",
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with proper logging."""
    logger.warning(
        f"HTTP error: {exc.status_code} - {exc.detail}",
        extra={"path": str(request.url), "method": request.method}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "type": "http_error"
        }
    )


# Exception handler registry
exception_handlers = {
    ScrapeMonitorException: scrape_monitor_exception_handler,
    HTTPException: http_exception_handler,
}
