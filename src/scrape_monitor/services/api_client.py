"""
Async client for the bank backend's status and refresh endpoints.
"""
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..api.exceptions import BackendError
from ..core.config import settings
from ..core.logging import logger
from ..models.wire import AggregatedRefreshStatus
from ..utils.relative_time import ensure_aware
from ..utils.retry import RetryConfig

LAST_SCRAPE_TIME_PATH = "/api/v1/status/last-scrape-time"
REFRESH_STATUS_PATH = "/api/v1/refresh/status"
TRIGGER_REFRESH_PATH = "/api/v1/refresh/trigger-full-refresh"


class BankBackendClient:
    """
    httpx wrapper around the bank backend.

    Features:
    - Transport errors on read endpoints are retried with exponential backoff
    - Every failure surfaces as BackendError
    - Usable as an async context manager
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.BACKEND_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT
        self.retry_config = retry_config or RetryConfig.from_settings(
            retry_exceptions=(httpx.TransportError,)
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport
        )
        self._get_with_retry = self.retry_config.wrap(self._get)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _get(self, path: str) -> httpx.Response:
        return await self._client.get(path)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            if method == "GET":
                return await self._get_with_retry(path)
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Backend request {method} {path} failed: {e}")
            raise BackendError(f"Backend unreachable: {e}", path=path) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        message = f"HTTP error! status: {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return message
        if isinstance(body, dict):
            return body.get("message") or body.get("detail") or message
        return message

    def _raise_for_status(self, response: httpx.Response, path: str):
        if response.is_success:
            return
        message = self._error_message(response)
        logger.error(f"Backend returned {response.status_code} for {path}: {message}")
        raise BackendError(message, backend_status=response.status_code, path=path)

    @staticmethod
    def _parse_instant(value: Any) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError(f"Not a timestamp: {value!r}")
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        if isinstance(value, str):
            text = value.strip()
            if text.lstrip("-").isdigit():
                return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
            return ensure_aware(datetime.fromisoformat(text.replace("Z", "+00:00")))
        raise ValueError(f"Not a timestamp: {value!r}")

    async def get_last_scrape_time(self) -> Optional[datetime]:
        """
        Fetch the time of the last successful scrape.

        Returns:
            Aware UTC datetime, or None when the backend has no record (404)

        Raises:
            BackendError: On transport failure, error status or bad payload
        """
        response = await self._request("GET", LAST_SCRAPE_TIME_PATH)
        if response.status_code == 404:
            logger.info("Backend has no last scrape time yet")
            return None
        self._raise_for_status(response, LAST_SCRAPE_TIME_PATH)

        try:
            payload = response.json() if response.content else None
            return self._parse_instant(payload)
        except (ValueError, OverflowError, OSError) as e:
            raise BackendError(
                f"Invalid last scrape time payload: {e}",
                backend_status=response.status_code,
                path=LAST_SCRAPE_TIME_PATH
            ) from e

    async def get_refresh_status(self) -> AggregatedRefreshStatus:
        """
        Fetch the aggregated progress of the current (or last) refresh.

        Raises:
            BackendError: On transport failure, error status or bad payload
        """
        response = await self._request("GET", REFRESH_STATUS_PATH)
        self._raise_for_status(response, REFRESH_STATUS_PATH)

        try:
            return AggregatedRefreshStatus.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BackendError(
                f"Invalid refresh status payload: {e}",
                backend_status=response.status_code,
                path=REFRESH_STATUS_PATH
            ) from e

    async def trigger_full_refresh(self, master_key: str) -> str:
        """
        Ask the backend to start a full refresh (bank scraping and mail sync).

        Args:
            master_key: Key the backend uses to decrypt stored credentials

        Returns:
            Message returned by the backend

        Raises:
            BackendError: On transport failure or error status
        """
        response = await self._request(
            "POST",
            TRIGGER_REFRESH_PATH,
            headers={"X-Master-Key": master_key}
        )
        self._raise_for_status(response, TRIGGER_REFRESH_PATH)

        try:
            body = response.json()
        except ValueError:
            body = None
        message = (body.get("message") if isinstance(body, dict) else None) or "Full refresh triggered."
        logger.info(f"Backend accepted refresh trigger: {message}")
        return message
