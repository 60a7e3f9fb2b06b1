"""Pytest fixtures for Scrape Monitor tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

import httpx
import pytest

from scrape_monitor.services.api_client import BankBackendClient
from scrape_monitor.utils.retry import RetryConfig


NOW = datetime(2023, 3, 15, 13, 36, 40, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant (epoch millis 1678887400000)."""
    return NOW


@pytest.fixture
def minutes_ago(now) -> Callable[[float], datetime]:
    """Build instants relative to the fixed reference time."""
    def _minutes_ago(minutes: float) -> datetime:
        return now - timedelta(minutes=minutes)
    return _minutes_ago


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry policy without backoff delays."""
    return RetryConfig(
        max_attempts=2,
        min_wait=0,
        max_wait=0,
        retry_exceptions=(httpx.TransportError,)
    )


class FakeBackend:
    """
    Scripted bank backend served through httpx.MockTransport.

    Each route maps to a list of responses consumed in order; the last one
    repeats once the list is exhausted.
    """

    def __init__(self):
        self.routes: Dict[str, List[httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responses: httpx.Response):
        self.routes.setdefault(f"{method} {path}", []).extend(responses)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(f"{request.method} {request.url.path}")
        if not queue:
            return httpx.Response(404, json={"detail": "Not Found"})
        template = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(
            template.status_code,
            headers=template.headers,
            content=template.content
        )

    def client(self, retry_config: RetryConfig) -> BankBackendClient:
        return BankBackendClient(
            base_url="http://backend.test",
            retry_config=retry_config,
            transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
def backend() -> FakeBackend:
    """Empty scripted backend."""
    return FakeBackend()


@pytest.fixture
def status_payload() -> Callable[..., dict]:
    """Build GET /api/v1/refresh/status bodies keyed by account number."""
    def _payload(refresh_in_progress: bool, accounts: Dict[str, dict]) -> dict:
        return {
            "progressMap": {
                number: {"accountNumber": number, **detail}
                for number, detail in accounts.items()
            },
            "refreshInProgress": refresh_in_progress,
        }
    return _payload
