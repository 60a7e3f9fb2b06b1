"""
Owner of the "last successful refresh" timestamp.

The orchestrator fetches the last scrape time when mounted and again whenever
a refresh completes. Fetch failures never propagate: they are logged and
surface as "no timestamp".
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from ..core.logging import logger
from ..presenters.refresh_bar import refresh_bar_text
from ..utils.relative_time import Timestamp


LastScrapeTimeFetcher = Callable[[], Awaitable[Optional[Timestamp]]]


class RefreshState(BaseModel):
    """Observable refresh state."""
    is_loading: bool = True
    last_refresh_time: Optional[Timestamp] = None


class RefreshOrchestrator:
    """
    Fetch/refetch protocol for the last refresh time.

    Every fetch takes a sequence number and only the most recently issued
    fetch may write its outcome, so an older request resolving late cannot
    overwrite a newer one. After unmount() all outcomes are discarded.
    """

    def __init__(self, fetch_last_scrape_time: LastScrapeTimeFetcher):
        self._fetch = fetch_last_scrape_time
        self._state = RefreshState()
        self._sequence = 0
        self._closed = False
        self._mount_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> RefreshState:
        return self._state.model_copy()

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def last_refresh_time(self) -> Optional[Timestamp]:
        return self._state.last_refresh_time

    @property
    def fetch_count(self) -> int:
        """Number of fetches issued so far."""
        return self._sequence

    @property
    def closed(self) -> bool:
        return self._closed

    def display_text(self, now: Optional[datetime] = None) -> str:
        return refresh_bar_text(self._state.is_loading, self._state.last_refresh_time, now=now)

    async def fetch_last_refresh(self) -> RefreshState:
        """
        Fetch the last scrape time and publish the outcome.

        Returns:
            The state after this call; unchanged if the outcome was discarded
        """
        self._sequence += 1
        ticket = self._sequence

        if not self._closed:
            self._state = RefreshState(
                is_loading=True,
                last_refresh_time=self._state.last_refresh_time
            )

        try:
            value = await self._fetch()
        except Exception as e:
            logger.error(f"Failed to fetch last scrape time: {e}")
            value = None

        if self._closed:
            logger.debug(f"Discarding last scrape time fetch #{ticket}: orchestrator unmounted")
            return self.state

        if ticket != self._sequence:
            logger.debug(f"Discarding stale last scrape time fetch #{ticket} (latest is #{self._sequence})")
            return self.state

        self._state = RefreshState(is_loading=False, last_refresh_time=value)
        return self.state

    async def on_refresh_success(self) -> RefreshState:
        """Re-synchronize after a refresh run completed."""
        logger.info("Refresh completed, re-fetching last scrape time")
        return await self.fetch_last_refresh()

    def mount(self) -> asyncio.Task:
        """Start the initial fetch. Must be called from a running event loop."""
        self._closed = False
        self._mount_task = asyncio.create_task(self.fetch_last_refresh())
        return self._mount_task

    def unmount(self):
        """Stop applying results. The initial fetch is cancelled; other pending fetches finish but are ignored."""
        self._closed = True
        if self._mount_task is not None and not self._mount_task.done():
            self._mount_task.cancel()
        self._mount_task = None
