"""
Refresh sheet behaviour: trigger a full refresh and poll its progress.

The session is the refresh-trigger action for the orchestrator: when a run
finishes without failures it calls RefreshOrchestrator.on_refresh_success().
"""
import asyncio
import contextlib
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..api.exceptions import BackendError
from ..core.config import settings
from ..core.logging import logger
from ..presenters.progress_item import ProgressBoard, ProgressItemView
from ..presenters.refresh_bar import last_successful_refresh_text
from .api_client import BankBackendClient
from .progress_tracker import ProgressTracker
from .refresh_orchestrator import RefreshOrchestrator


class RefreshPhase(str, Enum):
    """Phase of the refresh sheet."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


BUTTON_LABELS = {
    RefreshPhase.IDLE: "Refresh All",
    RefreshPhase.LOADING: "Refreshing...",
    RefreshPhase.SUCCESS: "Refresh Started!",
    RefreshPhase.ERROR: "Refresh Failed",
}

FAILED_ACCOUNTS_MESSAGE = "One or more accounts failed to refresh. See details below."
SUCCESS_MESSAGE = "Refresh completed successfully."


class RefreshSessionView(BaseModel):
    """Rendered refresh sheet."""
    phase: RefreshPhase
    button_label: str
    button_enabled: bool
    message: Optional[str] = None
    last_refresh: str
    refresh_in_progress: bool
    progress: List[ProgressItemView] = Field(default_factory=list)


class RefreshSession:
    """
    Drives one refresh run from trigger to completion.

    Polling runs in a background task that close() cancels. close() also
    bumps the session generation, so a trigger or status request still in
    flight when the sheet closes leaves no trace once it returns.
    """

    def __init__(
        self,
        client: BankBackendClient,
        tracker: ProgressTracker,
        orchestrator: RefreshOrchestrator,
        board: Optional[ProgressBoard] = None,
        poll_interval: Optional[float] = None
    ):
        self.client = client
        self.tracker = tracker
        self.orchestrator = orchestrator
        self.board = board or ProgressBoard(tracker)
        self.poll_interval = poll_interval if poll_interval is not None else settings.REFRESH_POLL_INTERVAL
        self.phase = RefreshPhase.IDLE
        self.message: Optional[str] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def button_label(self) -> str:
        return BUTTON_LABELS[self.phase]

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def last_refresh_text(self, now: Optional[datetime] = None) -> str:
        return last_successful_refresh_text(self.orchestrator.last_refresh_time, now=now)

    def _set_phase(self, phase: RefreshPhase, message: Optional[str] = None):
        if phase is not self.phase:
            logger.info(f"Refresh session: {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.message = message

    async def open(self):
        """Load the current status; resume polling if a refresh is already running."""
        generation = self._generation
        try:
            snapshot = await self.client.get_refresh_status()
        except BackendError as e:
            if generation != self._generation:
                return
            logger.error(f"Failed to load refresh status: {e}")
            self._set_phase(RefreshPhase.ERROR, f"Failed to get refresh status: {e.message}")
            return

        if generation != self._generation:
            logger.debug("Discarding refresh status: session closed while loading")
            return

        self.tracker.apply_snapshot(snapshot)
        if snapshot.refresh_in_progress:
            self._set_phase(RefreshPhase.LOADING)
            self._start_polling(poll_first=False)

    async def refresh(self, master_key: str) -> bool:
        """
        Trigger a full refresh and start polling its progress.

        Args:
            master_key: Forwarded to the backend as X-Master-Key

        Returns:
            True if the backend accepted the trigger
        """
        if self.phase is RefreshPhase.LOADING:
            logger.info("Refresh already in progress, ignoring trigger")
            return False

        self._set_phase(RefreshPhase.LOADING)
        generation = self._generation

        try:
            await self.client.trigger_full_refresh(master_key)
        except BackendError as e:
            if generation != self._generation:
                logger.debug("Discarding trigger failure: session closed")
                return False
            logger.error(f"Failed to trigger refresh: {e}")
            self._set_phase(RefreshPhase.ERROR, e.message or "Failed to trigger refresh. Please try again.")
            return False

        if generation != self._generation:
            logger.info("Refresh accepted after the session closed, not polling")
            return True

        self.tracker.start_run()
        self._start_polling(poll_first=True)
        return True

    def _start_polling(self, poll_first: bool):
        if self.is_polling:
            return
        self._poll_task = asyncio.create_task(self._poll_loop(poll_first))

    async def _poll_loop(self, poll_first: bool):
        if not poll_first:
            await asyncio.sleep(self.poll_interval)

        while True:
            try:
                snapshot = await self.client.get_refresh_status()
            except BackendError as e:
                logger.error(f"Polling refresh status failed: {e}")
                self._set_phase(RefreshPhase.ERROR, f"Failed to get refresh status: {e.message}")
                return

            self.tracker.apply_snapshot(snapshot)
            if not snapshot.refresh_in_progress:
                await self._finish()
                return

            await asyncio.sleep(self.poll_interval)

    async def _finish(self):
        # A run with failed accounts still completed; the last scrape time may have moved
        if self.tracker.has_failures():
            self._set_phase(RefreshPhase.ERROR, FAILED_ACCOUNTS_MESSAGE)
        else:
            self._set_phase(RefreshPhase.SUCCESS, SUCCESS_MESSAGE)
        await self.orchestrator.on_refresh_success()

    async def wait(self):
        """Wait for the current polling task, if any, to finish."""
        if self._poll_task is not None:
            await self._poll_task

    async def close(self):
        """Stop polling and reset the sheet."""
        self._generation += 1
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            logger.info("Refresh session closed while polling")
        self._set_phase(RefreshPhase.IDLE)

    def render(self, now: Optional[datetime] = None) -> RefreshSessionView:
        return RefreshSessionView(
            phase=self.phase,
            button_label=self.button_label,
            button_enabled=self.phase is not RefreshPhase.LOADING,
            message=self.message,
            last_refresh=self.last_refresh_text(now),
            refresh_in_progress=self.tracker.refresh_in_progress,
            progress=self.board.render(now),
        )
