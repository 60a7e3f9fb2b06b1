"""Per-session wiring of the dashboard services."""
from typing import Optional

from ..core.logging import logger
from ..presenters.progress_item import ProgressBoard
from .api_client import BankBackendClient
from .progress_tracker import ProgressTracker
from .refresh_orchestrator import RefreshOrchestrator
from .refresh_session import RefreshSession


class Dashboard:
    """
    Owns every piece of state for one UI session.

    The client is injected so tests and alternative transports can share the
    same wiring; nothing here is a module-level singleton.
    """

    def __init__(self, client: BankBackendClient, poll_interval: Optional[float] = None):
        self.client = client
        self.tracker = ProgressTracker()
        self.board = ProgressBoard(self.tracker)
        self.orchestrator = RefreshOrchestrator(client.get_last_scrape_time)
        self.session = RefreshSession(
            client,
            self.tracker,
            self.orchestrator,
            board=self.board,
            poll_interval=poll_interval
        )

    async def start(self):
        """Mount the refresh bar (initial last-refresh fetch runs in the background)."""
        logger.info("Mounting dashboard")
        self.orchestrator.mount()

    async def stop(self):
        """Tear down: stop polling, discard pending fetches, close the client."""
        logger.info("Unmounting dashboard")
        await self.session.close()
        self.orchestrator.unmount()
        await self.client.close()
