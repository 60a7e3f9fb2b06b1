"""
FastAPI routes for the refresh bar, refresh sheet and progress list.
"""
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.logging import logger
from ...models.responses import RefreshBarResponse, RefreshTriggerResponse
from ...models.wire import ProgressUpdate
from ...presenters.progress_item import ProgressItemView
from ...services.dashboard import Dashboard
from ...services.refresh_orchestrator import RefreshOrchestrator
from ...services.refresh_session import RefreshSessionView
from ..dependencies import get_dashboard, require_master_key
from ..exceptions import UnknownAccountError


router = APIRouter()


def _refresh_bar(orchestrator: RefreshOrchestrator) -> RefreshBarResponse:
    state = orchestrator.state
    return RefreshBarResponse(
        is_loading=state.is_loading,
        last_refresh_time=state.last_refresh_time,
        text=orchestrator.display_text(),
        fetch_count=orchestrator.fetch_count
    )


@router.get(
    "/refresh-bar",
    response_model=RefreshBarResponse,
    summary="Refresh bar status"
)
async def get_refresh_bar(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshBarResponse:
    """Current last-refresh state and its display text."""
    return _refresh_bar(dashboard.orchestrator)


@router.post(
    "/refresh-bar/reload",
    response_model=RefreshBarResponse,
    summary="Re-fetch the last refresh time"
)
async def reload_refresh_bar(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshBarResponse:
    """
    Fetch the last scrape time from the backend again.

    Backend failures are not errors here: the bar falls back to the
    "Refresh Accounts" prompt.
    """
    await dashboard.orchestrator.fetch_last_refresh()
    return _refresh_bar(dashboard.orchestrator)


@router.get(
    "/refresh",
    response_model=RefreshSessionView,
    summary="Refresh sheet"
)
async def get_refresh_sheet(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshSessionView:
    return dashboard.session.render()


@router.post(
    "/refresh/open",
    response_model=RefreshSessionView,
    summary="Open the refresh sheet"
)
async def open_refresh_sheet(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshSessionView:
    """Load the backend's refresh status and resume polling if a run is active."""
    await dashboard.session.open()
    return dashboard.session.render()


@router.post(
    "/refresh",
    response_model=RefreshTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger a full refresh",
    description="Trigger bank scraping on the backend and poll its progress in the background"
)
async def trigger_refresh(
    master_key: str = Depends(require_master_key),
    dashboard: Dashboard = Depends(get_dashboard)
) -> RefreshTriggerResponse:
    """
    Start a refresh run.

    - **X-Master-Key**: forwarded to the backend to unlock stored credentials

    Progress is available from GET /dashboard/refresh while the run is active.
    """
    accepted = await dashboard.session.refresh(master_key)
    logger.info(f"Refresh trigger {'accepted' if accepted else 'not accepted'}")
    return RefreshTriggerResponse(
        accepted=accepted,
        phase=dashboard.session.phase,
        message=dashboard.session.message
    )


@router.post(
    "/refresh/close",
    response_model=RefreshSessionView,
    summary="Close the refresh sheet"
)
async def close_refresh_sheet(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshSessionView:
    await dashboard.session.close()
    return dashboard.session.render()


@router.get(
    "/progress",
    response_model=List[ProgressItemView],
    summary="Per-account progress"
)
async def list_progress(dashboard: Dashboard = Depends(get_dashboard)) -> List[ProgressItemView]:
    return dashboard.board.render()


@router.post(
    "/progress",
    response_model=ProgressItemView,
    summary="Push a progress event",
    description="Append one progress event for an account, as sent by the backend's progress feed"
)
async def push_progress(
    update: ProgressUpdate,
    dashboard: Dashboard = Depends(get_dashboard)
) -> ProgressItemView:
    """
    Record a single stage transition.

    - **accountNumber**: account the event belongs to
    - **status**: stage reached; unknown stages are kept as-is
    """
    record = dashboard.tracker.apply_update(update)
    return dashboard.board.render_item(record.account_number)


@router.post(
    "/progress/{account_number}/toggle",
    response_model=ProgressItemView,
    summary="Expand or collapse an account's history"
)
async def toggle_progress(
    account_number: str,
    dashboard: Dashboard = Depends(get_dashboard)
) -> ProgressItemView:
    view = dashboard.board.toggle(account_number)
    if view is None:
        raise UnknownAccountError(account_number)
    return view
