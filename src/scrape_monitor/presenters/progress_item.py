"""
View models for per-account scraping progress.

Rendering is a pure function of the progress record, the local expand flag
and the reference time; it never mutates the record.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.progress import ScrapingProgress
from ..models.status import StatusClass, friendly_label, stage_value
from ..services.progress_tracker import ProgressTracker
from ..utils.relative_time import relative_time, utc_now


class StatusIcon(str, Enum):
    """Icon shown next to an account."""
    SPINNER = "spinner"
    CHECK = "check"
    CROSS = "cross"


ICONS = {
    StatusClass.LOADING: StatusIcon.SPINNER,
    StatusClass.SUCCESS: StatusIcon.CHECK,
    StatusClass.ERROR: StatusIcon.CROSS,
}


class HistoryRow(BaseModel):
    """One rendered history entry."""
    label: str
    age: str
    message: Optional[str] = None


class ProgressDetails(BaseModel):
    """Disclosed part of a progress item."""
    error_message: Optional[str] = None
    last_update: str
    history: List[HistoryRow] = Field(default_factory=list)


class ProgressItemView(BaseModel):
    """Rendered progress item for one account."""
    key: str = Field(..., description="Account number used to address the item")
    account_name: str
    account_number: str = Field(..., description="Last four digits only")
    status: Optional[str] = None
    badge: str
    icon: StatusIcon
    tone: StatusClass
    can_expand: bool
    expanded: bool
    details: Optional[ProgressDetails] = None


class AccountProgressItem:
    """Presenter for a single account's progress with local expand state."""

    def __init__(self, progress: ScrapingProgress, expanded: bool = False):
        self.progress = progress
        self.expanded = expanded

    @property
    def badge(self) -> str:
        return friendly_label(self.progress.status)

    @property
    def tone(self) -> StatusClass:
        return self.progress.status_class

    @property
    def icon(self) -> StatusIcon:
        return ICONS[self.tone]

    @property
    def can_expand(self) -> bool:
        """History is the only thing to disclose."""
        return len(self.progress.history) > 0

    def toggle(self) -> bool:
        """Flip the expand state. No-op when there is nothing to disclose."""
        if self.can_expand:
            self.expanded = not self.expanded
        return self.expanded

    def render(self, now: Optional[datetime] = None) -> ProgressItemView:
        """Build the view for the current state of the record."""
        now = now or utc_now()
        progress = self.progress
        show_details = self.expanded and self.can_expand

        return ProgressItemView(
            key=progress.account_number,
            account_name=progress.account_name,
            account_number=progress.masked_account_number,
            status=stage_value(progress.status),
            badge=self.badge,
            icon=self.icon,
            tone=self.tone,
            can_expand=self.can_expand,
            expanded=show_details,
            details=self._render_details(now) if show_details else None,
        )

    def _render_details(self, now: datetime) -> ProgressDetails:
        progress = self.progress
        error_message = progress.error_message

        if progress.last_update_time is not None:
            last_update = relative_time(progress.last_update_time, add_suffix=True, now=now)
        else:
            last_update = "N/A"

        rows = []
        # Newest first; the stored order stays chronological
        for index, event in enumerate(reversed(progress.history)):
            message = event.message
            if index == 0 and error_message and message == error_message:
                message = None
            rows.append(HistoryRow(
                label=friendly_label(event.status),
                age=relative_time(event.timestamp, add_suffix=True, now=now),
                message=message,
            ))

        return ProgressDetails(
            error_message=error_message,
            last_update=f"Last Update: {last_update}",
            history=rows,
        )


class ProgressBoard:
    """
    Progress list for the refresh sheet.

    Keeps one presenter per account number so expand state survives
    re-renders and run resets, while always rendering the tracker's current
    record for that account.
    """

    def __init__(self, tracker: ProgressTracker):
        self.tracker = tracker
        self._items: Dict[str, AccountProgressItem] = {}

    def _item_for(self, progress: ScrapingProgress) -> AccountProgressItem:
        item = self._items.get(progress.account_number)
        if item is None:
            item = AccountProgressItem(progress)
            self._items[progress.account_number] = item
        else:
            item.progress = progress
        return item

    def toggle(self, account_number: str) -> Optional[ProgressItemView]:
        """Toggle one account's details. Returns None for unknown accounts."""
        progress = self.tracker.get(account_number)
        if progress is None:
            return None
        item = self._item_for(progress)
        item.toggle()
        return item.render()

    def render_item(self, account_number: str, now: Optional[datetime] = None) -> Optional[ProgressItemView]:
        """Render one account. Returns None for unknown accounts."""
        progress = self.tracker.get(account_number)
        if progress is None:
            return None
        return self._item_for(progress).render(now)

    def render(self, now: Optional[datetime] = None) -> List[ProgressItemView]:
        now = now or utc_now()
        return [self._item_for(progress).render(now) for progress in self.tracker.records()]
