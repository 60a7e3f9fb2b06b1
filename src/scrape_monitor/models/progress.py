"""
Per-account scraping progress.

A ScrapingProgress holds the append-only event history of one account for one
scrape run. The current status is cached from the newest event by record(),
which is the only way history grows.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..utils.relative_time import ensure_aware, utc_now
from .status import Stage, StatusClass, classify, parse_status, stage_value


@dataclass(frozen=True)
class ScrapingEvent:
    """One observed stage transition for an account."""

    status: Stage
    timestamp: datetime
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": stage_value(self.status),
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
        }


@dataclass
class ScrapingProgress:
    """Progress record for a single account."""

    account_number: str
    account_name: str
    start_time: datetime = field(default_factory=utc_now)
    last_update_time: Optional[datetime] = None
    _history: List[ScrapingEvent] = field(default_factory=list, repr=False)
    _status: Optional[Stage] = field(default=None, repr=False)
    _error_message: Optional[str] = field(default=None, repr=False)

    @property
    def history(self) -> Tuple[ScrapingEvent, ...]:
        """Events in chronological (arrival) order."""
        return tuple(self._history)

    @property
    def status(self) -> Optional[Stage]:
        """Status of the newest event, None before the first one."""
        return self._status

    @property
    def status_class(self) -> StatusClass:
        return classify(self._status)

    @property
    def error_message(self) -> Optional[str]:
        """Error context, only while the current status is an error."""
        if self.status_class is StatusClass.ERROR:
            return self._error_message
        return None

    @property
    def masked_account_number(self) -> str:
        return self.account_number[-4:]

    def record(
        self,
        status: Stage,
        timestamp: Optional[datetime] = None,
        message: Optional[str] = None
    ) -> ScrapingEvent:
        """
        Append an event and move the record to its status.

        Args:
            status: Stage reached (raw strings are parsed)
            timestamp: When the stage was reached, defaults to now
            message: Optional detail; kept as error context for error stages

        Returns:
            The appended event
        """
        stage = parse_status(status)
        event = ScrapingEvent(
            status=stage,
            timestamp=ensure_aware(timestamp) if timestamp else utc_now(),
            message=message
        )

        self._history.append(event)
        self._status = stage
        self._error_message = message if classify(stage) is StatusClass.ERROR else None

        if self.last_update_time is None or event.timestamp > self.last_update_time:
            self.last_update_time = event.timestamp

        return event

    def attach_error(self, message: Optional[str]):
        """Set error context reported out of band. Ignored unless in an error stage."""
        if message and self.status_class is StatusClass.ERROR:
            self._error_message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "account_number": self.account_number,
            "account_name": self.account_name,
            "status": stage_value(self._status),
            "status_class": self.status_class.value,
            "start_time": self.start_time.isoformat(),
            "last_update_time": self.last_update_time.isoformat() if self.last_update_time else None,
            "error_message": self.error_message,
            "history": [event.to_dict() for event in self._history],
        }
