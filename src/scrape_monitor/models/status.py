"""
Scraping lifecycle stages and their classification.

A stage is either a known ScrapingStatus or an UnknownStatus wrapping a raw
value sent by a newer backend. Classification and labels are derived from the
stage on demand and never stored.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ScrapingStatus(str, Enum):
    """Stages a per-account scrape passes through."""
    PENDING = "PENDING"
    ACQUIRING_PERMIT = "ACQUIRING_PERMIT"
    LOGIN_STARTED = "LOGIN_STARTED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    SCRAPING_STARTED = "SCRAPING_STARTED"
    SCRAPING_BANK_STARTED = "SCRAPING_BANK_STARTED"
    SCRAPING_CC_STARTED = "SCRAPING_CC_STARTED"
    SCRAPING_SUCCESS = "SCRAPING_SUCCESS"
    SCRAPING_FAILED = "SCRAPING_FAILED"
    LOGOUT_STARTED = "LOGOUT_STARTED"
    LOGOUT_SUCCESS = "LOGOUT_SUCCESS"
    LOGOUT_FAILED = "LOGOUT_FAILED"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class UnknownStatus:
    """A stage this client does not know about yet."""
    raw: str

    def __str__(self) -> str:
        return self.raw


Stage = Union[ScrapingStatus, UnknownStatus]


class StatusClass(str, Enum):
    """Derived UI state of a stage."""
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


ERROR_STATUSES = frozenset({
    ScrapingStatus.LOGIN_FAILED,
    ScrapingStatus.SCRAPING_FAILED,
    ScrapingStatus.LOGOUT_FAILED,
    ScrapingStatus.ERROR,
})

SUCCESS_STATUSES = frozenset({ScrapingStatus.COMPLETED})

STATUS_LABELS = {
    ScrapingStatus.PENDING: "Queued",
    ScrapingStatus.ACQUIRING_PERMIT: "Waiting for Bank",
    ScrapingStatus.LOGIN_STARTED: "Logging In...",
    ScrapingStatus.LOGIN_SUCCESS: "Logged In",
    ScrapingStatus.LOGIN_FAILED: "Login Failed",
    ScrapingStatus.SCRAPING_STARTED: "Fetching Data...",
    ScrapingStatus.SCRAPING_BANK_STARTED: "Fetching Bank Data...",
    ScrapingStatus.SCRAPING_CC_STARTED: "Fetching Card Data...",
    ScrapingStatus.SCRAPING_SUCCESS: "Data Fetched",
    ScrapingStatus.SCRAPING_FAILED: "Fetching Failed",
    ScrapingStatus.LOGOUT_STARTED: "Logging Out...",
    ScrapingStatus.LOGOUT_SUCCESS: "Logged Out",
    ScrapingStatus.LOGOUT_FAILED: "Logout Failed",
    ScrapingStatus.COMPLETED: "Completed",
    ScrapingStatus.ERROR: "Error",
}

# Adding a member without a label must fail at import, not at render time
_missing_labels = set(ScrapingStatus) - set(STATUS_LABELS)
if _missing_labels:
    raise RuntimeError(f"Missing labels for statuses: {sorted(s.value for s in _missing_labels)}")


def parse_status(raw: Union[str, Stage, None]) -> Optional[Stage]:
    """Map a wire value onto a stage. Never raises."""
    if raw is None or isinstance(raw, (ScrapingStatus, UnknownStatus)):
        return raw
    try:
        return ScrapingStatus(str(raw).strip().upper())
    except ValueError:
        return UnknownStatus(str(raw))


def classify(stage: Optional[Stage]) -> StatusClass:
    """Classify a stage as loading, success or error.

    Unknown and absent stages count as still working.
    """
    if isinstance(stage, ScrapingStatus):
        if stage in ERROR_STATUSES:
            return StatusClass.ERROR
        if stage in SUCCESS_STATUSES:
            return StatusClass.SUCCESS
        return StatusClass.LOADING
    return StatusClass.LOADING


def is_error(stage: Optional[Stage]) -> bool:
    """True for stages in the error set."""
    return classify(stage) is StatusClass.ERROR


def is_terminal(stage: Optional[Stage]) -> bool:
    """True once a stage has finished, successfully or not."""
    return classify(stage) is not StatusClass.LOADING


def _humanize(raw: str) -> str:
    text = raw.replace("_", " ")
    return text[:1].upper() + text[1:].lower()


def friendly_label(stage: Optional[Stage]) -> str:
    """User-facing label for a stage."""
    if stage is None:
        return "Unknown"
    if isinstance(stage, ScrapingStatus):
        return STATUS_LABELS[stage]
    return _humanize(stage.raw)


def stage_value(stage: Optional[Stage]) -> Optional[str]:
    """Wire representation of a stage."""
    if stage is None:
        return None
    if isinstance(stage, ScrapingStatus):
        return stage.value
    return stage.raw
