"""Text shown for the last refresh time."""
from datetime import datetime
from typing import Optional

from ..utils.relative_time import Timestamp, relative_time

LOADING_TEXT = "Loading refresh status..."
PROMPT_TEXT = "Refresh Accounts"
NO_SUCCESSFUL_REFRESH_TEXT = "No successful refresh history found."


def refresh_bar_text(
    is_loading: bool,
    last_refresh_time: Optional[Timestamp],
    now: Optional[datetime] = None
) -> str:
    """Status line of the refresh bar."""
    if is_loading:
        return LOADING_TEXT
    if last_refresh_time is not None:
        return f"Last refresh: {relative_time(last_refresh_time, add_suffix=False, now=now)}"
    return PROMPT_TEXT


def last_successful_refresh_text(
    last_refresh_time: Optional[Timestamp],
    now: Optional[datetime] = None
) -> str:
    """Line shown at the top of the refresh sheet."""
    if last_refresh_time is None:
        return NO_SUCCESSFUL_REFRESH_TEXT
    return f"Last successful refresh: {relative_time(last_refresh_time, add_suffix=True, now=now)}"
