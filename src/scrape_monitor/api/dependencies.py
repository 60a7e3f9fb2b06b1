"""FastAPI dependencies."""
from typing import Optional

from fastapi import Header, Request

from ..services.dashboard import Dashboard
from .exceptions import MissingMasterKeyError


def get_dashboard(request: Request) -> Dashboard:
    """Dashboard created by the application lifespan."""
    return request.app.state.dashboard


def require_master_key(x_master_key: Optional[str] = Header(default=None, alias="X-Master-Key")) -> str:
    """
    Master key forwarded to the backend when triggering a refresh.

    Raises:
        MissingMasterKeyError: If the header is absent or blank
    """
    if not x_master_key or not x_master_key.strip():
        raise MissingMasterKeyError()
    return x_master_key
