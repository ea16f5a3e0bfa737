import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from .config import ADMIN_API_KEY, ADMIN_HEADER_NAME
from .database import engine
from .services.change_feed import ChangeFeed, build_change_feed

_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Process-wide change feed bound to the application engine."""
    global _change_feed
    if _change_feed is None:
        _change_feed = build_change_feed(engine)
    return _change_feed


async def require_admin(
    admin_key: Optional[str] = Header(default=None, alias=ADMIN_HEADER_NAME)
) -> None:
    """Require the operator key on result entry, schedule and import endpoints."""
    if not admin_key or not secrets.compare_digest(admin_key, ADMIN_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
