import logging
import random
from collections.abc import Generator
from functools import lru_cache
from typing import Callable, Optional
from uuid import UUID

from fastapi import Header, HTTPException, status
from sqlmodel import Session

from flashfrenzy.config.settings import get_settings
from flashfrenzy.db.base import get_engine
from flashfrenzy.models.player import Identity
from flashfrenzy.services.auto_advance import AutoAdvance
from flashfrenzy.services.realtime import MatchEventHub

logger = logging.getLogger(__name__)


class InvalidMatchId(Exception):
    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid match id: {raw!r}")
        self.raw = raw


def get_session() -> Generator[Session, None, None]:
    """Provide a database session for request scope."""
    engine = get_engine()
    with Session(engine) as session:
        yield session


def get_session_factory() -> Callable[[], Session]:
    """Session opener for work that outlives the request, like auto-advance."""
    engine = get_engine()
    return lambda: Session(engine)


def get_optional_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Optional[Identity]:
    """Identity forwarded by the auth proxy, or None for anonymous callers."""
    if not x_user_id or not x_user_id.strip():
        return None
    return Identity(user_id=x_user_id.strip(), email=x_user_email or None, display_name=x_user_name or None)


def get_current_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Identity:
    identity = get_optional_identity(x_user_id, x_user_email, x_user_name)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="You must be logged in")
    return identity


def parse_match_id(raw: str) -> Optional[UUID]:
    try:
        return UUID(raw)
    except (TypeError, ValueError):
        return None


def valid_match_id(match_id: str) -> UUID:
    parsed = parse_match_id(match_id)
    if parsed is None:
        logger.warning("Rejected malformed match id %r", match_id)
        raise InvalidMatchId(match_id)
    return parsed


def get_random() -> random.Random:
    return random.Random()


@lru_cache
def get_event_hub() -> MatchEventHub:
    return MatchEventHub()


@lru_cache
def get_auto_advance() -> AutoAdvance:
    return AutoAdvance(get_settings().auto_advance_seconds)
