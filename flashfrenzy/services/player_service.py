from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session as DBSession, select

from flashfrenzy.config.settings import Settings, get_settings
from flashfrenzy.db.schemas import Player
from flashfrenzy.models.player import Identity, PlayerRead

logger = logging.getLogger(__name__)


def display_name_for(identity: Identity, default: str) -> str:
    """Profile name, else the local part of the email, else ``default``."""
    if identity.display_name and identity.display_name.strip():
        return identity.display_name.strip()
    if identity.email:
        local_part = identity.email.split("@", 1)[0].strip()
        if local_part:
            return local_part
    return default


class PlayerService:
    def __init__(self, session: DBSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    def get_profile(self, identity: Identity) -> PlayerRead:
        return PlayerRead.model_validate(self.resolve(identity))

    def resolve(self, identity: Identity) -> Player:
        """Get-or-create the Player row for an authenticated identity."""
        player = self._find_by_user_id(identity.user_id)
        if player:
            return player
        entity = Player(
            user_id=identity.user_id,
            name=display_name_for(identity, self.settings.default_player_name),
            email=identity.email,
        )
        self.session.add(entity)
        try:
            self.session.commit()
        except IntegrityError:
            # another request created the row between our lookup and insert
            self.session.rollback()
            existing = self._find_by_user_id(identity.user_id)
            if existing:
                logger.info("Player for user %s was created concurrently; reusing #%s", identity.user_id, existing.id)
                return existing
            logger.exception("Player insert for user %s failed", identity.user_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not create your player profile. Please try again.",
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Player insert for user %s failed", identity.user_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not create your player profile. Please try again.",
            ) from exc
        self.session.refresh(entity)
        logger.info("Created player #%s for user %s", entity.id, identity.user_id)
        return entity

    def _find_by_user_id(self, user_id: str) -> Optional[Player]:
        statement = select(Player).where(Player.user_id == user_id).order_by(Player.id)
        return self.session.exec(statement).first()
