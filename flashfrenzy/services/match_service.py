from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session as DBSession, select

from flashfrenzy.db.schemas import Match, MatchPlayer, Player
from flashfrenzy.models.match import MatchPlayerRead, MatchRead
from flashfrenzy.models.player import Identity
from flashfrenzy.services.player_service import PlayerService

logger = logging.getLogger(__name__)


class MatchService:
    def __init__(self, session: DBSession) -> None:
        self.session = session
        self.players = PlayerService(session)

    def create_match(self, identity: Identity) -> MatchRead:
        player = self.players.resolve(identity)
        match = Match(created_by=player.id)
        self.session.add(match)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to create match for player #%s", player.id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not create match. Please try again.",
            ) from exc
        self.session.refresh(match)
        self.ensure_membership(match.id, player.id)
        logger.info("Player #%s created match %s", player.id, match.id)
        return self.get_match(match.id)

    def join_match(self, match_id: UUID, identity: Identity) -> MatchRead:
        self.get_match_entity(match_id)
        player = self.players.resolve(identity)
        self.ensure_membership(match_id, player.id)
        return self.get_match(match_id)

    def ensure_membership(self, match_id: UUID, player_id: int) -> MatchPlayer:
        """Check-then-insert; joining twice returns the existing membership."""
        existing = self._find_membership(match_id, player_id)
        if existing:
            return existing
        membership = MatchPlayer(match_id=match_id, player_id=player_id)
        self.session.add(membership)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            existing = self._find_membership(match_id, player_id)
            if existing:
                return existing
            logger.exception("Failed to join player #%s to match %s", player_id, match_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not join match. Please try again.",
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to join player #%s to match %s", player_id, match_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not join match. Please try again.",
            ) from exc
        self.session.refresh(membership)
        logger.info("Player #%s joined match %s", player_id, match_id)
        return membership

    def get_match(self, match_id: UUID) -> MatchRead:
        match = self.get_match_entity(match_id)
        return MatchRead(
            id=match.id,
            created_by=match.created_by,
            created_at=match.created_at,
            players=self.list_players(match_id),
        )

    def list_players(self, match_id: UUID) -> List[MatchPlayerRead]:
        match = self.get_match_entity(match_id)
        rows = self.session.exec(
            select(MatchPlayer, Player)
            .join(Player, Player.id == MatchPlayer.player_id)
            .where(MatchPlayer.match_id == match_id)
            .order_by(MatchPlayer.id)
        ).all()
        return [
            MatchPlayerRead(
                player_id=player.id,
                name=player.name,
                is_host=player.id == match.created_by,
                joined_at=membership.joined_at,
            )
            for membership, player in rows
        ]

    def get_match_entity(self, match_id: UUID) -> Match:
        match = self.session.get(Match, match_id)
        if not match:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
        return match

    def _find_membership(self, match_id: UUID, player_id: int) -> Optional[MatchPlayer]:
        statement = (
            select(MatchPlayer)
            .where(MatchPlayer.match_id == match_id)
            .where(MatchPlayer.player_id == player_id)
        )
        return self.session.exec(statement).first()
