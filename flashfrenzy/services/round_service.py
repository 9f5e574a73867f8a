from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session as DBSession, select

from flashfrenzy.db.schemas import Flashcard, Round, RoundAttempt
from flashfrenzy.models.match import AnswerResultRead, MatchPhase, MatchState, RoundRead, RoundStartRead
from flashfrenzy.models.player import Identity
from flashfrenzy.services.match_service import MatchService
from flashfrenzy.services.player_service import PlayerService
from flashfrenzy.services.scoring import ScoreService

logger = logging.getLogger(__name__)


class RoundService:
    """Round progression for one match.

    Nothing is cached between calls: every operation rebuilds the used
    flashcard set and the current phase from the persisted rounds, so a fresh
    process sees exactly what the previous one left behind.

    Phases: ``no_round`` -> ``in_progress`` -> ``answered`` -> (``in_progress`` |
    ``completed``). A match is completed once every flashcard has a round and
    none is awaiting an answer.
    """

    def __init__(self, session: DBSession, rng: Optional[random.Random] = None) -> None:
        self.session = session
        self.rng = rng or random.Random()
        self.matches = MatchService(session)
        self.players = PlayerService(session)
        self.scores = ScoreService(session)

    def get_state(self, match_id: UUID) -> MatchState:
        self.matches.get_match_entity(match_id)
        rounds = self._rounds(match_id)
        flashcard_ids = self._flashcard_ids()
        used = [item.flashcard_id for item in rounds]
        phase = self._phase(rounds, used, flashcard_ids)
        answered = sum(1 for item in rounds if item.answered_by is not None)
        question_number = answered + 1
        if flashcard_ids:
            question_number = min(question_number, len(flashcard_ids))
        current_round = None
        if phase in ("in_progress", "answered"):
            current_round = self._to_round_read(rounds[-1])
        return MatchState(
            match_id=match_id,
            phase=phase,
            used_flashcard_ids=used,
            total_flashcards=len(flashcard_ids),
            current_question_number=question_number,
            current_round=current_round,
        )

    def start_round(self, match_id: UUID) -> RoundStartRead:
        self.matches.get_match_entity(match_id)
        rounds = self._rounds(match_id)
        if rounds and rounds[-1].answered_by is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A round is already in progress for this match",
            )
        used = {item.flashcard_id for item in rounds}
        available = [card_id for card_id in self._flashcard_ids() if card_id not in used]
        if not available:
            logger.info("Match %s completed after %d round(s)", match_id, len(rounds))
            return RoundStartRead(match_id=match_id, status="completed")
        flashcard_id = self.rng.choice(available)
        entity = Round(match_id=match_id, flashcard_id=flashcard_id)
        self.session.add(entity)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to create round for match %s", match_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not start round. Please try again.",
            ) from exc
        self.session.refresh(entity)
        logger.info(
            "Match %s round #%s started with flashcard %s (%d left)",
            match_id,
            entity.id,
            flashcard_id,
            len(available) - 1,
        )
        return RoundStartRead(match_id=match_id, status="in_progress", round=self._to_round_read(entity))

    def advance(self, match_id: UUID) -> RoundStartRead:
        """Move on from an answered round to the next one, or to completion.

        Only valid once a round has been played; an open round is rejected by
        ``start_round``.
        """
        self.matches.get_match_entity(match_id)
        if not self._rounds(match_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No round has been played yet. Start the first round instead.",
            )
        return self.start_round(match_id)

    def answer_flashcard(
        self,
        match_id: UUID,
        round_id: int,
        identity: Identity,
        answer: str,
    ) -> AnswerResultRead:
        self.matches.get_match_entity(match_id)
        entity = self.session.get(Round, round_id)
        if not entity or entity.match_id != match_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Round not found")
        if entity.answered_by is not None:
            logger.warning("Rejected answer for round #%s: already answered", round_id)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This round has already been answered")
        flashcard = self._get_flashcard(entity.flashcard_id)

        player = self.players.resolve(identity)
        self.matches.ensure_membership(match_id, player.id)

        is_correct = answer == flashcard.correct_answer
        # attempt and round outcome are committed together or not at all
        self.session.add(
            RoundAttempt(round_id=round_id, player_id=player.id, answer=answer, is_correct=is_correct)
        )
        entity.answered_by = player.id
        entity.is_correct = is_correct
        entity.answered_at = datetime.now(timezone.utc)
        self.session.add(entity)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Rejected answer for round #%s: player #%s already answered", round_id, player.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You have already answered this round",
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to record answer for round #%s", round_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not record your answer. Please try again.",
            ) from exc
        self.session.refresh(entity)
        logger.info(
            "Round #%s of match %s answered by player #%s (%s)",
            round_id,
            match_id,
            player.id,
            "correct" if is_correct else "wrong",
        )

        return AnswerResultRead(
            round=self._to_round_read(entity, flashcard),
            player_id=player.id,
            answer=answer,
            is_correct=is_correct,
            correct_answer=flashcard.correct_answer,
            scores=self.scores.scoreboard(match_id) if is_correct else None,
        )

    def _phase(self, rounds: List[Round], used: List[int], flashcard_ids: List[int]) -> MatchPhase:
        if rounds and rounds[-1].answered_by is None:
            return "in_progress"
        if set(used) == set(flashcard_ids):
            return "completed"
        if rounds:
            return "answered"
        return "no_round"

    def _rounds(self, match_id: UUID) -> List[Round]:
        statement = select(Round).where(Round.match_id == match_id).order_by(Round.id)
        return list(self.session.exec(statement).all())

    def _flashcard_ids(self) -> List[int]:
        return list(self.session.exec(select(Flashcard.id).order_by(Flashcard.id)).all())

    def _get_flashcard(self, flashcard_id: int) -> Flashcard:
        flashcard = self.session.get(Flashcard, flashcard_id)
        if not flashcard:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flashcard not found")
        return flashcard

    def _to_round_read(self, entity: Round, flashcard: Optional[Flashcard] = None) -> RoundRead:
        flashcard = flashcard or self._get_flashcard(entity.flashcard_id)
        return RoundRead(
            id=entity.id,
            match_id=entity.match_id,
            flashcard_id=entity.flashcard_id,
            question=flashcard.question,
            options=list(flashcard.options),
            correct_answer=flashcard.correct_answer,
            answered_by=entity.answered_by,
            is_correct=entity.is_correct,
            created_at=entity.created_at,
            answered_at=entity.answered_at,
        )
