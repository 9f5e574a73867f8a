from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session as DBSession, select

from flashfrenzy.db.schemas import Flashcard, Round, RoundAttempt
from flashfrenzy.models.flashcard import FlashcardCreate, FlashcardRead

logger = logging.getLogger(__name__)


class FlashcardService:
    def __init__(self, session: DBSession) -> None:
        self.session = session

    def list_flashcards(self) -> List[FlashcardRead]:
        rows = self.session.exec(select(Flashcard).order_by(Flashcard.id)).all()
        return [FlashcardRead.model_validate(row) for row in rows]

    def get_flashcard(self, card_id: int) -> FlashcardRead:
        return FlashcardRead.model_validate(self._get_entity(card_id))

    def create_flashcard(self, data: FlashcardCreate, created_by: Optional[int] = None) -> FlashcardRead:
        return self.import_flashcards([data], created_by=created_by)[0]

    def import_flashcards(
        self, cards: List[FlashcardCreate], created_by: Optional[int] = None
    ) -> List[FlashcardRead]:
        entities = [
            Flashcard(
                question=card.question,
                options=list(card.options),
                correct_answer=card.correct_answer,
                created_by=created_by,
            )
            for card in cards
        ]
        for entity in entities:
            self.session.add(entity)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to save %d flashcard(s)", len(entities))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not save flashcard. Please try again.",
            ) from exc
        for entity in entities:
            self.session.refresh(entity)
        logger.info("Saved %d flashcard(s)", len(entities))
        return [FlashcardRead.model_validate(entity) for entity in entities]

    def delete_flashcard(self, card_id: int) -> None:
        """Delete a flashcard together with the rounds and attempts that reference it.

        Attempts go first, then rounds, then the card itself, all inside one
        transaction: either the whole cascade commits or nothing does.
        """
        card = self._get_entity(card_id)
        rounds = self.session.exec(select(Round).where(Round.flashcard_id == card_id)).all()
        round_ids = [item.id for item in rounds]
        try:
            if round_ids:
                attempts = self.session.exec(
                    select(RoundAttempt).where(RoundAttempt.round_id.in_(round_ids))
                ).all()
                for attempt in attempts:
                    self.session.delete(attempt)
                self.session.flush()
                for item in rounds:
                    self.session.delete(item)
                self.session.flush()
            self.session.delete(card)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to delete flashcard %s", card_id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Flashcard is still used by match rounds and could not be deleted. Nothing was removed.",
            ) from exc
        logger.info("Deleted flashcard %s and %d dependent round(s)", card_id, len(round_ids))

    def _get_entity(self, card_id: int) -> Flashcard:
        card = self.session.get(Flashcard, card_id)
        if not card:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flashcard not found")
        return card
