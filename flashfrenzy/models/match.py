from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from flashfrenzy.models.score import PlayerScore

MatchPhase = Literal["no_round", "in_progress", "answered", "completed"]


class MatchPlayerRead(BaseModel):
    player_id: int
    name: str
    is_host: bool = False
    joined_at: datetime


class MatchRead(BaseModel):
    id: UUID
    created_by: int
    created_at: datetime
    players: List[MatchPlayerRead] = Field(default_factory=list)


class RoundRead(BaseModel):
    id: int
    match_id: UUID
    flashcard_id: int
    question: str
    options: List[str]
    correct_answer: str
    answered_by: Optional[int] = None
    is_correct: Optional[bool] = None
    created_at: datetime
    answered_at: Optional[datetime] = None


class MatchState(BaseModel):
    match_id: UUID
    phase: MatchPhase
    used_flashcard_ids: List[int] = Field(default_factory=list)
    total_flashcards: int
    current_question_number: int
    current_round: Optional[RoundRead] = None


class RoundStartRead(BaseModel):
    match_id: UUID
    status: Literal["in_progress", "completed"]
    round: Optional[RoundRead] = None


class AnswerCreate(BaseModel):
    answer: str


class AnswerResultRead(BaseModel):
    round: RoundRead
    player_id: int
    answer: str
    is_correct: bool
    correct_answer: str
    scores: Optional[List[PlayerScore]] = None
    auto_advance_seconds: float = 0.0
