from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_by: int = Field(foreign_key="players.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MatchPlayer(SQLModel, table=True):
    __tablename__ = "match_players"
    __table_args__ = (UniqueConstraint("match_id", "player_id", name="ux_match_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: UUID = Field(foreign_key="matches.id", index=True)
    player_id: int = Field(foreign_key="players.id", index=True)
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Round(SQLModel, table=True):
    __tablename__ = "rounds"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: UUID = Field(foreign_key="matches.id", index=True)
    flashcard_id: int = Field(foreign_key="flashcards.id", index=True)
    answered_by: Optional[int] = Field(default=None, foreign_key="players.id")
    is_correct: Optional[bool] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    answered_at: Optional[datetime] = None


class RoundAttempt(SQLModel, table=True):
    __tablename__ = "round_attempts"
    __table_args__ = (UniqueConstraint("round_id", "player_id", name="ux_round_attempt_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    round_id: int = Field(foreign_key="rounds.id", index=True)
    player_id: int = Field(foreign_key="players.id", index=True)
    answer: str
    is_correct: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
