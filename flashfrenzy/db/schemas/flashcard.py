from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


class Flashcard(SQLModel, table=True):
    __tablename__ = "flashcards"

    id: Optional[int] = Field(default=None, primary_key=True)
    question: str
    options: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    correct_answer: str
    created_by: Optional[int] = Field(default=None, foreign_key="players.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
