from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PlayerScore(BaseModel):
    player_id: int
    name: Optional[str] = None
    score: int = 0
    answered: int = 0


class PlayerResult(PlayerScore):
    position: int
    accuracy: float


class MatchStats(BaseModel):
    total_questions: int
    total_players: int
    highest_score: int
    average_score: float
    duration_minutes: int


class MatchResultsRead(BaseModel):
    match_id: UUID
    results: List[PlayerResult] = Field(default_factory=list)
    stats: MatchStats
