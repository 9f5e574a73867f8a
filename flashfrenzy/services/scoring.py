from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlmodel import Session as DBSession, select

from flashfrenzy.db.schemas import Match, MatchPlayer, Player, Round, RoundAttempt
from flashfrenzy.models.score import MatchResultsRead, MatchStats, PlayerResult, PlayerScore


class ScoredAttempt(NamedTuple):
    player_id: int
    is_correct: bool
    name: Optional[str] = None
    created_at: Optional[datetime] = None


def aggregate_scores(
    attempts: Iterable[ScoredAttempt],
    players: Iterable[Tuple[int, str]] = (),
) -> List[PlayerScore]:
    """Count correct attempts per player, highest score first.

    ``players`` seeds the board with zero scores in join order; players that
    only appear in ``attempts`` follow in encounter order. Ties keep that order.
    """
    board: Dict[int, PlayerScore] = {}
    for player_id, name in players:
        board.setdefault(player_id, PlayerScore(player_id=player_id, name=name))
    for attempt in attempts:
        entry = board.get(attempt.player_id)
        if entry is None:
            entry = board[attempt.player_id] = PlayerScore(player_id=attempt.player_id, name=attempt.name)
        entry.answered += 1
        if attempt.is_correct:
            entry.score += 1
    return sorted(board.values(), key=lambda item: item.score, reverse=True)


def rank_results(scores: List[PlayerScore]) -> List[PlayerResult]:
    ranked = sorted(scores, key=lambda item: item.score, reverse=True)
    return [
        PlayerResult(
            **entry.model_dump(),
            position=index + 1,
            accuracy=(entry.score / entry.answered * 100) if entry.answered else 0.0,
        )
        for index, entry in enumerate(ranked)
    ]


def summarize_match(scores: List[PlayerScore], attempts: List[ScoredAttempt]) -> MatchStats:
    total_players = len(scores)
    highest = max((entry.score for entry in scores), default=0)
    average = sum(entry.score for entry in scores) / total_players if total_players else 0.0
    timestamps = [attempt.created_at for attempt in attempts if attempt.created_at is not None]
    duration = 0
    if timestamps:
        duration = round((max(timestamps) - min(timestamps)).total_seconds() / 60)
    return MatchStats(
        total_questions=max((entry.answered for entry in scores), default=0),
        total_players=total_players,
        highest_score=highest,
        average_score=round(average, 1),
        duration_minutes=duration,
    )


class ScoreService:
    def __init__(self, session: DBSession) -> None:
        self.session = session

    def scoreboard(self, match_id: UUID) -> List[PlayerScore]:
        self._ensure_match(match_id)
        return aggregate_scores(self._attempts(match_id), self._members(match_id))

    def results(self, match_id: UUID) -> MatchResultsRead:
        self._ensure_match(match_id)
        attempts = self._attempts(match_id)
        scores = aggregate_scores(attempts, self._members(match_id))
        return MatchResultsRead(
            match_id=match_id,
            results=rank_results(scores),
            stats=summarize_match(scores, attempts),
        )

    def _attempts(self, match_id: UUID) -> List[ScoredAttempt]:
        rows = self.session.exec(
            select(RoundAttempt, Player.name)
            .join(Round, Round.id == RoundAttempt.round_id)
            .join(Player, Player.id == RoundAttempt.player_id)
            .where(Round.match_id == match_id)
            .order_by(RoundAttempt.created_at, RoundAttempt.id)
        ).all()
        return [
            ScoredAttempt(
                player_id=attempt.player_id,
                is_correct=attempt.is_correct,
                name=name,
                created_at=attempt.created_at,
            )
            for attempt, name in rows
        ]

    def _members(self, match_id: UUID) -> List[Tuple[int, str]]:
        rows = self.session.exec(
            select(MatchPlayer.player_id, Player.name)
            .join(Player, Player.id == MatchPlayer.player_id)
            .where(MatchPlayer.match_id == match_id)
            .order_by(MatchPlayer.id)
        ).all()
        return [(player_id, name) for player_id, name in rows]

    def _ensure_match(self, match_id: UUID) -> None:
        if not self.session.get(Match, match_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
