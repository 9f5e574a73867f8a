from .flashcard import Flashcard
from .player import Player
from .match import Match, MatchPlayer, Round, RoundAttempt

__all__ = [
    "Flashcard",
    "Player",
    "Match",
    "MatchPlayer",
    "Round",
    "RoundAttempt",
]
