from __future__ import annotations

from pathlib import Path
from typing import Any, List

import yaml

from flashfrenzy.models.flashcard import FlashcardCreate


def load_deck(path: Path | str) -> List[FlashcardCreate]:
    """Read a YAML deck and validate every card in it.

    The file holds either a bare list of cards or a mapping with a
    ``flashcards`` key. Raises ``pydantic.ValidationError`` on the first bad card.
    """
    deck_path = Path(path)
    if not deck_path.exists():
        raise FileNotFoundError(f"Deck file not found: {deck_path}")
    data: Any = yaml.safe_load(deck_path.read_text(encoding="utf-8")) or []
    if isinstance(data, dict):
        data = data.get("flashcards", [])
    if not isinstance(data, list):
        raise ValueError(f"Deck {deck_path} must contain a list of flashcards")
    return [FlashcardCreate.model_validate(item) for item in data]
