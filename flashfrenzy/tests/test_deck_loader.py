from pathlib import Path

import pytest
from pydantic import ValidationError

from flashfrenzy.services.deck_loader import load_deck


def test_load_deck_mapping(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text(
        "flashcards:\n"
        "  - question: '2+2?'\n"
        "    options: ['3', '4', '5', '6']\n"
        "    correct_answer: '4'\n"
        "  - question: 'Largest planet?'\n"
        "    options: ['Earth', 'Jupiter']\n"
        "    correct_index: 1\n",
        encoding="utf-8",
    )
    cards = load_deck(deck)
    assert [card.correct_answer for card in cards] == ["4", "Jupiter"]


def test_load_deck_plain_list(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("- {question: 'Q', options: ['a', 'b'], correct_answer: 'b'}\n", encoding="utf-8")
    assert load_deck(deck)[0].options == ["a", "b"]


def test_load_empty_deck(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("", encoding="utf-8")
    assert load_deck(deck) == []


def test_bundled_sample_deck_is_valid() -> None:
    sample = Path(__file__).resolve().parents[2] / "decks" / "sample.yaml"
    assert len(load_deck(sample)) == 4


def test_invalid_card_is_rejected(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("- {question: 'Q', options: ['a', 'b'], correct_answer: 'z'}\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_deck(deck)


def test_missing_deck(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_deck(tmp_path / "nope.yaml")


def test_deck_must_be_a_list(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("flashcards: 3\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_deck(deck)
