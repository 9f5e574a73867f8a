from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError
from sqlmodel import Session

from flashfrenzy.db.base import get_engine, init_db
from flashfrenzy.services.deck_loader import load_deck
from flashfrenzy.services.flashcard_service import FlashcardService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a YAML deck of flashcards into the database.")
    parser.add_argument("deck", help="Path to the YAML deck file")
    parser.add_argument("--dry-run", action="store_true", help="Validate the deck without saving it")
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = parse_args()
    try:
        cards = load_deck(args.deck)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise SystemExit(1)
    if not cards:
        print("Deck is empty, nothing to import.")
        return
    print(f"Found {len(cards)} flashcard(s) in {args.deck}.")
    if args.dry_run:
        for card in cards:
            print(f"[DRY RUN] {card.question} -> {card.correct_answer}")
        return
    init_db()
    with Session(get_engine()) as session:
        created = FlashcardService(session).import_flashcards(cards)
    print(f"Imported {len(created)} flashcard(s).")


if __name__ == "__main__":
    main()
