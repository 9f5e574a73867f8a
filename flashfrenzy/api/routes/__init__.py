from fastapi import APIRouter

from . import flashcards, matches, players

api_router = APIRouter()
api_router.include_router(flashcards.router)
api_router.include_router(players.router)
api_router.include_router(matches.router)

__all__ = ["api_router"]
