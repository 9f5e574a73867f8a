from typing import List, Optional

from fastapi import APIRouter, Depends, status

from flashfrenzy.api.dependencies import get_optional_identity, get_session
from flashfrenzy.models.flashcard import FlashcardCreate, FlashcardRead
from flashfrenzy.models.player import Identity
from flashfrenzy.services.flashcard_service import FlashcardService
from flashfrenzy.services.player_service import PlayerService


def get_flashcard_service(db=Depends(get_session)) -> FlashcardService:
    return FlashcardService(db)


def get_author_id(
    identity: Optional[Identity] = Depends(get_optional_identity),
    db=Depends(get_session),
) -> Optional[int]:
    if identity is None:
        return None
    return PlayerService(db).resolve(identity).id


router = APIRouter(prefix="/flashcards", tags=["flashcards"])


@router.get("", response_model=List[FlashcardRead])
def list_flashcards(service: FlashcardService = Depends(get_flashcard_service)) -> List[FlashcardRead]:
    return service.list_flashcards()


@router.post("", response_model=FlashcardRead, status_code=status.HTTP_201_CREATED)
def create_flashcard(
    payload: FlashcardCreate,
    author_id: Optional[int] = Depends(get_author_id),
    service: FlashcardService = Depends(get_flashcard_service),
) -> FlashcardRead:
    return service.create_flashcard(payload, created_by=author_id)


@router.post("/import", response_model=List[FlashcardRead], status_code=status.HTTP_201_CREATED)
def import_flashcards(
    payload: List[FlashcardCreate],
    author_id: Optional[int] = Depends(get_author_id),
    service: FlashcardService = Depends(get_flashcard_service),
) -> List[FlashcardRead]:
    return service.import_flashcards(payload, created_by=author_id)


@router.get("/{card_id}", response_model=FlashcardRead)
def get_flashcard(card_id: int, service: FlashcardService = Depends(get_flashcard_service)) -> FlashcardRead:
    return service.get_flashcard(card_id)


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_flashcard(card_id: int, service: FlashcardService = Depends(get_flashcard_service)) -> None:
    service.delete_flashcard(card_id)


__all__ = ["router"]
