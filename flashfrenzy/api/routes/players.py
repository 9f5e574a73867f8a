from fastapi import APIRouter, Depends

from flashfrenzy.api.dependencies import get_current_identity, get_session
from flashfrenzy.models.player import Identity, PlayerRead
from flashfrenzy.services.player_service import PlayerService


def get_player_service(db=Depends(get_session)) -> PlayerService:
    return PlayerService(db)


router = APIRouter(prefix="/players", tags=["players"])


@router.get("/me", response_model=PlayerRead)
def get_my_profile(
    identity: Identity = Depends(get_current_identity),
    service: PlayerService = Depends(get_player_service),
) -> PlayerRead:
    return service.get_profile(identity)


__all__ = ["router"]
