import asyncio
import logging
import random
from typing import Callable, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session as DBSession

from flashfrenzy.api.dependencies import (
    get_auto_advance,
    get_current_identity,
    get_event_hub,
    get_random,
    get_session,
    get_session_factory,
    parse_match_id,
    valid_match_id,
)
from flashfrenzy.models.match import (
    AnswerCreate,
    AnswerResultRead,
    MatchPlayerRead,
    MatchRead,
    MatchState,
    RoundStartRead,
)
from flashfrenzy.models.player import Identity
from flashfrenzy.models.score import MatchResultsRead, PlayerScore
from flashfrenzy.services.auto_advance import AdvanceCallback, AutoAdvance
from flashfrenzy.services.match_service import MatchService
from flashfrenzy.services.realtime import MatchEventHub
from flashfrenzy.services.round_service import RoundService
from flashfrenzy.services.scoring import ScoreService

logger = logging.getLogger(__name__)


def get_match_service(db=Depends(get_session)) -> MatchService:
    return MatchService(db)


def get_round_service(db=Depends(get_session), rng: random.Random = Depends(get_random)) -> RoundService:
    return RoundService(db, rng)


def get_score_service(db=Depends(get_session)) -> ScoreService:
    return ScoreService(db)


def advance_later(
    match_id: UUID,
    hub: MatchEventHub,
    session_factory: Callable[[], DBSession],
) -> AdvanceCallback:
    """Callback fired by the auto-advance timer; opens its own DB session."""

    def run() -> RoundStartRead:
        with session_factory() as db:
            return RoundService(db).advance(match_id)

    async def advance() -> None:
        result = await run_in_threadpool(run)
        hub.publish_round_start(result)

    return advance


router = APIRouter(prefix="/matches", tags=["matches"])


@router.post("", response_model=MatchRead, status_code=status.HTTP_201_CREATED)
def create_match(
    identity: Identity = Depends(get_current_identity),
    service: MatchService = Depends(get_match_service),
) -> MatchRead:
    return service.create_match(identity)


@router.get("/{match_id}", response_model=MatchRead)
def get_match(
    match_uuid: UUID = Depends(valid_match_id),
    service: MatchService = Depends(get_match_service),
) -> MatchRead:
    return service.get_match(match_uuid)


@router.post("/{match_id}/join", response_model=MatchRead)
def join_match(
    match_uuid: UUID = Depends(valid_match_id),
    identity: Identity = Depends(get_current_identity),
    service: MatchService = Depends(get_match_service),
) -> MatchRead:
    return service.join_match(match_uuid, identity)


@router.get("/{match_id}/players", response_model=List[MatchPlayerRead])
def list_match_players(
    match_uuid: UUID = Depends(valid_match_id),
    service: MatchService = Depends(get_match_service),
) -> List[MatchPlayerRead]:
    return service.list_players(match_uuid)


@router.get("/{match_id}/state", response_model=MatchState)
def get_match_state(
    match_uuid: UUID = Depends(valid_match_id),
    service: RoundService = Depends(get_round_service),
) -> MatchState:
    return service.get_state(match_uuid)


@router.post(
    "/{match_id}/rounds",
    response_model=RoundStartRead,
    dependencies=[Depends(get_current_identity)],
)
async def start_round(
    match_uuid: UUID = Depends(valid_match_id),
    service: RoundService = Depends(get_round_service),
    hub: MatchEventHub = Depends(get_event_hub),
) -> RoundStartRead:
    result = await run_in_threadpool(service.start_round, match_uuid)
    hub.publish_round_start(result)
    return result


@router.post("/{match_id}/rounds/{round_id}/answer", response_model=AnswerResultRead)
async def answer_round(
    round_id: int,
    payload: AnswerCreate,
    match_uuid: UUID = Depends(valid_match_id),
    identity: Identity = Depends(get_current_identity),
    service: RoundService = Depends(get_round_service),
    hub: MatchEventHub = Depends(get_event_hub),
    auto_advance: AutoAdvance = Depends(get_auto_advance),
    session_factory: Callable[[], DBSession] = Depends(get_session_factory),
) -> AnswerResultRead:
    result = await run_in_threadpool(service.answer_flashcard, match_uuid, round_id, identity, payload.answer)
    hub.publish_round_answered(result)
    auto_advance.schedule(match_uuid, advance_later(match_uuid, hub, session_factory))
    return result.model_copy(update={"auto_advance_seconds": auto_advance.delay_seconds})


@router.post(
    "/{match_id}/next",
    response_model=RoundStartRead,
    dependencies=[Depends(get_current_identity)],
)
async def next_round(
    match_uuid: UUID = Depends(valid_match_id),
    service: RoundService = Depends(get_round_service),
    hub: MatchEventHub = Depends(get_event_hub),
    auto_advance: AutoAdvance = Depends(get_auto_advance),
) -> RoundStartRead:
    auto_advance.cancel(match_uuid)
    result = await run_in_threadpool(service.advance, match_uuid)
    hub.publish_round_start(result)
    return result


@router.delete(
    "/{match_id}/auto-advance",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_current_identity)],
)
def cancel_auto_advance(
    match_uuid: UUID = Depends(valid_match_id),
    auto_advance: AutoAdvance = Depends(get_auto_advance),
) -> None:
    auto_advance.cancel(match_uuid)


@router.get("/{match_id}/scores", response_model=List[PlayerScore])
def get_scores(
    match_uuid: UUID = Depends(valid_match_id),
    service: ScoreService = Depends(get_score_service),
) -> List[PlayerScore]:
    return service.scoreboard(match_uuid)


@router.get("/{match_id}/results", response_model=MatchResultsRead)
def get_results(
    match_uuid: UUID = Depends(valid_match_id),
    service: ScoreService = Depends(get_score_service),
) -> MatchResultsRead:
    return service.results(match_uuid)


@router.websocket("/{match_id}/stream")
async def match_stream(
    websocket: WebSocket,
    match_id: str,
    hub: MatchEventHub = Depends(get_event_hub),
    service: MatchService = Depends(get_match_service),
) -> None:
    await websocket.accept()
    match_uuid = parse_match_id(match_id)
    if match_uuid is None:
        await websocket.send_json({"type": "error", "message": "Invalid match id"})
        await websocket.close(code=4400)
        return
    try:
        await run_in_threadpool(service.get_match_entity, match_uuid)
    except HTTPException as exc:
        await websocket.send_json({"type": "error", "message": exc.detail})
        await websocket.close(code=4404)
        return
    queue = hub.subscribe(match_uuid)

    async def forward_events() -> None:
        while True:
            event = await queue.get()
            await websocket.send_json(event)

    await websocket.send_json({"type": "subscribed", "match_id": str(match_uuid)})
    forwarder = asyncio.create_task(forward_events())
    try:
        while True:
            message = await websocket.receive_json()
            msg_type = message.get("type") if isinstance(message, dict) else None
            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif msg_type == "stop":
                await websocket.close()
                break
            else:
                await websocket.send_json({"type": "error", "message": "Unknown message type"})
    except WebSocketDisconnect:
        logger.debug("Stream for match %s disconnected", match_uuid)
    finally:
        forwarder.cancel()
        hub.unsubscribe(match_uuid, queue)


__all__ = ["router"]
