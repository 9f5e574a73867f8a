import asyncio
import random
from typing import Generator
from uuid import UUID, uuid4

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

from flashfrenzy.api.dependencies import (
    get_auto_advance,
    get_event_hub,
    get_random,
    get_session,
    get_session_factory,
)
from flashfrenzy.db.schemas import Flashcard, MatchPlayer, Round
from flashfrenzy.main import app
from flashfrenzy.services.auto_advance import AutoAdvance
from flashfrenzy.services.realtime import MatchEventHub

ALICE = {"X-User-Id": "user-alice", "X-User-Email": "alice@example.com"}
BOB = {"X-User-Id": "user-bob", "X-User-Name": "Bob"}


class DummyAutoAdvance:
    delay_seconds = 2.0

    def __init__(self) -> None:
        self.scheduled = []
        self.cancelled = []

    def schedule(self, match_id, callback):
        self.scheduled.append(match_id)

    def cancel(self, match_id) -> bool:
        self.cancelled.append(match_id)
        return True


@pytest.fixture(name="session")
def session_fixture() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="auto_advance")
def auto_advance_fixture() -> DummyAutoAdvance:
    return DummyAutoAdvance()


@pytest.fixture(name="client")
def client_fixture(session: Session, auto_advance: DummyAutoAdvance) -> Generator[TestClient, None, None]:
    def override_get_session() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_auto_advance] = lambda: auto_advance
    app.dependency_overrides[get_random] = lambda: random.Random(42)
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def _seed_arithmetic(session: Session) -> None:
    session.add(Flashcard(question="2+2?", options=["3", "4", "5", "6"], correct_answer="4"))
    session.add(Flashcard(question="3+3?", options=["5", "6", "7", "8"], correct_answer="6"))
    session.commit()


def _create_match(client: TestClient) -> str:
    resp = client.post("/matches", headers=ALICE)
    assert resp.status_code == 201
    return resp.json()["id"]


def test_create_match_joins_creator_as_host(client: TestClient) -> None:
    resp = client.post("/matches", headers=ALICE)
    assert resp.status_code == 201
    match = resp.json()
    assert len(match["players"]) == 1
    host = match["players"][0]
    assert host["name"] == "alice"
    assert host["is_host"] is True
    assert host["player_id"] == match["created_by"]


def test_create_match_requires_login(client: TestClient) -> None:
    resp = client.post("/matches")
    assert resp.status_code == 401


def test_join_is_idempotent(client: TestClient, session: Session) -> None:
    match_id = _create_match(client)
    first = client.post(f"/matches/{match_id}/join", headers=BOB)
    second = client.post(f"/matches/{match_id}/join", headers=BOB)
    assert first.status_code == 200
    assert second.status_code == 200
    assert [player["name"] for player in second.json()["players"]] == ["alice", "Bob"]
    assert len(session.exec(select(MatchPlayer)).all()) == 2

    players = client.get(f"/matches/{match_id}/players").json()
    assert [player["is_host"] for player in players] == [True, False]


def test_malformed_match_id_redirects_home(client: TestClient) -> None:
    for path in ("/matches/not-a-uuid", "/matches/123/state", "/matches/abc/results"):
        resp = client.get(path, follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/"
    landing = client.get("/matches/not-a-uuid/scores")
    assert landing.status_code == 200
    assert landing.json()["message"] == "Welcome to Flashcard Frenzy"


def test_unknown_match_is_404(client: TestClient) -> None:
    resp = client.get(f"/matches/{uuid4()}/state")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Match not found"


def test_full_match_flow(client: TestClient, session: Session, auto_advance: DummyAutoAdvance) -> None:
    _seed_arithmetic(session)
    match_id = _create_match(client)

    state = client.get(f"/matches/{match_id}/state").json()
    assert state["phase"] == "no_round"
    assert state["total_flashcards"] == 2

    started = client.post(f"/matches/{match_id}/rounds", headers=ALICE)
    assert started.status_code == 200
    round_ = started.json()["round"]
    assert started.json()["status"] == "in_progress"

    busy = client.post(f"/matches/{match_id}/rounds", headers=ALICE)
    assert busy.status_code == 409

    answer = round_["correct_answer"]
    answered = client.post(
        f"/matches/{match_id}/rounds/{round_['id']}/answer",
        json={"answer": answer},
        headers=ALICE,
    )
    assert answered.status_code == 200
    body = answered.json()
    assert body["is_correct"] is True
    assert body["auto_advance_seconds"] == 2.0
    assert body["scores"][0]["score"] == 1
    assert [str(item) for item in auto_advance.scheduled] == [match_id]

    again = client.post(
        f"/matches/{match_id}/rounds/{round_['id']}/answer",
        json={"answer": answer},
        headers=ALICE,
    )
    assert again.status_code == 409

    state = client.get(f"/matches/{match_id}/state").json()
    assert state["phase"] == "answered"
    assert state["current_question_number"] == 2

    second = client.post(f"/matches/{match_id}/next", headers=ALICE)
    assert second.status_code == 200
    assert [str(item) for item in auto_advance.cancelled] == [match_id]
    second_round = second.json()["round"]
    assert second_round["flashcard_id"] != round_["flashcard_id"]

    wrong = client.post(
        f"/matches/{match_id}/rounds/{second_round['id']}/answer",
        json={"answer": "not an option"},
        headers=BOB,
    )
    assert wrong.status_code == 200
    assert wrong.json()["is_correct"] is False
    assert wrong.json()["scores"] is None

    done = client.post(f"/matches/{match_id}/next", headers=ALICE)
    assert done.json() == {"match_id": match_id, "status": "completed", "round": None}
    assert client.get(f"/matches/{match_id}/state").json()["phase"] == "completed"

    scores = client.get(f"/matches/{match_id}/scores").json()
    assert [(entry["name"], entry["score"]) for entry in scores] == [("alice", 1), ("Bob", 0)]

    results = client.get(f"/matches/{match_id}/results").json()
    assert [entry["position"] for entry in results["results"]] == [1, 2]
    assert results["results"][0]["accuracy"] == 100.0
    assert results["stats"]["total_players"] == 2
    assert results["stats"]["highest_score"] == 1
    assert results["stats"]["average_score"] == 0.5


def test_answer_requires_login(client: TestClient, session: Session) -> None:
    _seed_arithmetic(session)
    match_id = _create_match(client)
    round_ = client.post(f"/matches/{match_id}/rounds", headers=ALICE).json()["round"]
    resp = client.post(f"/matches/{match_id}/rounds/{round_['id']}/answer", json={"answer": "4"})
    assert resp.status_code == 401


def test_cancel_auto_advance(client: TestClient, auto_advance: DummyAutoAdvance) -> None:
    match_id = _create_match(client)
    resp = client.delete(f"/matches/{match_id}/auto-advance", headers=ALICE)
    assert resp.status_code == 204
    assert [str(item) for item in auto_advance.cancelled] == [match_id]


def test_stream_pushes_round_events(client: TestClient, session: Session) -> None:
    _seed_arithmetic(session)
    match_id = _create_match(client)
    with client.websocket_connect(f"/matches/{match_id}/stream") as websocket:
        assert websocket.receive_json() == {"type": "subscribed", "match_id": match_id}

        started = client.post(f"/matches/{match_id}/rounds", headers=ALICE).json()["round"]
        event = websocket.receive_json()
        assert event["type"] == "round_started"
        assert event["round"]["id"] == started["id"]

        client.post(
            f"/matches/{match_id}/rounds/{started['id']}/answer",
            json={"answer": started["correct_answer"]},
            headers=ALICE,
        )
        event = websocket.receive_json()
        assert event["type"] == "round_answered"
        assert event["round_id"] == started["id"]
        assert event["is_correct"] is True

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}


def test_stream_rejects_malformed_match_id(client: TestClient) -> None:
    with client.websocket_connect("/matches/nope/stream") as websocket:
        assert websocket.receive_json() == {"type": "error", "message": "Invalid match id"}


def test_round_controls_require_login(client: TestClient, session: Session, auto_advance: DummyAutoAdvance) -> None:
    _seed_arithmetic(session)
    match_id = _create_match(client)
    assert client.post(f"/matches/{match_id}/rounds").status_code == 401
    assert client.post(f"/matches/{match_id}/next").status_code == 401
    assert client.delete(f"/matches/{match_id}/auto-advance").status_code == 401
    assert auto_advance.cancelled == []
    assert session.exec(select(Round)).all() == []


def test_next_before_first_round_is_rejected(client: TestClient, session: Session) -> None:
    _seed_arithmetic(session)
    match_id = _create_match(client)
    resp = client.post(f"/matches/{match_id}/next", headers=ALICE)
    assert resp.status_code == 409
    assert client.get(f"/matches/{match_id}/state").json()["phase"] == "no_round"


def test_stream_rejects_unknown_match(client: TestClient) -> None:
    with client.websocket_connect(f"/matches/{uuid4()}/stream") as websocket:
        assert websocket.receive_json() == {"type": "error", "message": "Match not found"}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.anyio
async def test_answer_auto_advances_to_next_round(session: Session) -> None:
    _seed_arithmetic(session)
    engine = session.get_bind()
    hub = MatchEventHub()
    scheduler = AutoAdvance(0.01)

    def override_get_session() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: (lambda: Session(engine))
    app.dependency_overrides[get_event_hub] = lambda: hub
    app.dependency_overrides[get_auto_advance] = lambda: scheduler
    app.dependency_overrides[get_random] = lambda: random.Random(42)
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            match_id = (await client.post("/matches", headers=ALICE)).json()["id"]
            events = hub.subscribe(UUID(match_id))

            started = await client.post(f"/matches/{match_id}/rounds", headers=ALICE)
            first = started.json()["round"]
            assert (await asyncio.wait_for(events.get(), 1))["type"] == "round_started"

            answered = await client.post(
                f"/matches/{match_id}/rounds/{first['id']}/answer",
                json={"answer": first["correct_answer"]},
                headers=ALICE,
            )
            assert answered.json()["auto_advance_seconds"] == 0.01
            assert (await asyncio.wait_for(events.get(), 1))["type"] == "round_answered"

            advanced = await asyncio.wait_for(events.get(), 1)
            assert advanced["type"] == "round_started"
            assert advanced["round"]["flashcard_id"] != first["flashcard_id"]
            assert not scheduler.is_pending(UUID(match_id))

            state = (await client.get(f"/matches/{match_id}/state")).json()
            assert state["phase"] == "in_progress"
            assert state["current_round"]["id"] == advanced["round"]["id"]
        assert len(session.exec(select(Round)).all()) == 2
    finally:
        await scheduler.shutdown()
        app.dependency_overrides.clear()
