from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, List, Tuple
from uuid import UUID

from flashfrenzy.models.match import AnswerResultRead, RoundStartRead

logger = logging.getLogger(__name__)

Subscriber = Tuple[asyncio.AbstractEventLoop, "asyncio.Queue[dict]"]


class MatchEventHub:
    """In-process fan-out of match events to websocket subscribers.

    Publishing is thread safe: each event is handed to the subscriber's own
    event loop, so sync request handlers can publish too.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[UUID, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, match_id: UUID) -> "asyncio.Queue[dict]":
        queue: "asyncio.Queue[dict]" = asyncio.Queue()
        loop = asyncio.get_running_loop()
        with self._lock:
            self._subscribers.setdefault(match_id, []).append((loop, queue))
        return queue

    def unsubscribe(self, match_id: UUID, queue: "asyncio.Queue[dict]") -> None:
        with self._lock:
            remaining = [item for item in self._subscribers.get(match_id, []) if item[1] is not queue]
            if remaining:
                self._subscribers[match_id] = remaining
            else:
                self._subscribers.pop(match_id, None)

    def subscriber_count(self, match_id: UUID) -> int:
        with self._lock:
            return len(self._subscribers.get(match_id, []))

    def publish(self, match_id: UUID, event: Dict[str, Any]) -> int:
        with self._lock:
            targets = list(self._subscribers.get(match_id, []))
        delivered = 0
        for loop, queue in targets:
            if loop.is_closed():
                continue
            loop.call_soon_threadsafe(queue.put_nowait, event)
            delivered += 1
        logger.debug("Published %s for match %s to %d subscriber(s)", event.get("type"), match_id, delivered)
        return delivered

    def publish_round_start(self, result: RoundStartRead) -> int:
        if result.status == "completed" or result.round is None:
            return self.publish(result.match_id, {"type": "match_completed", "match_id": str(result.match_id)})
        return self.publish(
            result.match_id,
            {"type": "round_started", "round": result.round.model_dump(mode="json")},
        )

    def publish_round_answered(self, result: AnswerResultRead) -> int:
        return self.publish(
            result.round.match_id,
            {
                "type": "round_answered",
                "round_id": result.round.id,
                "answered_by": result.player_id,
                "is_correct": result.is_correct,
            },
        )
