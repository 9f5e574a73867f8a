from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional
from uuid import UUID

logger = logging.getLogger(__name__)

AdvanceCallback = Callable[[], Awaitable[None]]


class ScheduledAdvance:
    """Handle for one pending advance; ``cancel()`` pre-empts it."""

    def __init__(self, match_id: UUID, task: "asyncio.Task[None]", delay_seconds: float) -> None:
        self.match_id = match_id
        self.task = task
        self.delay_seconds = delay_seconds

    @property
    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> bool:
        if self.task.done():
            return False
        return self.task.cancel()


class AutoAdvance:
    """One cancellable delayed advance per match.

    Scheduling again for the same match replaces the pending advance. Once the
    delay has elapsed the callback runs and can no longer be cancelled.
    """

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self._pending: Dict[UUID, ScheduledAdvance] = {}

    def schedule(self, match_id: UUID, callback: AdvanceCallback) -> ScheduledAdvance:
        self.cancel(match_id)
        task = asyncio.get_running_loop().create_task(self._run(match_id, callback))
        handle = ScheduledAdvance(match_id, task, self.delay_seconds)
        self._pending[match_id] = handle
        logger.debug("Auto-advance for match %s in %.1fs", match_id, self.delay_seconds)
        return handle

    def cancel(self, match_id: UUID) -> bool:
        handle = self._pending.pop(match_id, None)
        if handle is None:
            return False
        cancelled = handle.cancel()
        if cancelled:
            logger.debug("Auto-advance for match %s cancelled", match_id)
        return cancelled

    def is_pending(self, match_id: UUID) -> bool:
        handle = self._pending.get(match_id)
        return handle is not None and not handle.done

    async def shutdown(self) -> None:
        handles = list(self._pending.values())
        self._pending.clear()
        for handle in handles:
            handle.cancel()
        if handles:
            await asyncio.gather(*(handle.task for handle in handles), return_exceptions=True)

    async def _run(self, match_id: UUID, callback: AdvanceCallback) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._forget(match_id)
        try:
            await callback()
        except Exception:
            logger.exception("Auto-advance for match %s failed", match_id)

    def _forget(self, match_id: UUID) -> None:
        handle: Optional[ScheduledAdvance] = self._pending.get(match_id)
        if handle is not None and handle.task is asyncio.current_task():
            del self._pending[match_id]
