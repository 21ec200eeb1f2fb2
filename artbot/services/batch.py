from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class BatchAlreadyRunning(Exception):
    pass


@dataclass
class BatchReport:
    produced: int
    requested: int
    failed: bool = False
    cancelled: bool = False


class BatchRunner:
    """
    Runs the professional multi-image batch: `size` generations with a
    `delay` pause between them, one batch per user at a time.
    cancel() wakes the pause immediately and stops the batch.
    on_start runs once the batch is registered, before the first call.
    """

    def __init__(self, size: int = 15, delay: float = 5.0):
        self.size = size
        self.delay = delay
        self._cancel: Dict[int, asyncio.Event] = {}

    def is_running(self, user_id: int) -> bool:
        return user_id in self._cancel

    def cancel(self, user_id: int) -> bool:
        event = self._cancel.get(user_id)
        if event is None:
            return False
        event.set()
        return True

    async def run(
        self,
        user_id: int,
        prompt: str,
        generate: Callable[[str], Awaitable[str | None]],
        deliver: Callable[[str], Awaitable[None]],
        on_start: Callable[[], Awaitable[None]] | None = None,
    ) -> BatchReport:
        if user_id in self._cancel:
            raise BatchAlreadyRunning(user_id)
        cancel = self._cancel[user_id] = asyncio.Event()
        report = BatchReport(produced=0, requested=self.size)
        try:
            if on_start is not None:
                await on_start()
            for i in range(self.size):
                if cancel.is_set():
                    report.cancelled = True
                    break
                url = await generate(f"{prompt} (image {i + 1} improving each time)")
                if not url:
                    report.failed = True
                    break
                await deliver(url)
                report.produced += 1
                if i + 1 < self.size and await self._wait_cancelled(cancel):
                    report.cancelled = True
                    break
        finally:
            del self._cancel[user_id]
        logger.info(
            "batch done | user_id=%s produced=%s/%s failed=%s cancelled=%s",
            user_id, report.produced, report.requested, report.failed, report.cancelled,
        )
        return report

    async def _wait_cancelled(self, cancel: asyncio.Event) -> bool:
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self.delay)
        except asyncio.TimeoutError:
            return False
        return True
