# cooldown, last image, plan and owner gates

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Optional

from artbot.db.models import PLAN_PROFESSIONAL
from artbot.utils.time import now_ms


class _KeyedLocks:
    """One asyncio.Lock per user, so unrelated users never wait on each other."""

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __call__(self, key: int) -> asyncio.Lock:
        return self._locks[key]

    def discard(self, key: int) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after_ms: float = 0.0


class RateLimiter:
    def __init__(self, cooldown_seconds: float = 5.0):
        self.cooldown_ms = cooldown_seconds * 1000.0
        self._last_use: Dict[int, float] = {}
        self._locks = _KeyedLocks()

    async def check_and_record(self, user_id: int, now: Optional[float] = None) -> RateDecision:
        if now is None:
            now = now_ms()
        async with self._locks(user_id):
            last = self._last_use.get(user_id)
            if last is not None and now - last < self.cooldown_ms:
                return RateDecision(False, self.cooldown_ms - (now - last))
            self._last_use[user_id] = now
            return RateDecision(True)

    def prune(self, now: Optional[float] = None) -> int:
        """Drops entries whose cooldown has already passed."""
        if now is None:
            now = now_ms()
        stale = [uid for uid, ts in self._last_use.items() if now - ts >= self.cooldown_ms]
        for uid in stale:
            del self._last_use[uid]
            self._locks.discard(uid)
        return len(stale)

    def __len__(self) -> int:
        return len(self._last_use)


class LastImageTracker:
    """
    Last-write-wins URL per user. Both operations are a single dict access
    with no suspension point, so no lock is needed on the event loop.
    """

    def __init__(self):
        self._urls: Dict[int, str] = {}

    def record(self, user_id: int, url: str) -> None:
        self._urls[user_id] = url

    def get(self, user_id: int) -> Optional[str]:
        return self._urls.get(user_id)

    def __len__(self) -> int:
        return len(self._urls)


async def is_professional(repo, user_id: int) -> bool:
    sub = await repo.get_subscription(user_id)
    return sub is not None and sub.plan == PLAN_PROFESSIONAL


def is_owner(user_id: int, settings) -> bool:
    return user_id in settings.owner_ids
