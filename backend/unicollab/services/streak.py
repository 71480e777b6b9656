"""
Upload Streak Tracker

A streak is the number of consecutive calendar days (UTC) on which a user
uploaded at least one document.

    no prior row                 → 1
    last upload was yesterday    → previous + 1
    last upload was today        → previous     (same-day re-upload)
    anything else                → 1            (gap, or no date on record)

next_streak() is the pure transition; StreakTracker wraps it with the
read + upsert against the leaderboards row.

Concurrency: two uploads from the same user in one process are serialized
by a per-user asyncio.Lock around read → compute → upsert. Across worker
processes the database only guarantees last-write-wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from weakref import WeakValueDictionary

from unicollab.db.repositories import StreakRepository, StreakState

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def next_streak(existing: StreakState | None, today: date) -> int:
    if existing is None or existing.last_upload_date is None:
        return 1
    if existing.last_upload_date == today - timedelta(days=1):
        return max(existing.streak, 0) + 1
    if existing.last_upload_date == today:
        return max(existing.streak, 1)
    return 1


# user_id → lock; entries vanish once no request holds them
_USER_LOCKS: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()


def _lock_for(user_id: str) -> asyncio.Lock:
    lock = _USER_LOCKS.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _USER_LOCKS[user_id] = lock
    return lock


class StreakTracker:

    def __init__(
        self,
        repository: StreakRepository,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._repo  = repository
        self._today = today

    async def record_upload(self, user_id: str) -> int:
        """
        Compute today's streak for user_id and persist it.

        Raises:
            PersistenceError: the row could not be read or written.
        """
        today = self._today()
        async with _lock_for(user_id):
            existing = await self._repo.get(user_id)
            streak = next_streak(existing, today)
            await self._repo.upsert(user_id, streak, today)

        logger.info(
            "Streak | user=%s previous=%s last_upload=%s new=%d",
            user_id,
            existing.streak if existing else None,
            existing.last_upload_date if existing else None,
            streak,
        )
        return streak
