"""
Unit Tests — Upload streak
══════════════════════════
  ✅ next_streak transition table (none / yesterday / today / gap)
  ✅ StreakTracker reads, computes and upserts the row
  ✅ Same-day re-uploads never push the streak past the first value
  ✅ Concurrent uploads from one user are serialized
  ✅ Persistence failures propagate
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from unicollab.core.exceptions import PersistenceError
from unicollab.db.repositories import StreakState
from unicollab.services.streak import StreakTracker, next_streak

TODAY = date(2024, 3, 1)


@pytest.mark.unit
class TestNextStreak:

    def test_no_record_starts_at_one(self):
        assert next_streak(None, TODAY) == 1

    def test_record_without_date_starts_at_one(self):
        assert next_streak(StreakState(streak=7, last_upload_date=None), TODAY) == 1

    @pytest.mark.parametrize("previous", [1, 2, 9, 40])
    def test_yesterday_increments(self, previous):
        state = StreakState(streak=previous, last_upload_date=TODAY - timedelta(days=1))
        assert next_streak(state, TODAY) == previous + 1

    @pytest.mark.parametrize("previous", [1, 3, 12])
    def test_same_day_is_unchanged(self, previous):
        state = StreakState(streak=previous, last_upload_date=TODAY)
        assert next_streak(state, TODAY) == previous

    @pytest.mark.parametrize("days_ago", [2, 3, 30, 365])
    def test_gap_resets_to_one(self, days_ago):
        state = StreakState(streak=10, last_upload_date=TODAY - timedelta(days=days_ago))
        assert next_streak(state, TODAY) == 1

    def test_future_date_resets_to_one(self):
        state = StreakState(streak=4, last_upload_date=TODAY + timedelta(days=1))
        assert next_streak(state, TODAY) == 1

    def test_month_boundary_counts_as_yesterday(self):
        state = StreakState(streak=5, last_upload_date=date(2024, 2, 29))
        assert next_streak(state, date(2024, 3, 1)) == 6


@pytest.mark.unit
class TestStreakTracker:

    async def test_first_upload_creates_row_with_one(self, mock_streak_repo):
        tracker = StreakTracker(mock_streak_repo, today=lambda: TODAY)

        assert await tracker.record_upload("u1") == 1
        mock_streak_repo.upsert.assert_awaited_once_with("u1", 1, TODAY)

    async def test_consecutive_days_accumulate(self, mock_streak_repo):
        days = iter([TODAY, TODAY + timedelta(days=1), TODAY + timedelta(days=2)])
        tracker = StreakTracker(mock_streak_repo, today=lambda: next(days))

        assert [await tracker.record_upload("u1") for _ in range(3)] == [1, 2, 3]
        assert mock_streak_repo.rows["u1"].last_upload_date == TODAY + timedelta(days=2)

    async def test_repeated_same_day_uploads_do_not_increase(self, mock_streak_repo):
        mock_streak_repo.rows["u1"] = StreakState(streak=4, last_upload_date=TODAY - timedelta(days=1))
        tracker = StreakTracker(mock_streak_repo, today=lambda: TODAY)

        results = [await tracker.record_upload("u1") for _ in range(4)]

        assert results == [5, 5, 5, 5]

    async def test_concurrent_same_day_uploads_are_serialized(self, mock_streak_repo):
        mock_streak_repo.rows["u1"] = StreakState(streak=2, last_upload_date=TODAY - timedelta(days=1))
        original_get = mock_streak_repo.get.side_effect
        original_upsert = mock_streak_repo.upsert.side_effect
        calls: list[str] = []

        async def _slow_get(user_id):
            calls.append("get")
            state = await original_get(user_id)
            await asyncio.sleep(0.01)
            return state

        async def _upsert(*args):
            calls.append("upsert")
            await original_upsert(*args)

        mock_streak_repo.get.side_effect = _slow_get
        mock_streak_repo.upsert.side_effect = _upsert
        tracker = StreakTracker(mock_streak_repo, today=lambda: TODAY)

        results = await asyncio.gather(*(tracker.record_upload("u1") for _ in range(5)))

        assert set(results) == {3}
        assert calls == ["get", "upsert"] * 5
        assert mock_streak_repo.rows["u1"].streak == 3

    async def test_users_are_independent(self, mock_streak_repo):
        mock_streak_repo.rows["a"] = StreakState(streak=6, last_upload_date=TODAY - timedelta(days=1))
        tracker = StreakTracker(mock_streak_repo, today=lambda: TODAY)

        assert await tracker.record_upload("a") == 7
        assert await tracker.record_upload("b") == 1

    async def test_read_failure_propagates_without_write(self, mock_streak_repo):
        mock_streak_repo.get = AsyncMock(side_effect=PersistenceError("Failed to load the upload streak."))
        tracker = StreakTracker(mock_streak_repo, today=lambda: TODAY)

        with pytest.raises(PersistenceError):
            await tracker.record_upload("u1")
        mock_streak_repo.upsert.assert_not_awaited()
