"""
Persistence clients — thin async wrappers over the two tables.

No business logic lives here: the streak arithmetic is in
services/streak.py and score arithmetic in the leaderboard route.
Each write commits its own transaction. Any SQLAlchemyError is rolled back
and re-raised as PersistenceError so callers only deal with the pipeline
taxonomy.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from unicollab.core.exceptions import PersistenceError
from unicollab.models.materials import LeaderboardEntry, UserMaterial

logger = logging.getLogger(__name__)

LEADERBOARD_LIMIT = 25


@dataclass(frozen=True)
class StreakState:
    """What the streak tracker needs from a user's leaderboards row."""
    streak:           int
    last_upload_date: date | None


async def _rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError as exc:
        logger.warning("Rollback failed: %s", exc)


# ---------------------------------------------------------------------------
# user_materials
# ---------------------------------------------------------------------------

class MaterialRepository:

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def insert(
        self,
        *,
        user_id:   str,
        file_url:  str,
        title:     str,
        summary:   str,
        quiz_json: list[dict],
        raw_text:  str,
    ) -> UserMaterial:
        material = UserMaterial(
            id=uuid.uuid4(),
            user_id=user_id,
            file_url=file_url,
            title=title,
            summary=summary,
            quiz_json=quiz_json,
            raw_text=raw_text,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._db.add(material)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await _rollback_quietly(self._db)
            logger.error("Material insert failed | user=%s error=%s", user_id, exc)
            raise PersistenceError("Failed to save the material.", detail=str(exc)) from exc

        logger.info("Material saved | id=%s user=%s", material.id, user_id)
        return material

    async def get(self, material_id: uuid.UUID) -> UserMaterial | None:
        try:
            result = await self._db.execute(
                select(UserMaterial).where(UserMaterial.id == material_id)
            )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load the material.", detail=str(exc)) from exc
        return result.scalars().first()

    async def list_for_user(self, user_id: str) -> list[UserMaterial]:
        try:
            result = await self._db.execute(
                select(UserMaterial)
                .where(UserMaterial.user_id == user_id)
                .order_by(UserMaterial.created_at.desc())
            )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load materials.", detail=str(exc)) from exc
        return list(result.scalars().all())

    async def delete(self, material_id: uuid.UUID) -> bool:
        """True if a row was removed."""
        try:
            result = await self._db.execute(
                delete(UserMaterial).where(UserMaterial.id == material_id)
            )
            await self._db.commit()
        except SQLAlchemyError as exc:
            await _rollback_quietly(self._db)
            raise PersistenceError("Failed to delete the material.", detail=str(exc)) from exc
        return (result.rowcount or 0) > 0


# ---------------------------------------------------------------------------
# leaderboards: streak columns
# ---------------------------------------------------------------------------

class StreakRepository:

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, user_id: str) -> StreakState | None:
        try:
            result = await self._db.execute(
                select(LeaderboardEntry.streak, LeaderboardEntry.last_upload_date)
                .where(LeaderboardEntry.user_id == user_id)
            )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load the upload streak.", detail=str(exc)) from exc
        row = result.first()
        if row is None:
            return None
        return StreakState(streak=row.streak or 1, last_upload_date=row.last_upload_date)

    async def upsert(self, user_id: str, streak: int, upload_date: date) -> None:
        """INSERT … ON CONFLICT (user_id) DO UPDATE — last write wins."""
        stmt = pg_insert(LeaderboardEntry).values(
            user_id=user_id,
            streak=streak,
            last_upload_date=upload_date,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[LeaderboardEntry.user_id],
            set_={
                "streak":           stmt.excluded.streak,
                "last_upload_date": stmt.excluded.last_upload_date,
            },
        )
        try:
            await self._db.execute(stmt)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await _rollback_quietly(self._db)
            logger.error("Streak upsert failed | user=%s error=%s", user_id, exc)
            raise PersistenceError("Failed to save the upload streak.", detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# leaderboards: score columns
# ---------------------------------------------------------------------------

class LeaderboardRepository:

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def upsert_score(
        self,
        *,
        user_id:      str,
        score:        int,
        student_name: str | None,
        department:   str | None,
        university:   str | None,
    ) -> None:
        values = {
            "user_id":      user_id,
            "score":        score,
            "student_name": student_name,
            "department":   department,
            "university":   university,
            "captured_at":  datetime.now(timezone.utc),
        }
        stmt = pg_insert(LeaderboardEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[LeaderboardEntry.user_id],
            set_={k: getattr(stmt.excluded, k) for k in values if k != "user_id"},
        )
        try:
            await self._db.execute(stmt)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await _rollback_quietly(self._db)
            raise PersistenceError("Failed to record the score.", detail=str(exc)) from exc

    async def top(self, limit: int = LEADERBOARD_LIMIT) -> list[LeaderboardEntry]:
        try:
            result = await self._db.execute(
                select(LeaderboardEntry)
                .order_by(LeaderboardEntry.score.desc())
                .limit(limit)
            )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load the leaderboard.", detail=str(exc)) from exc
        return list(result.scalars().all())
