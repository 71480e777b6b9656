"""
SQLAlchemy ORM Models — Study Materials & Leaderboard Rows

Using SQLAlchemy 2.x mapped classes for full async support.

Tables:
  user_materials  one row per successful upload pipeline run; immutable
                  apart from owner-initiated delete
  leaderboards    one row per user; holds the upload streak and the last
                  submitted tournament score
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Declarative base: shared across all models
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# UserMaterial: user_materials
# ---------------------------------------------------------------------------

class UserMaterial(Base):
    """
    The persisted artifact of one upload: where the PDF lives, what the
    model produced for it, and the extracted text kept for later flashcard
    generation.
    """

    __tablename__ = "user_materials"
    __table_args__ = (
        Index("idx_user_materials_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)

    file_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Public URL of the object stored under <user_id>/<timestamp>.<ext>",
    )
    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Original filename supplied by the client",
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    quiz_json: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default="[]",
        comment="Exactly the quiz list returned to the client on upload",
    )
    raw_text: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Extracted document text, source for flashcard generation",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<UserMaterial id={self.id} user={self.user_id} title={self.title!r}>"


# ---------------------------------------------------------------------------
# LeaderboardEntry: leaderboards
# ---------------------------------------------------------------------------

class LeaderboardEntry(Base):
    """
    Per-user streak state plus the leaderboard score.

    streak / last_upload_date are written only by the streak tracker
    (upsert keyed by user_id). The score columns are written by
    score submission.
    """

    __tablename__ = "leaderboards"
    __table_args__ = (
        CheckConstraint("streak >= 1", name="leaderboards_streak_positive"),
        Index("idx_leaderboards_score", "score"),
    )

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)

    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    last_upload_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    student_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department:   Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    university:   Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    score:        Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    captured_at:  Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LeaderboardEntry user={self.user_id} streak={self.streak} "
            f"last_upload={self.last_upload_date} score={self.score}>"
        )
