"""
Study Material — Pydantic Request/Response Schemas

Covers:
  - POST /material/upload              (UploadResponse)
  - POST /material/generate-flashcards (FlashcardRequest → FlashcardResponse)
  - GET  /material/user/{user_id}      (MaterialSummary list)
  - POST /material/submit-score        (ScoreSubmission → ScoreResponse)
  - GET  /material/leaderboard         (LeaderboardRow list)
  - The uniform error envelope for all 4xx/5xx responses

Wire format is camelCase (correctAnswer, fileUrl, materialId); Python
attributes stay snake_case through field aliases. Always dump with
by_alias=True.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

QUIZ_OPTION_COUNT: int = 4


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Generated study content
# ---------------------------------------------------------------------------

class QuizQuestion(_CamelModel):
    """One multiple-choice question: four options, zero-based correct index."""
    question:       str       = Field(..., min_length=1)
    options:        list[str] = Field(..., min_length=QUIZ_OPTION_COUNT, max_length=QUIZ_OPTION_COUNT)
    correct_answer: int       = Field(..., alias="correctAnswer", ge=0, le=QUIZ_OPTION_COUNT - 1)

    @field_validator("question")
    @classmethod
    def _strip_question(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("question must not be blank")
        return v

    @field_validator("options")
    @classmethod
    def _strip_options(cls, v: list[str]) -> list[str]:
        v = [o.strip() for o in v]
        if not all(v):
            raise ValueError("options must not be blank")
        return v


class Flashcard(_CamelModel):
    front: str = Field(..., min_length=1)
    back:  str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Upload: 200 OK
# ---------------------------------------------------------------------------

class UploadResponse(_CamelModel):
    """
    Returned after the pipeline completes.

    id is None (and persisted False) when the material row could not be
    written; the generated content is still delivered.
    """
    id:        UUID | None        = Field(None, description="MaterialRecord id; null when persistence failed")
    summary:   str                = Field("", description="Model-generated summary (may be empty)")
    quiz:      list[QuizQuestion] = Field(default_factory=list)
    streak:    int                = Field(..., ge=1, description="Consecutive upload days, including today")
    file_url:  str                = Field(..., alias="fileUrl", description="Public URL of the stored PDF")
    persisted: bool               = Field(True, description="False if the material record was not saved")


# ---------------------------------------------------------------------------
# Flashcards
# ---------------------------------------------------------------------------

class FlashcardRequest(_CamelModel):
    material_id: UUID = Field(..., alias="materialId")


class FlashcardResponse(_CamelModel):
    flashcards: list[Flashcard] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Material listing
# ---------------------------------------------------------------------------

class MaterialSummary(_CamelModel):
    id:         UUID
    user_id:    str       = Field(..., alias="userId")
    title:      str
    file_url:   str       = Field(..., alias="fileUrl")
    summary:    str
    quiz:       list[dict] = Field(default_factory=list)
    created_at: datetime | None = Field(None, alias="createdAt")


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------

class ScoreSubmission(_CamelModel):
    user_id:      str        = Field(..., alias="userId", min_length=1)
    score:        int        = Field(..., ge=0)
    student_name: str | None = Field(None, alias="studentName")
    department:   str | None = None
    university:   str | None = None


class ScoreResponse(_CamelModel):
    message:      str = "Score recorded!"
    total_points: int = Field(..., alias="totalPoints")


class LeaderboardRow(_CamelModel):
    user_id:      str             = Field(..., alias="userId")
    student_name: str | None      = Field(None, alias="studentName")
    department:   str | None      = None
    university:   str | None      = None
    score:        int             = 0
    streak:       int             = 1
    captured_at:  datetime | None = Field(None, alias="capturedAt")


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    """
    Uniform error body for all 4xx/5xx responses.
    `error` is the human-readable summary; `error_code` is stable for clients.
    """
    error:      str        = Field(..., description="Human-readable summary")
    message:    str | None = Field(None, description="Underlying cause, when safe to show")
    error_code: str        = Field("INTERNAL_ERROR", description="Stable machine-readable code")
    request_id: str | None = Field(None, description="Trace ID for log correlation")
