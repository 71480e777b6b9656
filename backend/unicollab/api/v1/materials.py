"""
Study Material API Router
Mounted under /api/v1/material

  POST   /upload               PDF + userId → {id, summary, quiz, streak, fileUrl}
  POST   /generate-flashcards  {materialId} → {flashcards}
  GET    /user/{user_id}       the user's materials, newest first
  DELETE /{material_id}        remove one material
  POST   /submit-score         record a quiz score on the leaderboard
  GET    /leaderboard          top scores

Errors are raised as PipelineError subclasses and rendered by the
application-level handler in main.py; routes never build error bodies.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from unicollab.api.deps import Coordinator, Enrichment, Leaderboard, Materials, Streaks
from unicollab.core.config import settings
from unicollab.core.exceptions import NotFoundError, PayloadTooLargeError
from unicollab.schemas.materials import (
    ErrorResponse,
    FlashcardRequest,
    FlashcardResponse,
    LeaderboardRow,
    MaterialSummary,
    ScoreResponse,
    ScoreSubmission,
    UploadResponse,
)
from unicollab.services.pipeline import UploadRequest

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/material",
    tags=["Study Material"],
)

STREAK_POINTS = 10

# multipart boundary + userId field
_FORM_OVERHEAD_BYTES = 4096


# ---------------------------------------------------------------------------
# POST /material/upload
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a PDF and generate a summary + quiz",
    responses={
        200: {"model": UploadResponse, "description": "Pipeline completed"},
        400: {"model": ErrorResponse, "description": "Missing file/userId, or unreadable PDF"},
        413: {"model": ErrorResponse, "description": "File exceeds the upload limit"},
        500: {"model": ErrorResponse, "description": "Storage, persistence or AI provider failure"},
        504: {"model": ErrorResponse, "description": "Pipeline deadline exceeded"},
    },
)
async def upload_material(
    request:     Request,
    coordinator: Coordinator,
    pdf:         Optional[UploadFile] = File(None, description="PDF document"),
    user_id:     Optional[str]        = Form(None, alias="userId"),
) -> JSONResponse:
    # Reject oversized bodies before reading them into memory
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        if int(content_length) > settings.max_upload_bytes + _FORM_OVERHEAD_BYTES:
            max_mb = settings.max_upload_bytes // (1024 * 1024)
            raise PayloadTooLargeError(f"File too large! Max {max_mb}MB allowed.")

    content = await pdf.read() if pdf is not None else None
    result = await coordinator.run(
        UploadRequest(
            user_id=user_id,
            content=content,
            filename=pdf.filename if pdf is not None else None,
        )
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=result.model_dump(mode="json", by_alias=True),
    )


# ---------------------------------------------------------------------------
# POST /material/generate-flashcards
# ---------------------------------------------------------------------------

@router.post(
    "/generate-flashcards",
    response_model=FlashcardResponse,
    summary="Generate flashcards from a stored material's text",
    responses={
        404: {"model": ErrorResponse, "description": "Material or its text not found"},
        500: {"model": ErrorResponse, "description": "AI provider failure"},
    },
)
async def generate_flashcards(
    body:       FlashcardRequest,
    materials:  Materials,
    enrichment: Enrichment,
) -> JSONResponse:
    material = await materials.get(body.material_id)
    if material is None or not material.raw_text:
        raise NotFoundError("Material text not found.")

    cards = await enrichment.generate_flashcards(material.raw_text)
    logger.info("Flashcards generated | material=%s count=%d", body.material_id, len(cards))
    return JSONResponse(
        content=FlashcardResponse(flashcards=cards).model_dump(mode="json", by_alias=True),
    )


# ---------------------------------------------------------------------------
# GET /material/user/{user_id}
# ---------------------------------------------------------------------------

@router.get(
    "/user/{user_id}",
    response_model=list[MaterialSummary],
    summary="List a user's materials, newest first",
)
async def list_user_materials(user_id: str, materials: Materials) -> JSONResponse:
    rows = await materials.list_for_user(user_id)
    payload = [
        MaterialSummary(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            file_url=row.file_url,
            summary=row.summary,
            quiz=row.quiz_json or [],
            created_at=row.created_at,
        ).model_dump(mode="json", by_alias=True)
        for row in rows
    ]
    return JSONResponse(content=payload)


# ---------------------------------------------------------------------------
# POST /material/submit-score
# ---------------------------------------------------------------------------

@router.post(
    "/submit-score",
    response_model=ScoreResponse,
    summary="Record a quiz score, weighted by the upload streak",
)
async def submit_score(
    body:        ScoreSubmission,
    streaks:     Streaks,
    leaderboard: Leaderboard,
) -> JSONResponse:
    state = await streaks.get(body.user_id)
    streak = state.streak if state is not None else 1
    total = body.score + streak * STREAK_POINTS

    await leaderboard.upsert_score(
        user_id=body.user_id,
        score=total,
        student_name=body.student_name,
        department=body.department,
        university=body.university,
    )
    logger.info(
        "Score recorded | user=%s score=%d streak=%d total=%d",
        body.user_id, body.score, streak, total,
    )
    return JSONResponse(
        content=ScoreResponse(total_points=total).model_dump(mode="json", by_alias=True),
    )


# ---------------------------------------------------------------------------
# GET /material/leaderboard
# ---------------------------------------------------------------------------

@router.get(
    "/leaderboard",
    response_model=list[LeaderboardRow],
    summary="Top scores",
)
async def get_leaderboard(leaderboard: Leaderboard) -> JSONResponse:
    rows = await leaderboard.top()
    payload = [
        LeaderboardRow(
            user_id=row.user_id,
            student_name=row.student_name,
            department=row.department,
            university=row.university,
            score=row.score or 0,
            streak=row.streak or 1,
            captured_at=row.captured_at,
        ).model_dump(mode="json", by_alias=True)
        for row in rows
    ]
    return JSONResponse(content=payload)


# ---------------------------------------------------------------------------
# DELETE /material/{material_id}
# ---------------------------------------------------------------------------

@router.delete(
    "/{material_id}",
    summary="Delete a material",
    responses={404: {"model": ErrorResponse, "description": "No such material"}},
)
async def delete_material(material_id: UUID, materials: Materials) -> dict:
    if not await materials.delete(material_id):
        raise NotFoundError("Material not found.")
    logger.info("Material deleted | id=%s", material_id)
    return {"message": "Deleted"}
