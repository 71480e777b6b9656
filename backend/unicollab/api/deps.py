"""
Composed FastAPI Dependencies

The single wiring point between settings and the pipeline's clients.
Route handlers take their collaborators from here rather than from
db/session, so tests override one function per collaborator.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unicollab.core.config import settings
from unicollab.db.repositories import (
    LeaderboardRepository,
    MaterialRepository,
    StreakRepository,
)
from unicollab.db.session import get_db
from unicollab.llm.client import CompletionClient
from unicollab.processing.extractor import PDFTextExtractor
from unicollab.services.enrichment import EnrichmentService
from unicollab.services.pipeline import UploadCoordinator
from unicollab.services.streak import StreakTracker
from unicollab.storage.s3 import DocumentStore


# ---------------------------------------------------------------------------
# Process-wide clients (stateless, safe to share)
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    return DocumentStore(
        bucket=settings.s3_bucket,
        region=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
        public_base_url=settings.s3_public_base_url,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )


@lru_cache(maxsize=1)
def get_enrichment_service() -> EnrichmentService:
    client = CompletionClient(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout_seconds,
        referer=settings.llm_http_referer,
        app_title=settings.llm_app_title,
    )
    return EnrichmentService(
        client,
        summary_context_chars=settings.summary_context_chars,
        flashcard_context_chars=settings.flashcard_context_chars,
        quiz_question_count=settings.quiz_question_count,
        flashcard_count=settings.flashcard_count,
    )


def get_extractor() -> PDFTextExtractor:
    return PDFTextExtractor(min_chars=settings.min_text_chars)


# ---------------------------------------------------------------------------
# Request-scoped repositories
# ---------------------------------------------------------------------------

def get_material_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MaterialRepository:
    return MaterialRepository(db)


def get_streak_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StreakRepository:
    return StreakRepository(db)


def get_leaderboard_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LeaderboardRepository:
    return LeaderboardRepository(db)


# ---------------------------------------------------------------------------
# Upload coordinator
# ---------------------------------------------------------------------------

def get_upload_coordinator(
    extractor:  Annotated[PDFTextExtractor,  Depends(get_extractor)],
    store:      Annotated[DocumentStore,     Depends(get_document_store)],
    enrichment: Annotated[EnrichmentService, Depends(get_enrichment_service)],
    materials:  Annotated[MaterialRepository, Depends(get_material_repository)],
    streaks:    Annotated[StreakRepository,   Depends(get_streak_repository)],
) -> UploadCoordinator:
    return UploadCoordinator(
        extractor=extractor,
        store=store,
        streaks=StreakTracker(streaks),
        enrichment=enrichment,
        materials=materials,
        max_upload_bytes=settings.max_upload_bytes,
        timeout_seconds=settings.pipeline_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Type aliases for cleaner route signatures
# ---------------------------------------------------------------------------

Coordinator  = Annotated[UploadCoordinator,     Depends(get_upload_coordinator)]
Enrichment   = Annotated[EnrichmentService,     Depends(get_enrichment_service)]
Materials    = Annotated[MaterialRepository,    Depends(get_material_repository)]
Streaks      = Annotated[StreakRepository,      Depends(get_streak_repository)]
Leaderboard  = Annotated[LeaderboardRepository, Depends(get_leaderboard_repository)]
