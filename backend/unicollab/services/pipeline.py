"""
Upload Coordinator

Orchestrates the document → study-material pipeline:
  1. Validate the request (file present, non-empty, under the size cap; user id)
  2. Extract the PDF text layer (rejects unreadable / near-empty documents)
  3. Upload the raw bytes to object storage  ┐ run concurrently,
  4. Compute + upsert the upload streak       ┘ no data dependency
  5. Generate summary + quiz from the extracted text
  6. Insert the material record
  7. Compose {id, summary, quiz, streak, fileUrl}

Failure policy:
  - Steps 1–2 fail before any side effect; nothing is written.
  - Storage, streak and provider failures abort the run; no material record
    is created. An object uploaded in step 3 may be left orphaned.
  - Malformed model output degrades to an empty quiz; the run still succeeds.
  - A failed material insert (step 6) does not retract the generated
    content: the response carries id=None and persisted=False, and the loss
    is logged at ERROR.

The quiz list that is persisted is the same list the response is built
from, so the stored record and the response never diverge.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from unicollab.core.exceptions import (
    InputError,
    PayloadTooLargeError,
    PersistenceError,
    PipelineTimeoutError,
)
from unicollab.db.repositories import MaterialRepository
from unicollab.processing.extractor import PDFTextExtractor
from unicollab.schemas.materials import UploadResponse
from unicollab.services.enrichment import EnrichmentService
from unicollab.services.streak import StreakTracker
from unicollab.storage.s3 import DocumentStore, StoredDocument

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled document.pdf"


@dataclass(frozen=True)
class UploadRequest:
    """Transient input for one pipeline run."""
    user_id:  str | None
    content:  bytes | None
    filename: str | None = None


class UploadCoordinator:
    """
    Stateless service object — one instance per request.
    All dependencies are injected (testable, no hidden globals).
    """

    def __init__(
        self,
        extractor:  PDFTextExtractor,
        store:      DocumentStore,
        streaks:    StreakTracker,
        enrichment: EnrichmentService,
        materials:  MaterialRepository,
        max_upload_bytes: int = 20 * 1024 * 1024,
        timeout_seconds:  float | None = None,
    ) -> None:
        self._extractor  = extractor
        self._store      = store
        self._streaks    = streaks
        self._enrichment = enrichment
        self._materials  = materials
        self._max_upload_bytes = max_upload_bytes
        self._timeout    = timeout_seconds

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def run(self, request: UploadRequest) -> UploadResponse:
        """
        Full pipeline with the end-to-end deadline applied.
        Raises PipelineError subclasses for every hard failure.
        """
        if self._timeout is None:
            return await self._run(request)
        try:
            return await asyncio.wait_for(self._run(request), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "Upload pipeline timed out | user=%s timeout=%.0fs",
                request.user_id, self._timeout,
            )
            raise PipelineTimeoutError() from exc

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run(self, request: UploadRequest) -> UploadResponse:
        t0 = time.perf_counter()

        # ---- Step 1: Validate ----------------------------------------
        user_id, content = self._validate(request)
        title = (request.filename or "").strip() or DEFAULT_TITLE

        logger.info("Upload start | user=%s file=%s size=%d", user_id, title, len(content))

        # ---- Step 2: Extract text (no side effects on failure) -------
        extraction = await self._extractor.extract(content)

        # ---- Steps 3+4: Store bytes ∥ record streak ------------------
        stored, streak = await self._store_and_track(user_id, content, request.filename)

        # ---- Step 5: Enrichment --------------------------------------
        enrichment = await self._enrichment.generate_study_pack(extraction.text)
        quiz_payload = [q.model_dump(mode="json", by_alias=True) for q in enrichment.quiz]

        # ---- Step 6: Persist (soft failure) --------------------------
        material_id = None
        try:
            material = await self._materials.insert(
                user_id=user_id,
                file_url=stored.url,
                title=title,
                summary=enrichment.summary,
                quiz_json=quiz_payload,
                raw_text=extraction.text,
            )
            material_id = material.id
        except PersistenceError as exc:
            logger.error(
                "Material NOT persisted; returning generated content anyway | "
                "user=%s file_url=%s error=%s",
                user_id, stored.url, exc.detail or exc.message,
            )

        # ---- Step 7: Compose -----------------------------------------
        response = UploadResponse(
            id=material_id,
            summary=enrichment.summary,
            quiz=enrichment.quiz,
            streak=streak,
            file_url=stored.url,
            persisted=material_id is not None,
        )

        logger.info(
            "Upload done | user=%s material=%s streak=%d quiz=%d parse=%s elapsed_ms=%.0f",
            user_id, material_id, streak, len(enrichment.quiz),
            enrichment.parse_status.value, (time.perf_counter() - t0) * 1000,
        )
        return response

    def _validate(self, request: UploadRequest) -> tuple[str, bytes]:
        if not request.content:
            raise InputError("No file uploaded")
        user_id = (request.user_id or "").strip()
        if not user_id:
            raise InputError("Missing userId")
        if len(request.content) > self._max_upload_bytes:
            max_mb = self._max_upload_bytes // (1024 * 1024)
            raise PayloadTooLargeError(f"File too large! Max {max_mb}MB allowed.")
        return user_id, request.content

    async def _store_and_track(
        self, user_id: str, content: bytes, filename: str | None,
    ) -> tuple[StoredDocument, int]:
        """
        Upload and streak run side by side; both are allowed to finish
        before the first failure (storage first) is re-raised.
        """
        stored, streak = await asyncio.gather(
            self._store.upload(user_id, content, filename),
            self._streaks.record_upload(user_id),
            return_exceptions=True,
        )
        if isinstance(stored, BaseException):
            if isinstance(streak, BaseException):
                logger.error("Streak update also failed | user=%s error=%s", user_id, streak)
            raise stored
        if isinstance(streak, BaseException):
            logger.warning(
                "Streak update failed after upload; object may be orphaned | key=%s", stored.key,
            )
            raise streak
        return stored, streak
