"""
Enrichment Service — extracted text → summary + quiz / flashcards

    build prompt (bounded text prefix) → CompletionClient.complete()
        → parse_study_pack() / parse_flashcards()

Provider failures (AIProviderError) propagate to the caller. Malformed
structured output never does: the parse result degrades to an empty item
list and its AIParseError is logged and returned on the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from unicollab.core.exceptions import AIParseError, NotFoundError
from unicollab.llm.client import CompletionClient
from unicollab.llm.parsing import ParseStatus, parse_flashcards, parse_study_pack
from unicollab.llm.prompts import build_flashcard_prompt, build_study_pack_prompt
from unicollab.schemas.materials import Flashcard, QuizQuestion

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    summary:      str
    quiz:         list[QuizQuestion] = field(default_factory=list)
    parse_status: ParseStatus = ParseStatus.PARSED
    parse_error:  AIParseError | None = None

    @property
    def degraded(self) -> bool:
        return self.parse_status is not ParseStatus.PARSED


class EnrichmentService:
    """
    Stateless; one instance can serve every request.

    Args:
        client:                  completion client (injected so tests can fake it)
        summary_context_chars:   text prefix budget for the study-pack prompt
        flashcard_context_chars: text prefix budget for the flashcard prompt
        quiz_question_count:     questions requested and kept
        flashcard_count:         flashcards requested and kept
    """

    def __init__(
        self,
        client: CompletionClient,
        summary_context_chars:   int = 7_000,
        flashcard_context_chars: int = 6_000,
        quiz_question_count:     int = 5,
        flashcard_count:         int = 8,
    ) -> None:
        self._client                  = client
        self._summary_context_chars   = summary_context_chars
        self._flashcard_context_chars = flashcard_context_chars
        self._quiz_question_count     = quiz_question_count
        self._flashcard_count         = flashcard_count

    async def generate_study_pack(self, text: str) -> EnrichmentResult:
        """
        Raises:
            AIProviderError: the provider call itself failed.
        """
        prompt = build_study_pack_prompt(
            text,
            max_chars=self._summary_context_chars,
            num_questions=self._quiz_question_count,
        )
        reply = await self._client.complete(prompt)
        parsed = parse_study_pack(reply, limit=self._quiz_question_count)

        if parsed.error is not None:
            logger.warning(
                "Enrichment | degraded status=%s reason=%s excerpt=%r",
                parsed.status.value, parsed.error.reason, parsed.error.raw_excerpt,
            )

        return EnrichmentResult(
            summary=parsed.summary,
            quiz=parsed.items,
            parse_status=parsed.status,
            parse_error=parsed.error,
        )

    async def generate_flashcards(self, raw_text: str | None) -> list[Flashcard]:
        """
        Raises:
            NotFoundError:   no stored raw text to build cards from.
            AIProviderError: the provider call itself failed.
        """
        if not raw_text or not raw_text.strip():
            raise NotFoundError("Material text not found.")

        prompt = build_flashcard_prompt(
            raw_text,
            max_chars=self._flashcard_context_chars,
            num_cards=self._flashcard_count,
        )
        reply = await self._client.complete(prompt)
        parsed = parse_flashcards(reply, limit=self._flashcard_count)

        if parsed.error is not None:
            logger.warning(
                "Flashcards | degraded reason=%s excerpt=%r",
                parsed.error.reason, parsed.error.raw_excerpt,
            )
        return parsed.items
