"""
Reply Parser — free-form completion text → structured study content

Grammar of a study-pack reply (whitespace and prose tolerated anywhere):

    [---SUMMARY---] <summary text> ---QUIZ--- <prose?> <json-array> <prose?>

The json-array may sit inside a markdown code fence.

Two stages:
  1. Section split — everything before the first ---QUIZ--- is the summary
     (the optional ---SUMMARY--- marker is removed). No ---QUIZ--- marker
     means the whole reply is the summary.
  2. Array search — the first '[' from which a complete JSON array decodes
     is taken as the item list. Each item is then validated on its own;
     invalid items are dropped, the rest are kept up to `limit`.

The result is a ParsedReply whose status says how far parsing got:

    PARSED        summary and at least one valid item
    SUMMARY_ONLY  no quiz section at all
    FAILED        quiz section present, but no usable array / no valid items

Nothing here raises. A FAILED or SUMMARY_ONLY result carries an
AIParseError value describing what went wrong.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from pydantic import ValidationError

from unicollab.core.exceptions import AIParseError
from unicollab.llm.prompts import QUIZ_MARKER, SUMMARY_MARKER
from unicollab.schemas.materials import Flashcard, QuizQuestion

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CODE_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_decoder = json.JSONDecoder()


class ParseStatus(str, Enum):
    PARSED       = "parsed"
    SUMMARY_ONLY = "summary_only"
    FAILED       = "failed"


@dataclass
class ParsedReply(Generic[T]):
    status:  ParseStatus
    summary: str = ""
    items:   list[T] = field(default_factory=list)
    dropped: int = 0                      # array entries rejected by validation
    error:   AIParseError | None = None

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.PARSED


# ---------------------------------------------------------------------------
# Stage 2: JSON array search
# ---------------------------------------------------------------------------

def find_json_array(segment: str) -> list | None:
    """
    Return the first syntactically valid JSON array in `segment`, or None.

    Markdown fences are stripped first; surrounding prose is skipped by
    trying every '[' in order until one decodes to a list. A run of
    brackets nested too deep for the decoder is skipped as a whole.
    """
    cleaned = _CODE_FENCE_RE.sub("", segment)
    start = cleaned.find("[")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            value = None
        except RecursionError:
            end = start
            while end < len(cleaned) and cleaned[end] in "[ \t\r\n":
                end += 1
            start = cleaned.find("[", end)
            continue
        if isinstance(value, list):
            return value
        start = cleaned.find("[", start + 1)
    return None


# ---------------------------------------------------------------------------
# Item validators
# ---------------------------------------------------------------------------

def coerce_quiz_question(raw: Any) -> QuizQuestion | None:
    """
    Validate one quiz entry. Accepts `answer` / `correct_answer` as aliases
    of `correctAnswer`; rejects anything without exactly four non-blank
    string options or with an out-of-range / non-integer index.
    """
    if not isinstance(raw, dict):
        return None
    answer = raw.get("correctAnswer", raw.get("correct_answer", raw.get("answer")))
    # bool is an int subclass; a JSON true/false is not an index
    if isinstance(answer, bool) or not isinstance(answer, int):
        return None
    options = raw.get("options")
    if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
        return None
    try:
        return QuizQuestion(
            question=raw.get("question") if isinstance(raw.get("question"), str) else "",
            options=options,
            correct_answer=answer,
        )
    except ValidationError:
        return None


def coerce_flashcard(raw: Any) -> Flashcard | None:
    if not isinstance(raw, dict):
        return None
    front, back = raw.get("front"), raw.get("back")
    if not isinstance(front, str) or not isinstance(back, str):
        return None
    front, back = front.strip(), back.strip()
    if not front or not back:
        return None
    return Flashcard(front=front, back=back)


def _validate_items(
    raw_items: list, coerce: Callable[[Any], T | None], limit: int | None,
) -> tuple[list[T], int]:
    items: list[T] = []
    dropped = 0
    for raw in raw_items:
        item = coerce(raw)
        if item is None:
            dropped += 1
            continue
        items.append(item)
    if limit is not None and len(items) > limit:
        dropped += len(items) - limit
        items = items[:limit]
    return items, dropped


# ---------------------------------------------------------------------------
# Public parsers
# ---------------------------------------------------------------------------

def split_sections(reply: str) -> tuple[str, str | None]:
    """
    Stage 1. Returns (summary, quiz_segment); quiz_segment is None when the
    reply has no ---QUIZ--- marker.
    """
    head, sep, tail = reply.partition(QUIZ_MARKER)
    summary = head.replace(SUMMARY_MARKER, "").strip()
    return summary, (tail if sep else None)


def parse_study_pack(reply: str, limit: int | None = None) -> ParsedReply[QuizQuestion]:
    summary, quiz_segment = split_sections(reply)

    if quiz_segment is None:
        return ParsedReply(
            status=ParseStatus.SUMMARY_ONLY,
            summary=summary,
            error=AIParseError(f"reply has no {QUIZ_MARKER} section", reply),
        )

    raw_items = find_json_array(quiz_segment)
    if raw_items is None:
        return ParsedReply(
            status=ParseStatus.FAILED,
            summary=summary,
            error=AIParseError("quiz section contains no valid JSON array", quiz_segment),
        )

    items, dropped = _validate_items(raw_items, coerce_quiz_question, limit)
    if not items:
        return ParsedReply(
            status=ParseStatus.FAILED,
            summary=summary,
            dropped=dropped,
            error=AIParseError(f"none of {len(raw_items)} quiz entries passed validation", quiz_segment),
        )

    if dropped:
        logger.info("Reply parse | kept=%d dropped=%d quiz entries", len(items), dropped)
    return ParsedReply(status=ParseStatus.PARSED, summary=summary, items=items, dropped=dropped)


def parse_flashcards(reply: str, limit: int | None = None) -> ParsedReply[Flashcard]:
    raw_items = find_json_array(reply)
    if raw_items is None:
        return ParsedReply(
            status=ParseStatus.FAILED,
            error=AIParseError("reply contains no valid JSON array", reply),
        )

    items, dropped = _validate_items(raw_items, coerce_flashcard, limit)
    if not items:
        return ParsedReply(
            status=ParseStatus.FAILED,
            dropped=dropped,
            error=AIParseError(f"none of {len(raw_items)} flashcards passed validation", reply),
        )
    return ParsedReply(status=ParseStatus.PARSED, items=items, dropped=dropped)
