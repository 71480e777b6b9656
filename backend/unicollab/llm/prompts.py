"""
Prompt templates for study-material enrichment.

Both templates embed a bounded prefix of the extracted text so the request
stays inside provider context limits, and spell out the reply grammar the
parser in llm/parsing.py expects.
"""

from __future__ import annotations

from typing import Final

SUMMARY_MARKER: Final[str] = "---SUMMARY---"
QUIZ_MARKER:    Final[str] = "---QUIZ---"

_STUDY_PACK_TEMPLATE: Final[str] = """\
Act as a university lecturer. Analyze these lecture notes:
\"\"\"
{notes}
\"\"\"

1. Provide a summary of the notes in bullet points.
2. Provide exactly {num_questions} multiple choice questions, each with exactly 4 options.
   "correctAnswer" is the zero-based index of the correct option.

OUTPUT FORMAT (follow exactly, no other text):
{summary_marker}
[summary bullet points]
{quiz_marker}
[{{"question": "q", "options": ["a", "b", "c", "d"], "correctAnswer": 0}}]
"""

_FLASHCARD_TEMPLATE: Final[str] = """\
Act as a study tutor. Create {num_cards} educational flashcards from this text:
\"\"\"
{notes}
\"\"\"

Format ONLY as a JSON array: [{{"front": "Question/Term", "back": "Answer/Definition"}}]
"""


def truncate(text: str, max_chars: int) -> str:
    """First max_chars characters of text."""
    return text[:max_chars]


def build_study_pack_prompt(text: str, max_chars: int = 7_000, num_questions: int = 5) -> str:
    return _STUDY_PACK_TEMPLATE.format(
        notes=truncate(text, max_chars),
        num_questions=num_questions,
        summary_marker=SUMMARY_MARKER,
        quiz_marker=QUIZ_MARKER,
    )


def build_flashcard_prompt(text: str, max_chars: int = 6_000, num_cards: int = 8) -> str:
    return _FLASHCARD_TEMPLATE.format(notes=truncate(text, max_chars), num_cards=num_cards)
