"""
Unit Tests — Reply parsing
══════════════════════════
  ✅ Well-formed reply → summary + questions
  ✅ Code fences and surrounding prose tolerated
  ✅ Missing ---QUIZ--- marker → whole reply is the summary, quiz = []
  ✅ Unparseable array → quiz = [] with an AIParseError value, never raised
  ✅ Deeply nested brackets degrade instead of raising
  ✅ Per-item validation (option count, blank options, index range, aliases)
  ✅ Flashcard replies
"""

from __future__ import annotations

import json

import pytest

from unicollab.llm.parsing import (
    ParseStatus,
    coerce_quiz_question,
    find_json_array,
    parse_flashcards,
    parse_study_pack,
    split_sections,
)


def _q(question="What is ATP?", options=None, correct=1, key="correctAnswer") -> dict:
    return {
        "question": question,
        "options": options if options is not None else ["Sugar", "Energy carrier", "Protein", "Lipid"],
        key: correct,
    }


@pytest.mark.unit
class TestSplitSections:

    def test_both_markers(self):
        summary, quiz = split_sections("---SUMMARY---\n- point\n---QUIZ---\n[]")
        assert summary == "- point"
        assert quiz.strip() == "[]"

    def test_summary_marker_optional(self):
        summary, quiz = split_sections("- point one\n---QUIZ---[]")
        assert summary == "- point one"
        assert quiz == "[]"

    def test_no_quiz_marker(self):
        summary, quiz = split_sections("Just a summary.")
        assert summary == "Just a summary."
        assert quiz is None


@pytest.mark.unit
class TestFindJsonArray:

    def test_plain_array(self):
        assert find_json_array('[{"a": 1}]') == [{"a": 1}]

    def test_fenced_array_with_prose(self):
        segment = 'Here you go:\n```json\n[1, 2, 3]\n```\nGood luck!'
        assert find_json_array(segment) == [1, 2, 3]

    def test_skips_bracket_in_prose(self):
        segment = 'Answers [see below]: [{"x": true}]'
        assert find_json_array(segment) == [{"x": True}]

    def test_trailing_text_after_array(self):
        assert find_json_array('[1] and then [2]') == [1]

    @pytest.mark.parametrize("segment", ["", "no array here", "[1, 2", '{"a": 1}'])
    def test_returns_none_when_absent(self, segment):
        assert find_json_array(segment) is None

    def test_deep_nesting_returns_none(self):
        assert find_json_array("[" * 50_000) is None

    def test_array_after_deep_nesting_is_found(self):
        assert find_json_array("[" * 50_000 + " then [1, 2]") == [1, 2]


@pytest.mark.unit
class TestParseStudyPack:

    def test_well_formed_reply(self):
        reply = "---SUMMARY---\n- Cells\n- ATP\n---QUIZ---\n" + json.dumps([_q(), _q("Q2?", correct=3)])
        parsed = parse_study_pack(reply)

        assert parsed.status is ParseStatus.PARSED
        assert parsed.ok
        assert parsed.summary == "- Cells\n- ATP"
        assert [q.correct_answer for q in parsed.items] == [1, 3]
        assert parsed.error is None

    def test_fenced_quiz(self):
        reply = "---SUMMARY---\nS\n---QUIZ---\n```json\n" + json.dumps([_q()]) + "\n```"
        parsed = parse_study_pack(reply)
        assert parsed.ok
        assert parsed.items[0].options[1] == "Energy carrier"

    def test_missing_quiz_marker_yields_empty_quiz(self):
        reply = "Here is a summary without any quiz section."
        parsed = parse_study_pack(reply)

        assert parsed.status is ParseStatus.SUMMARY_ONLY
        assert parsed.summary == reply
        assert parsed.items == []
        assert parsed.error is not None

    def test_invalid_json_yields_empty_quiz(self):
        parsed = parse_study_pack("---SUMMARY---\nS\n---QUIZ---\n[{question: broken,]")

        assert parsed.status is ParseStatus.FAILED
        assert parsed.summary == "S"
        assert parsed.items == []
        assert "no valid JSON array" in parsed.error.reason

    def test_all_items_invalid_is_failed(self):
        reply = "---QUIZ---" + json.dumps([_q(options=["a", "b"]), {"question": "x"}])
        parsed = parse_study_pack(reply)

        assert parsed.status is ParseStatus.FAILED
        assert parsed.dropped == 2

    def test_invalid_items_dropped_valid_kept(self):
        reply = "---QUIZ---" + json.dumps([_q(), _q(correct=7), _q("Q3?")])
        parsed = parse_study_pack(reply)

        assert parsed.ok
        assert len(parsed.items) == 2
        assert parsed.dropped == 1

    def test_limit_truncates(self):
        reply = "---QUIZ---" + json.dumps([_q(f"Q{i}?") for i in range(8)])
        parsed = parse_study_pack(reply, limit=5)

        assert len(parsed.items) == 5
        assert parsed.dropped == 3

    def test_error_excerpt_is_bounded(self):
        parsed = parse_study_pack("x" * 1000)
        assert len(parsed.error.raw_excerpt) <= 200

    def test_deeply_nested_quiz_degrades(self):
        parsed = parse_study_pack("---SUMMARY--- s ---QUIZ--- " + "[" * 50_000)

        assert parsed.status is ParseStatus.FAILED
        assert parsed.summary == "s"
        assert parsed.items == []


@pytest.mark.unit
class TestCoerceQuizQuestion:

    @pytest.mark.parametrize("key", ["correctAnswer", "correct_answer", "answer"])
    def test_answer_aliases(self, key):
        q = coerce_quiz_question(_q(key=key, correct=2))
        assert q is not None
        assert q.correct_answer == 2

    @pytest.mark.parametrize("correct", [-1, 4, "1", 1.5, True, None])
    def test_bad_index_rejected(self, correct):
        assert coerce_quiz_question(_q(correct=correct)) is None

    @pytest.mark.parametrize("options", [
        ["a", "b", "c"],
        ["a", "b", "c", "d", "e"],
        ["a", "b", "c", 4],
        "abcd",
        ["", " ", "", ""],
        ["a", "b", "  ", "d"],
    ])
    def test_bad_options_rejected(self, options):
        assert coerce_quiz_question(_q(options=options)) is None

    @pytest.mark.parametrize("question", ["", "   ", None, 42])
    def test_blank_question_rejected(self, question):
        assert coerce_quiz_question(_q(question=question)) is None

    def test_non_dict_rejected(self):
        assert coerce_quiz_question(["not", "a", "dict"]) is None

    def test_serializes_with_camel_case(self):
        q = coerce_quiz_question(_q())
        assert q.model_dump(by_alias=True)["correctAnswer"] == 1


@pytest.mark.unit
class TestParseFlashcards:

    def test_well_formed(self):
        reply = json.dumps([{"front": "ATP", "back": "Energy currency"}, {"front": "DNA", "back": "Genome"}])
        parsed = parse_flashcards(reply)

        assert parsed.ok
        assert [c.front for c in parsed.items] == ["ATP", "DNA"]

    def test_fenced_with_prose(self):
        reply = 'Sure!\n```json\n[{"front": " Term ", "back": " Def "}]\n```'
        parsed = parse_flashcards(reply)
        assert parsed.items[0].front == "Term"
        assert parsed.items[0].back == "Def"

    def test_drops_incomplete_cards(self):
        reply = json.dumps([{"front": "A", "back": ""}, {"front": "B"}, {"front": "C", "back": "c"}])
        parsed = parse_flashcards(reply)
        assert [c.front for c in parsed.items] == ["C"]
        assert parsed.dropped == 2

    def test_garbage_yields_empty(self):
        parsed = parse_flashcards("I could not produce flashcards.")
        assert parsed.status is ParseStatus.FAILED
        assert parsed.items == []

    def test_limit(self):
        reply = json.dumps([{"front": f"F{i}", "back": "b"} for i in range(12)])
        assert len(parse_flashcards(reply, limit=8).items) == 8

    def test_deeply_nested_reply_degrades(self):
        parsed = parse_flashcards("[" * 50_000)

        assert parsed.status is ParseStatus.FAILED
        assert parsed.items == []
