"""
LLM Package

Chat-completions client plus the prompt templates and reply parser used to
turn extracted document text into study content.

Public API::

    from unicollab.llm import CompletionClient, parse_study_pack

    client = CompletionClient(api_key=..., model="meta-llama/llama-3.3-70b-instruct:free")
    reply = await client.complete(build_study_pack_prompt(text))
    parsed = parse_study_pack(reply, limit=5)
"""

from unicollab.llm.client import CompletionClient
from unicollab.llm.parsing import ParsedReply, ParseStatus, parse_flashcards, parse_study_pack
from unicollab.llm.prompts import build_flashcard_prompt, build_study_pack_prompt

__all__ = [
    "CompletionClient",
    "ParsedReply",
    "ParseStatus",
    "build_flashcard_prompt",
    "build_study_pack_prompt",
    "parse_flashcards",
    "parse_study_pack",
]
