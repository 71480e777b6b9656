"""
Text Extraction
═══════════════

Reads the native text layer of an uploaded PDF with PyMuPDF (fitz).

  1. Open the bytes as a PDF (in a thread executor — parsing is CPU-bound)
  2. Concatenate per-page text with "\n\n" separators
  3. Reject the document if the trimmed text is shorter than the
     unreadable threshold

Scanned / image-only PDFs have no text layer, so they come back empty and
fall under the same "unreadable" rejection. No partial text is ever
returned on failure.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from unicollab.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

# Trimmed text shorter than this is treated as unreadable
MIN_TEXT_CHARS = 50


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractionResult:
    """
    text        : trimmed full text, len(text) >= min_chars
    page_count  : number of pages in the document
    elapsed_ms  : extraction wall time (ms)
    """
    text:       str
    page_count: int
    elapsed_ms: float

    @property
    def total_chars(self) -> int:
        return len(self.text)


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class PDFTextExtractor:
    """
    Stateless; safe for concurrent use (fitz.open() returns an independent
    document object per call).

    Usage:
        extractor = PDFTextExtractor(min_chars=50)
        result = await extractor.extract(pdf_bytes)
    """

    def __init__(self, min_chars: int = MIN_TEXT_CHARS) -> None:
        self._min_chars = min_chars

    async def extract(self, pdf_bytes: bytes) -> ExtractionResult:
        """
        Raises:
            ExtractionError: bytes are not a parseable PDF, or the text layer
                is empty / shorter than min_chars.
        """
        loop = asyncio.get_running_loop()
        t0 = time.monotonic()

        try:
            pages = await loop.run_in_executor(None, self._extract_pages, pdf_bytes)
        except Exception as exc:
            logger.warning("PDF parse failed | size=%d error=%s", len(pdf_bytes), exc)
            raise ExtractionError(
                "PDF is empty or unreadable.",
                detail=f"Could not parse document: {exc}",
            ) from exc

        text = "\n\n".join(p for p in pages if p.strip()).strip()
        elapsed_ms = (time.monotonic() - t0) * 1000

        logger.info(
            "Extraction | pages=%d total_chars=%d elapsed_ms=%.0f",
            len(pages), len(text), elapsed_ms,
        )

        if len(text) < self._min_chars:
            raise ExtractionError(
                "PDF is empty or unreadable.",
                detail=(
                    f"Only {len(text)} characters of selectable text found "
                    f"(minimum {self._min_chars}). Scanned documents are not supported."
                ),
            )

        return ExtractionResult(text=text, page_count=len(pages), elapsed_ms=elapsed_ms)

    @staticmethod
    def _extract_pages(pdf_bytes: bytes) -> list[str]:
        """Blocking extraction — runs in thread executor."""
        import fitz  # PyMuPDF; imported here to avoid module-level import cost

        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            if doc.needs_pass:
                raise ValueError("document is password-protected")
            return [page.get_text("text") for page in doc]
