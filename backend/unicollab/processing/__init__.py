"""
Document Processing Package
════════════════════════════

  extractor.py  PDF text-layer extraction with the unreadable-document guard

Every component is stateless and safe to share across requests.
"""

from unicollab.processing.extractor import ExtractionResult, PDFTextExtractor

__all__ = [
    "ExtractionResult",
    "PDFTextExtractor",
]
