"""Item extraction: heuristic line parser plus AI-assisted extraction."""

from .heuristic import parse_text
from .ocr import OCRProvider, PlainTextOCRProvider
from .service import ItemExtractor, parse_ai_response

__all__ = [
    "ItemExtractor",
    "OCRProvider",
    "PlainTextOCRProvider",
    "parse_ai_response",
    "parse_text",
]
