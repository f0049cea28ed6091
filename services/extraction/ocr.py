"""OCR providers: image bytes in, plain text out."""

from abc import ABC, abstractmethod

from shared.utils import setup_logging

logger = setup_logging("ocr")


class OCRProvider(ABC):
    """Abstract base class for text recognition backends."""

    @abstractmethod
    async def extract_text(self, data: bytes, filename: str | None = None) -> str:
        """Return the recognized text, or an empty string."""
        pass


class PlainTextOCRProvider(OCRProvider):
    """Treats the upload as already-textual content (UTF-8, lossy)."""

    async def extract_text(self, data: bytes, filename: str | None = None) -> str:
        if not data:
            return ""
        text = data.decode("utf-8", errors="ignore")
        if not text.strip():
            logger.info(f"No text recognized in upload {filename or '<unnamed>'}")
        return text
