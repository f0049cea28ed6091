"""Item extraction with an optional AI-assisted path.

The AI path never raises to the caller: missing credentials, transport
errors and malformed completions all degrade to the heuristic parser.
"""

import json
import math
import re
from typing import Any

from services.extraction.drivers import (
    AzureOpenAIExtractionDriver,
    ExtractionDriver,
    OpenAIExtractionDriver,
)
from services.extraction.errors import AIExtractionError
from services.extraction.heuristic import parse_text
from shared.models import ParsedItem
from shared.utils import config, setup_logging

logger = setup_logging("item-extractor")

DEFAULT_AI_CONFIDENCE = 0.8
_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")


def extract_first_json_array(content: str) -> str | None:
    """Return the first balanced ``[...]`` block in ``content``, if any."""
    start = content.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(content)):
        char = content[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return content[start : index + 1]
    return None


def _coerce_price(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = re.sub(r"[^\d.\-]", "", value.replace(",", ""))
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return number


def _coerce_currency(value: Any) -> str | None:
    if isinstance(value, str) and _CURRENCY_RE.match(value.strip()):
        return value.strip().upper()
    return None


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_AI_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_AI_CONFIDENCE
    return min(1.0, max(0.0, float(value)))


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_item(entry: Any) -> ParsedItem | None:
    """Validate one loosely-typed AI entry; ``None`` when it cannot be used."""
    if not isinstance(entry, dict):
        return None
    name = _optional_text(entry.get("name"))
    if not name:
        return None
    return ParsedItem(
        name=name,
        price=_coerce_price(entry.get("price")),
        currency=_coerce_currency(entry.get("currency")),
        description=_optional_text(entry.get("description")),
        confidence=_coerce_confidence(entry.get("confidence")),
        type=_optional_text(entry.get("type")),
        raw=_optional_text(entry.get("raw")),
    )


def parse_ai_response(content: str) -> list[ParsedItem]:
    """Parse completion text into items.

    Raises:
        AIExtractionError: when no JSON array can be read from ``content``.
    """
    payload = extract_first_json_array(content or "")
    if payload is None:
        raise AIExtractionError("AI response did not contain a JSON array")
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise AIExtractionError(f"AI response was not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise AIExtractionError("AI response JSON was not an array")

    items = [item for item in (coerce_item(entry) for entry in data) if item is not None]
    dropped = len(data) - len(items)
    if dropped:
        logger.info(f"Discarded {dropped} malformed AI item(s)")
    return items


class ItemExtractor:
    """Extract structured line items from raw text."""

    def __init__(self, driver: ExtractionDriver | None = None, settings: dict[str, Any] | None = None):
        self._driver = driver
        self.settings = settings or {
            "model": config.get_pipeline_value("parse.ai.model", "gpt-4o-mini"),
            "temperature": config.get_pipeline_value("parse.ai.temperature", 0),
            "max_tokens": config.get_pipeline_value("parse.ai.max_tokens", 800),
        }

    def extract(self, text: str) -> list[ParsedItem]:
        """Heuristic extraction; pure and synchronous."""
        return parse_text(text)

    async def extract_ai(self, text: str) -> list[ParsedItem]:
        """AI-assisted extraction that falls back to :meth:`extract` on any failure."""
        if not text or not text.strip():
            return []

        driver = self._resolve_driver()
        if driver is None:
            return self.extract(text)

        try:
            completion = await driver.complete(text, self.settings)
            items = parse_ai_response(completion)
        except Exception as e:
            logger.warning(f"AI extraction failed, using heuristic parser: {e!s}")
            return self.extract(text)

        if not items:
            logger.warning("AI extraction returned no usable items, using heuristic parser")
            return self.extract(text)
        return items

    def _resolve_driver(self) -> ExtractionDriver | None:
        """Build the configured driver on first use; ``None`` when AI is not configured."""
        if self._driver is not None:
            return self._driver
        try:
            if config.get("use_azure_openai", False):
                self._driver = AzureOpenAIExtractionDriver()
            else:
                self._driver = OpenAIExtractionDriver()
        except ValueError as e:
            logger.debug(f"AI extraction disabled: {e!s}")
            return None
        return self._driver
