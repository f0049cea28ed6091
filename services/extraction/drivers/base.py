from abc import ABC, abstractmethod
from typing import Any

SYSTEM_PROMPT = (
    "You are a parser. Extract a JSON array of items from the user's unstructured text. "
    "Return ONLY valid JSON (no commentary). Each item must be an object with keys: "
    "name (string), price (number|null), currency (3-letter code|null), "
    "description (string|null), type (string|null), confidence (number 0-1). "
    "If a price is missing set price to null and confidence to 0.6. Do not invent prices."
)


class ExtractionDriver(ABC):
    """Abstract base class for AI completion drivers used by item extraction."""

    @abstractmethod
    async def complete(self, text: str, settings: dict[str, Any]) -> str:
        """Return the raw completion text for the given input."""
        pass

    @staticmethod
    def build_messages(text: str, settings: dict[str, Any]) -> list[dict[str, str]]:
        system_prompt = settings.get("system_prompt", SYSTEM_PROMPT)
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": f"Input:\n\n{text}"},
        ]
