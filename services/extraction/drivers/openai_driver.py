"""OpenAI driver for item extraction using AsyncOpenAI."""

from __future__ import annotations

from typing import Any

from shared.azure_openai_client import create_openai_client

from .base import ExtractionDriver


class OpenAIExtractionDriver(ExtractionDriver):
    """Direct OpenAI chat-completions implementation."""

    def __init__(self, api_key: str | None = None):
        self.client = create_openai_client(api_key=api_key)

    async def complete(self, text: str, settings: dict[str, Any]) -> str:
        response = await self.client.chat.completions.create(
            model=settings.get("model", "gpt-4o-mini"),
            messages=self.build_messages(text, settings),
            temperature=settings.get("temperature", 0),
            max_tokens=settings.get("max_tokens", 800),
        )

        content = response.choices[0].message.content
        if content is not None:
            return content.strip()
        return ""
