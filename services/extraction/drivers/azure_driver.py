"""Azure OpenAI driver for item extraction using the v1 API pattern."""

from __future__ import annotations

from typing import Any

from shared.azure_openai_client import create_azure_openai_client, get_azure_deployment_name

from .base import ExtractionDriver


class AzureOpenAIExtractionDriver(ExtractionDriver):
    """Azure OpenAI implementation; the model setting names a deployment."""

    def __init__(self):
        self.client = create_azure_openai_client()

    async def complete(self, text: str, settings: dict[str, Any]) -> str:
        response = await self.client.chat.completions.create(
            model=get_azure_deployment_name(settings.get("deployment")),
            messages=self.build_messages(text, settings),
            temperature=settings.get("temperature", 0),
            max_tokens=settings.get("max_tokens", 800),
        )

        content = response.choices[0].message.content
        if content is not None:
            return content.strip()
        return ""
