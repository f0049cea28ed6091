"""Builders for the OpenAI and Azure OpenAI clients used by item extraction.

Both factories raise ``ValueError`` when credentials are missing; callers that
treat AI as optional catch it and degrade to heuristic parsing.
"""

from __future__ import annotations

import os

from openai import AsyncOpenAI

from shared.config import config


def create_azure_openai_client(
    api_key: str | None = None,
    azure_endpoint: str | None = None,
) -> AsyncOpenAI:
    """
    Create an async Azure OpenAI client using the v1 API pattern.

    Args:
        api_key: Azure OpenAI API key (auto-detected if None)
        azure_endpoint: Azure OpenAI endpoint URL (auto-detected if None)

    Returns:
        Configured AsyncOpenAI client

    Raises:
        ValueError: If credentials are not configured
    """
    api_key = api_key or config.get("azure_openai_key") or os.getenv("AZURE_OPENAI_KEY")
    azure_endpoint = (
        azure_endpoint or config.get("azure_openai_endpoint") or os.getenv("AZURE_OPENAI_ENDPOINT")
    )

    if not api_key or not azure_endpoint:
        raise ValueError(
            "Azure OpenAI credentials not configured. "
            "Set AZURE_OPENAI_KEY and AZURE_OPENAI_ENDPOINT environment variables."
        )

    base_url = f"{azure_endpoint.rstrip('/')}/openai/v1/"
    return AsyncOpenAI(api_key=api_key, base_url=base_url)


def create_openai_client(api_key: str | None = None) -> AsyncOpenAI:
    """
    Create a direct async OpenAI client.

    ``OPENAI_API_KEY`` is preferred, ``AI_API_KEY`` is accepted as an alias.

    Raises:
        ValueError: If no API key is configured
    """
    api_key = (
        api_key
        or config.get("openai_api_key")
        or os.getenv("OPENAI_API_KEY")
        or os.getenv("AI_API_KEY")
    )

    if not api_key:
        raise ValueError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")

    return AsyncOpenAI(api_key=api_key)


def get_azure_deployment_name(deployment: str | None = None) -> str:
    """Resolve the Azure deployment name, falling back to the configured default."""
    return (
        deployment
        or config.get("azure_openai_deployment")
        or os.getenv("AZURE_OPENAI_DEPLOYMENT")
        or "gpt-4o-mini"
    )
