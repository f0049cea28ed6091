"""AI extraction driver implementations."""

from .azure_driver import AzureOpenAIExtractionDriver
from .base import SYSTEM_PROMPT, ExtractionDriver
from .openai_driver import OpenAIExtractionDriver

__all__ = [
    "SYSTEM_PROMPT",
    "ExtractionDriver",
    "OpenAIExtractionDriver",
    "AzureOpenAIExtractionDriver",
]
