"""Vision-language model clients."""

from mealscan.infrastructure.ai.factory import create_vision_client
from mealscan.infrastructure.ai.openai_client import OpenAIClient
from mealscan.infrastructure.ai.stub_client import StubVisionClient

__all__ = [
    "OpenAIClient",
    "StubVisionClient",
    "create_vision_client",
]
