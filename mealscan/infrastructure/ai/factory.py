"""Vision client factory.

Environment-based client selection (``VISION_PROVIDER``):
- "openai": OpenAI chat completions (requires OPENAI_API_KEY)
- "stub": canned answer, no network
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from mealscan.config import Settings
from mealscan.infrastructure.ai.openai_client import OpenAIClient
from mealscan.infrastructure.ai.stub_client import StubVisionClient


class VisionClient(Protocol):
    """What the analysis service needs from a vision client."""

    model: str

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        response_format: Optional[Dict[str, str]] = None,
        temperature: float = 0.2,
        max_tokens: int = 900,
    ) -> Dict[str, Any]:
        ...

    async def aclose(self) -> None:
        ...


def create_vision_client(settings: Settings) -> VisionClient:
    """
    Create the vision client selected by ``settings.vision_provider``.

    Raises:
        ValueError: If the OpenAI provider is selected without an API key
    """
    if settings.vision_provider == "stub":
        return StubVisionClient()

    if not settings.openai_api_key:
        raise ValueError(
            "VISION_PROVIDER=openai but OPENAI_API_KEY not set. "
            "Set OPENAI_API_KEY in .env or use VISION_PROVIDER=stub"
        )
    return OpenAIClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.timeout_s,
        base_url=settings.openai_base_url,
    )
