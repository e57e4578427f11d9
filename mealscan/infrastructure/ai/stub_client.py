"""Stub vision client.

Returns a canned meal analysis without calling external APIs. Selected
with ``VISION_PROVIDER=stub`` for local development and E2E tests.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

STUB_ANALYSIS: Dict[str, Any] = {
    "detected_dish": {
        "name": "Grilled chicken with rice and salad",
        "cuisine": "Mediterranean",
        "confidence": 0.8,
        "alternatives": ["Chicken rice bowl", "Chicken salad plate"],
    },
    "items": [
        {
            "name": "Grilled chicken breast",
            "portion": "1 fillet",
            "grams": 150,
            "kcal": 248,
            "protein_g": 46,
            "carbs_g": 0,
            "fat_g": 5,
            "confidence": 0.85,
            "why": "Palm-sized fillet with grill marks",
        },
        {
            "name": "White rice",
            "portion": "1 cup",
            "grams": 160,
            "kcal": 208,
            "protein_g": 4,
            "carbs_g": 45,
            "fat_g": 0.5,
            "confidence": 0.8,
            "why": "Rice mound covering a third of the plate",
        },
        {
            "name": "Mixed green salad",
            "portion": "1 side bowl",
            "grams": 80,
            "kcal": 45,
            "protein_g": 1.5,
            "carbs_g": 4,
            "fat_g": 3,
            "confidence": 0.7,
            "why": "Leafy greens with a light dressing",
        },
    ],
    "total": {"kcal": 501, "protein_g": 51.5, "carbs_g": 49, "fat_g": 8.5},
    "confidence": 0.8,
    "balance": {
        "score": 78,
        "verdict": "Well balanced",
        "summary": "Lean protein, starch and vegetables in reasonable portions.",
        "improve": ["Swap white rice for brown rice for more fiber"],
    },
    "suggestions": [
        {
            "goal": "More fiber",
            "add": "Half a cup of chickpeas",
            "replace": "White rice with brown rice",
            "why": "Whole grains and legumes add fiber and slow digestion",
        }
    ],
}


class StubVisionClient:
    """
    Drop-in replacement for ``OpenAIClient``.

    ``complete()`` ignores the messages and answers with ``content``
    (``STUB_ANALYSIS`` by default) in the same dict shape as the real
    client.
    """

    def __init__(self, content: Optional[str] = None) -> None:
        self.model = "stub"
        self.content = json.dumps(STUB_ANALYSIS) if content is None else content
        self.calls = 0

    async def __aenter__(self) -> "StubVisionClient":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        return None

    async def aclose(self) -> None:
        return None

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        response_format: Optional[Dict[str, str]] = None,
        temperature: float = 0.2,
        max_tokens: int = 900,
    ) -> Dict[str, Any]:
        self.calls += 1
        body = {
            "id": "chatcmpl-stub",
            "object": "chat.completion",
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": self.content},
                    "finish_reason": "stop",
                }
            ],
        }
        return {
            "content": self.content,
            "finish_reason": "stop",
            "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
            "raw_text": json.dumps(body),
        }
