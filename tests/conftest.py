"""Shared fixtures for mealscan tests."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest

from mealscan.config import Settings
from mealscan.metrics.analysis import reset_all

# 1x1 white JPEG, enough for the data-URL plumbing
TINY_JPEG_BASE64 = (
    "/9j/4AAQSkZJRgABAQEASABIAAD/2wBDAP//////////////////////////////////////"
    "////////////////////////////////////////////////wAALCAABAAEBAREA/8QAFAAB"
    "AAAAAAAAAAAAAAAAAAAAA//EABQQAQAAAAAAAAAAAAAAAAAAAAD/2gAIAQEAAD8AN//Z"
)


# ═══════════════════════════════════════════════════════════
# PAYLOAD FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def image_base64() -> str:
    return TINY_JPEG_BASE64


@pytest.fixture
def valid_analysis() -> Dict[str, Any]:
    """Schema-conformant model reply."""
    return {
        "detected_dish": {
            "name": "Spaghetti carbonara",
            "cuisine": "Italian",
            "confidence": 0.9,
            "alternatives": ["Spaghetti alla gricia", "Cacio e pepe"],
        },
        "items": [
            {
                "name": "Spaghetti",
                "portion": "1 plate",
                "grams": 200,
                "kcal": 316,
                "protein_g": 11.6,
                "carbs_g": 61.8,
                "fat_g": 1.9,
                "confidence": 0.9,
                "why": "Long pasta strands filling the plate",
            },
            {
                "name": "Guanciale",
                "portion": "a handful of cubes",
                "grams": 40,
                "kcal": 262,
                "protein_g": 3.2,
                "carbs_g": 0,
                "fat_g": 27.6,
                "confidence": 0.7,
                "why": "Browned pork cubes mixed into the pasta",
            },
        ],
        "total": {"kcal": 578, "protein_g": 14.8, "carbs_g": 61.8, "fat_g": 29.5},
        "confidence": 0.85,
        "balance": {
            "score": 55,
            "verdict": "High in fat",
            "summary": "Energy dense, little fiber.",
            "improve": ["Add a side salad", "Use less guanciale"],
        },
        "suggestions": [
            {
                "goal": "More fiber",
                "add": "A green salad",
                "replace": "Half the pasta with zucchini ribbons",
                "why": "Vegetables add fiber and volume",
            }
        ],
    }


# ═══════════════════════════════════════════════════════════
# SETTINGS & METRICS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def stub_settings() -> Settings:
    return Settings(vision_provider="stub", log_level="WARNING")


@pytest.fixture
def openai_settings() -> Settings:
    return Settings(
        openai_api_key="sk-test-1234567890",
        vision_provider="openai",
        log_level="WARNING",
    )


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None, None, None]:
    """Reset metrics before and after every test."""
    reset_all()
    yield
    reset_all()


# ═══════════════════════════════════════════════════════════
# UPSTREAM (OPENAI) MOCKS
# ═══════════════════════════════════════════════════════════


def chat_completion_body(content: Optional[str]) -> Dict[str, Any]:
    """Minimal chat.completion JSON body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 900, "completion_tokens": 250, "total_tokens": 1150},
    }


class UpstreamRecorder:
    """httpx MockTransport handler that replays one canned response."""

    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.text = text
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)

    def last_payload(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream() -> Callable[..., UpstreamRecorder]:
    """Factory for upstream recorders."""

    def _make(status_code: int = 200, body: Any = None, text: Optional[str] = None) -> UpstreamRecorder:
        return UpstreamRecorder(status_code=status_code, body=body, text=text)

    return _make


@pytest.fixture
def completion_body() -> Callable[[Optional[str]], Dict[str, Any]]:
    return chat_completion_body
