"""Prompt & parsing utilities for meal photo analysis."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from mealscan.domain.meal.analysis.models import (
    MAX_ALTERNATIVES,
    MAX_IMPROVE,
    MAX_ITEMS,
    MAX_SUGGESTIONS,
)
from mealscan.domain.shared.errors import NonJSONModelContentError

# Bump when the schema or the instructions change.
PROMPT_VERSION = 5

IMAGE_MIME_TYPE = "image/jpeg"

ANALYSIS_PROMPT = f"""
Analyze this meal photo and return JSON ONLY with:
{{
  "detected_dish":{{"name":"string","cuisine":"string","confidence":number,"alternatives":["string"]}},
  "items":[{{"name":"string","portion":"string","grams":number,"kcal":number,"protein_g":number,"carbs_g":number,"fat_g":number,"confidence":number,"why":"string"}}],
  "total":{{"kcal":number,"protein_g":number,"carbs_g":number,"fat_g":number}},
  "confidence":number,
  "balance":{{"score":number,"verdict":"string","summary":"string","improve":["string"]}},
  "suggestions":[{{"goal":"string","add":"string","replace":"string","why":"string"}}]
}}
Rules:
- Provide best estimates even if unsure.
- Every confidence is 0.0 to 1.0; balance.score is 0 to 100.
- At most {MAX_ITEMS} items, {MAX_ALTERNATIVES} alternatives, {MAX_IMPROVE} improve entries, {MAX_SUGGESTIONS} suggestions.
- grams, kcal and macros are for the visible portion, not per 100 g.
- total must equal the sum of the items.
- "why" explains in one short sentence what the estimate is based on.
- Suggestions cover goals such as "More protein", "Fewer calories", "More fiber".
- No extra text outside JSON.
""".strip()


def build_image_url(image_base64: str) -> str:
    """
    Data URL for the vision API.

    Input that already is a ``data:`` URL is passed through.

    Example:
        >>> build_image_url("AAAA")
        'data:image/jpeg;base64,AAAA'
    """
    image = image_base64.strip()
    if image.startswith("data:"):
        return image
    return f"data:{IMAGE_MIME_TYPE};base64,{image}"


def build_vision_messages(image_base64: str) -> List[Dict[str, Any]]:
    """Single user message carrying the instructions and the photo."""
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": ANALYSIS_PROMPT},
                {"type": "image_url", "image_url": {"url": build_image_url(image_base64)}},
            ],
        }
    ]


def _parse_int(text: str) -> Optional[int]:
    # integers past the interpreter's digit limit decode as null
    try:
        return int(text)
    except ValueError:
        return None


def extract_json_object(content: str) -> Any:
    """
    Decode model content.

    Strict ``json.loads`` first; if that fails the outermost ``{...}`` span
    is tried, which drops code fences and chatter around the object.

    Raises:
        NonJSONModelContentError: If neither attempt yields JSON (nesting
            too deep for the decoder counts as not JSON)
    """
    try:
        return json.loads(content, parse_int=_parse_int)
    except (ValueError, RecursionError):
        pass

    first = content.find("{")
    last = content.rfind("}")
    if first == -1 or last <= first:
        raise NonJSONModelContentError(content)
    try:
        return json.loads(content[first : last + 1], parse_int=_parse_int)
    except (ValueError, RecursionError) as exc:
        raise NonJSONModelContentError(content) from exc
