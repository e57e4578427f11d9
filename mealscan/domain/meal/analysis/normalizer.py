"""
Response normalizer for meal analysis.

Turns an arbitrary, possibly malformed model reply into a fully
populated ``MealAnalysisResult``. Never raises: absent, wrong-typed,
non-finite or out-of-range values are replaced by defaults or clamped.

Pipeline:
1. Parse the reply into the all-optional ``Raw*`` structure.
2. Coerce every leaf (numbers clamped, strings trimmed, lists capped).
3. Reconcile totals from the item sums according to ``TotalPolicy``.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, List, Optional, TypeVar

import structlog

from mealscan.domain.meal.analysis.models import (
    BALANCE_SCORE_MAX,
    ITEM_CARBS_MAX,
    ITEM_FAT_MAX,
    ITEM_GRAMS_MAX,
    ITEM_KCAL_MAX,
    ITEM_PROTEIN_MAX,
    MAX_ALTERNATIVES,
    MAX_IMPROVE,
    MAX_ITEMS,
    MAX_SUGGESTIONS,
    TOTAL_CARBS_MAX,
    TOTAL_FAT_MAX,
    TOTAL_KCAL_MAX,
    TOTAL_PROTEIN_MAX,
    BalanceAssessment,
    DetectedDish,
    FoodItem,
    MealAnalysisResult,
    NutritionTotal,
    RawBalance,
    RawDetectedDish,
    RawFoodItem,
    RawMealAnalysis,
    RawRating,
    RawSuggestion,
    RawTotal,
    Suggestion,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_DISH_NAME = "Unknown dish"
DEFAULT_CUISINE = "Unknown"
DEFAULT_ITEM_NAME = "Unknown food"
DEFAULT_PORTION = "1 serving"
DEFAULT_ITEM_WHY = "Estimated from the photo"
DEFAULT_VERDICT = "Needs improvement"
DEFAULT_SUMMARY = "No summary available"
DEFAULT_GOAL = "Better balance"
DEFAULT_ADD = "Add a portion of vegetables"
DEFAULT_REPLACE = "No replacement needed"
DEFAULT_SUGGESTION_WHY = "Improves the nutritional balance of the meal"


class TotalPolicy(str, Enum):
    """
    When the upstream ``total`` wins over the per-item sum.

    COMPUTED_WHEN_ZERO_OR_ABSENT: upstream value is used only if it is a
        finite, non-zero number. A reported 0 is treated as missing.
    UPSTREAM_WHEN_PRESENT: any finite upstream number is kept, 0 included.
        The sum is used only when the value is absent or not numeric.
    """

    COMPUTED_WHEN_ZERO_OR_ABSENT = "computed_when_zero_or_absent"
    UPSTREAM_WHEN_PRESENT = "upstream_when_present"


# ═══════════════════════════════════════════════════════════
# LEAF COERCION
# ═══════════════════════════════════════════════════════════


def _to_finite(value: Any) -> Optional[float]:
    """Numeric conversion; None when ``value`` has no finite reading."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def clamp_number(value: Any, minimum: float, maximum: float, fallback: float = 0.0) -> float:
    """
    Convert ``value`` to a number in ``[minimum, maximum]``.

    Non-numeric or non-finite input yields ``fallback`` (returned as is).

    Example:
        >>> clamp_number("12.5", 0.0, 10.0)
        10.0
        >>> clamp_number(float("nan"), 0.0, 10.0, fallback=3.0)
        3.0
    """
    number = _to_finite(value)
    if number is None:
        return fallback
    return min(max(number, minimum), maximum)


def coerce_string(value: Any, fallback: str) -> str:
    """
    Trimmed string form of ``value``; ``fallback`` when empty.

    Only strings and numbers have a string form; containers, booleans
    and None fall back.
    """
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, float):
        text = str(value) if math.isfinite(value) else ""
    elif isinstance(value, str):
        text = value
    elif isinstance(value, int):
        try:
            text = str(value)
        except ValueError:
            # int beyond the interpreter's digit limit
            return fallback
    else:
        return fallback
    text = text.strip()
    return text or fallback


def coerce_list(value: Any, max_length: int) -> List[Any]:
    """Return ``value`` truncated to ``max_length`` if it is a list, else []."""
    if not isinstance(value, list):
        return []
    return value[:max_length]


def _map_list(value: Any, max_length: int, coerce: Callable[[Any], T]) -> List[T]:
    return [coerce(element) for element in coerce_list(value, max_length)]


def _string_list(value: Any, max_length: int) -> List[str]:
    # entries without text are dropped; there is no default phrase for them
    texts = [coerce_string(element, "") for element in coerce_list(value, max_length)]
    return [text for text in texts if text]


def _confidence(value: Any, fallback: float = 0.0) -> float:
    return clamp_number(value, 0.0, 1.0, fallback)


# ═══════════════════════════════════════════════════════════
# SECTION COERCION
# ═══════════════════════════════════════════════════════════


def _normalize_item(value: Any) -> FoodItem:
    raw = RawFoodItem.from_untrusted(value)
    return FoodItem(
        name=coerce_string(raw.name, DEFAULT_ITEM_NAME),
        portion=coerce_string(raw.portion, DEFAULT_PORTION),
        grams=clamp_number(raw.grams, 0.0, ITEM_GRAMS_MAX),
        kcal=clamp_number(raw.kcal, 0.0, ITEM_KCAL_MAX),
        protein_g=clamp_number(raw.protein_g, 0.0, ITEM_PROTEIN_MAX),
        carbs_g=clamp_number(raw.carbs_g, 0.0, ITEM_CARBS_MAX),
        fat_g=clamp_number(raw.fat_g, 0.0, ITEM_FAT_MAX),
        confidence=_confidence(raw.confidence),
        why=coerce_string(raw.why, DEFAULT_ITEM_WHY),
    )


def _normalize_suggestion(value: Any) -> Suggestion:
    raw = RawSuggestion.from_untrusted(value)
    return Suggestion(
        goal=coerce_string(raw.goal, DEFAULT_GOAL),
        add=coerce_string(raw.add, DEFAULT_ADD),
        replace=coerce_string(raw.replace, DEFAULT_REPLACE),
        why=coerce_string(raw.why, DEFAULT_SUGGESTION_WHY),
    )


def _normalize_dish(raw: RawMealAnalysis, overall_confidence: float) -> DetectedDish:
    dish = RawDetectedDish.from_untrusted(raw.detected_dish)
    name = dish.name if dish.name is not None else raw.food_name
    return DetectedDish(
        name=coerce_string(name, DEFAULT_DISH_NAME),
        cuisine=coerce_string(dish.cuisine, DEFAULT_CUISINE),
        confidence=_confidence(dish.confidence, fallback=overall_confidence),
        alternatives=_string_list(dish.alternatives, MAX_ALTERNATIVES),
    )


def _normalize_balance(raw: RawMealAnalysis) -> BalanceAssessment:
    balance = RawBalance.from_untrusted(raw.balance)
    rating = RawRating.from_untrusted(raw.rating)
    score = balance.score if balance.score is not None else rating.score
    verdict = balance.verdict if balance.verdict is not None else rating.label
    return BalanceAssessment(
        score=clamp_number(score, 0.0, BALANCE_SCORE_MAX),
        verdict=coerce_string(verdict, DEFAULT_VERDICT),
        summary=coerce_string(balance.summary, DEFAULT_SUMMARY),
        improve=_string_list(balance.improve, MAX_IMPROVE),
    )


def total_from_items(items: List[FoodItem]) -> NutritionTotal:
    """Sum of item macros, clamped to the total ranges."""
    return NutritionTotal(
        kcal=min(sum(item.kcal for item in items), TOTAL_KCAL_MAX),
        protein_g=min(sum(item.protein_g for item in items), TOTAL_PROTEIN_MAX),
        carbs_g=min(sum(item.carbs_g for item in items), TOTAL_CARBS_MAX),
        fat_g=min(sum(item.fat_g for item in items), TOTAL_FAT_MAX),
    )


def _reconcile(upstream: Any, computed: float, maximum: float, policy: TotalPolicy) -> float:
    number = _to_finite(upstream)
    if number is None:
        return clamp_number(computed, 0.0, maximum)
    if number == 0 and policy is TotalPolicy.COMPUTED_WHEN_ZERO_OR_ABSENT:
        return clamp_number(computed, 0.0, maximum)
    return clamp_number(number, 0.0, maximum)


def reconcile_total(raw: RawMealAnalysis, items: List[FoodItem], policy: TotalPolicy) -> NutritionTotal:
    """Pick upstream or computed value per macro according to ``policy``."""
    upstream = RawTotal.from_untrusted(raw.total)
    kcal = upstream.kcal if upstream.kcal is not None else raw.total_calories
    computed = total_from_items(items)
    return NutritionTotal(
        kcal=_reconcile(kcal, computed.kcal, TOTAL_KCAL_MAX, policy),
        protein_g=_reconcile(upstream.protein_g, computed.protein_g, TOTAL_PROTEIN_MAX, policy),
        carbs_g=_reconcile(upstream.carbs_g, computed.carbs_g, TOTAL_CARBS_MAX, policy),
        fat_g=_reconcile(upstream.fat_g, computed.fat_g, TOTAL_FAT_MAX, policy),
    )


# ═══════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════


def normalize(
    raw_output: Any,
    policy: TotalPolicy = TotalPolicy.COMPUTED_WHEN_ZERO_OR_ABSENT,
) -> MealAnalysisResult:
    """
    Build a bounded ``MealAnalysisResult`` from an untrusted model reply.

    Args:
        raw_output: Decoded JSON from the model (any type)
        policy: Total reconciliation rule

    Returns:
        Fully populated result; every number finite and in range, every
        string non-empty, every list capped.

    Example:
        >>> result = normalize({"items": [{"kcal": 300}, {"kcal": 200}]})
        >>> result.total.kcal
        500.0
    """
    raw = RawMealAnalysis.from_untrusted(raw_output)
    if not isinstance(raw_output, dict):
        logger.warning("normalize.root_not_object", received=type(raw_output).__name__)

    confidence = _confidence(raw.confidence)
    items = _map_list(raw.items, MAX_ITEMS, _normalize_item)

    return MealAnalysisResult(
        detected_dish=_normalize_dish(raw, confidence),
        items=items,
        total=reconcile_total(raw, items, policy),
        confidence=confidence,
        balance=_normalize_balance(raw),
        suggestions=_map_list(raw.suggestions, MAX_SUGGESTIONS, _normalize_suggestion),
    )
