"""
Domain models for meal analysis.

Two families live here:

* ``Raw*`` models: the untrusted model reply parsed into an explicit,
  all-optional structure. Every leaf is ``Any``; nothing is validated.
* ``MealAnalysisResult`` and its parts: the canonical, bounded result
  returned to the caller. Only the normalizer builds these.
"""

from __future__ import annotations

from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# ═══════════════════════════════════════════════════════════
# RANGES & CAPS
# ═══════════════════════════════════════════════════════════

MAX_ALTERNATIVES = 4
MAX_ITEMS = 12
MAX_IMPROVE = 5
MAX_SUGGESTIONS = 6

ITEM_GRAMS_MAX = 3000.0
ITEM_KCAL_MAX = 6000.0
ITEM_PROTEIN_MAX = 400.0
ITEM_CARBS_MAX = 600.0
ITEM_FAT_MAX = 300.0

TOTAL_KCAL_MAX = 8000.0
TOTAL_PROTEIN_MAX = 500.0
TOTAL_CARBS_MAX = 900.0
TOTAL_FAT_MAX = 400.0

BALANCE_SCORE_MAX = 100.0


# ═══════════════════════════════════════════════════════════
# RAW (UNTRUSTED) STRUCTURE
# ═══════════════════════════════════════════════════════════

RawT = TypeVar("RawT", bound="RawModel")


class RawModel(BaseModel):
    """Base for untrusted payload fragments."""

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_untrusted(cls: Type[RawT], value: Any) -> RawT:
        """Parse ``value`` if it is a JSON object, else return an empty model."""
        if isinstance(value, dict):
            return cls.model_validate(value)
        return cls()


class RawDetectedDish(RawModel):
    name: Any = None
    cuisine: Any = None
    confidence: Any = None
    alternatives: Any = None


class RawFoodItem(RawModel):
    name: Any = None
    portion: Any = None
    grams: Any = None
    kcal: Any = None
    protein_g: Any = None
    carbs_g: Any = None
    fat_g: Any = None
    confidence: Any = None
    why: Any = None


class RawTotal(RawModel):
    kcal: Any = None
    protein_g: Any = None
    carbs_g: Any = None
    fat_g: Any = None


class RawBalance(RawModel):
    score: Any = None
    verdict: Any = None
    summary: Any = None
    improve: Any = None


class RawRating(RawModel):
    """Pre-``balance`` rating block of older prompt revisions."""

    score: Any = None
    label: Any = None


class RawSuggestion(RawModel):
    goal: Any = None
    add: Any = None
    replace: Any = None
    why: Any = None


class RawMealAnalysis(RawModel):
    """
    Top-level untrusted reply.

    ``food_name``, ``total_calories`` and ``rating`` belong to earlier,
    narrower prompt revisions and are only read when the canonical field
    is missing.
    """

    detected_dish: Any = None
    items: Any = None
    total: Any = None
    confidence: Any = None
    balance: Any = None
    suggestions: Any = None

    food_name: Any = None
    total_calories: Any = None
    rating: Any = None


# ═══════════════════════════════════════════════════════════
# CANONICAL RESULT
# ═══════════════════════════════════════════════════════════


class DetectedDish(BaseModel):
    """Dish the model believes is on the plate."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    cuisine: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    alternatives: List[str] = Field(default_factory=list, max_length=MAX_ALTERNATIVES)


class FoodItem(BaseModel):
    """
    Single food item with estimated portion and macros.

    Example:
        >>> item = FoodItem(
        ...     name="Grilled chicken breast",
        ...     portion="1 fillet",
        ...     grams=150,
        ...     kcal=248,
        ...     protein_g=46,
        ...     carbs_g=0,
        ...     fat_g=5,
        ...     confidence=0.85,
        ...     why="Visible grill marks, palm-sized fillet",
        ... )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    portion: str = Field(..., min_length=1)
    grams: float = Field(..., ge=0.0, le=ITEM_GRAMS_MAX)
    kcal: float = Field(..., ge=0.0, le=ITEM_KCAL_MAX)
    protein_g: float = Field(..., ge=0.0, le=ITEM_PROTEIN_MAX)
    carbs_g: float = Field(..., ge=0.0, le=ITEM_CARBS_MAX)
    fat_g: float = Field(..., ge=0.0, le=ITEM_FAT_MAX)
    confidence: float = Field(..., ge=0.0, le=1.0)
    why: str = Field(..., min_length=1)


class NutritionTotal(BaseModel):
    """Meal totals."""

    model_config = ConfigDict(frozen=True)

    kcal: float = Field(0.0, ge=0.0, le=TOTAL_KCAL_MAX)
    protein_g: float = Field(0.0, ge=0.0, le=TOTAL_PROTEIN_MAX)
    carbs_g: float = Field(0.0, ge=0.0, le=TOTAL_CARBS_MAX)
    fat_g: float = Field(0.0, ge=0.0, le=TOTAL_FAT_MAX)


class BalanceAssessment(BaseModel):
    """How balanced the meal is and what would improve it."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0.0, le=BALANCE_SCORE_MAX)
    verdict: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    improve: List[str] = Field(default_factory=list, max_length=MAX_IMPROVE)


class Suggestion(BaseModel):
    """Goal-oriented change to the meal."""

    model_config = ConfigDict(frozen=True)

    goal: str = Field(..., min_length=1)
    add: str = Field(..., min_length=1)
    replace: str = Field(..., min_length=1)
    why: str = Field(..., min_length=1)


class MealAnalysisResult(BaseModel):
    """
    Canonical nutrition estimate for one meal photo.

    Built once per request from the untrusted model reply and discarded
    after the response is sent.

    Attributes:
        detected_dish: Dish name, cuisine, confidence and alternatives
        items: Up to 12 food items
        total: Meal totals (reconciled from items when missing)
        confidence: Overall confidence (0.0 - 1.0)
        balance: Balance score (0 - 100) and verdict
        suggestions: Up to 6 improvement suggestions
    """

    model_config = ConfigDict(frozen=True)

    detected_dish: DetectedDish
    items: List[FoodItem] = Field(default_factory=list, max_length=MAX_ITEMS)
    total: NutritionTotal = Field(default_factory=NutritionTotal)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    balance: BalanceAssessment
    suggestions: List[Suggestion] = Field(default_factory=list, max_length=MAX_SUGGESTIONS)

    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        return self.model_dump()
