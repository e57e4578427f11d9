"""Meal analysis: result models, normalization and prompts."""

from mealscan.domain.meal.analysis.models import (
    BalanceAssessment,
    DetectedDish,
    FoodItem,
    MealAnalysisResult,
    NutritionTotal,
    Suggestion,
)
from mealscan.domain.meal.analysis.normalizer import TotalPolicy, normalize

__all__ = [
    "BalanceAssessment",
    "DetectedDish",
    "FoodItem",
    "MealAnalysisResult",
    "NutritionTotal",
    "Suggestion",
    "TotalPolicy",
    "normalize",
]
