"""Meal analysis use cases."""

from mealscan.application.meal.analysis_service import MealAnalysisService

__all__ = [
    "MealAnalysisService",
]
