# -*- coding: utf-8 -*-
"""Diet — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NutritionTotals(_CamelModel):
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)


class FoodItem(_CamelModel):
    """One food as estimated by the vision model."""

    name: str = Field(..., min_length=1)
    estimated_portion: str = Field("", description="Human-readable portion, e.g. '2 slices'")
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    confidence: float = Field(0.0, ge=0, le=1)


class NutritionSource(str, Enum):
    vision = "vision"
    reference = "reference"


class AnalyzedFood(FoodItem):
    """A food item after it has been checked against the nutrition reference."""

    source: NutritionSource = NutritionSource.vision
    quantity: float = Field(1.0, gt=0, description="Number of reference portions")
    reference_name: Optional[str] = None


class AnalysisType(str, Enum):
    full = "full"
    calories = "calories"


class FoodAnalysisRequest(_CamelModel):
    image_base64: Optional[str] = Field(None, description="Raw base64, a data-url prefix is tolerated")
    image_mime: str = Field("image/jpeg", pattern=r"^image/(jpeg|jpg|png|heic|webp)$")
    analysis_type: AnalysisType = AnalysisType.full


class FoodAnalysisResult(_CamelModel):
    foods: List[FoodItem] = []
    total_nutrition: NutritionTotals = NutritionTotals()


class FoodAnalysisResponse(_CamelModel):
    foods: List[AnalyzedFood] = []
    total_nutrition: NutritionTotals = NutritionTotals()
    model: str


class CalorieEstimateResponse(_CamelModel):
    calories: int
    model: str


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"


class DietCreateEntryRequest(_CamelModel):
    eaten_at: str = Field(..., description="ISO8601 timestamp")
    meal_type: MealType
    foods: List[AnalyzedFood] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)
    source: Optional[str] = Field("vision", max_length=64)


class DietCreateEntryResponse(_CamelModel):
    entry_id: str
    saved_at: str
    totals: NutritionTotals


class DietEntry(_CamelModel):
    entry_id: str
    device_id: str
    created_at: str
    eaten_at: str
    meal_type: MealType
    foods: List[AnalyzedFood] = []
    totals: NutritionTotals = NutritionTotals()
    notes: Optional[str] = None
    source: str = "vision"


class DietEntriesResponse(_CamelModel):
    device_id: str
    count: int
    entries: List[DietEntry]


class DietDailySummary(_CamelModel):
    date: str = Field(..., description="YYYY-MM-DD")
    totals: NutritionTotals
    entry_count: int = Field(0, ge=0)


class DietSummaryResponse(_CamelModel):
    device_id: str
    start: str
    end: str
    totals: NutritionTotals
    days: List[DietDailySummary]
