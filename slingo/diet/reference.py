# -*- coding: utf-8 -*-
"""Nutrition reference table.

Canonical per-portion values used to refine the vision model's estimates.
Values are per ``portion_reference`` (``portion_grams`` of edible weight).
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import AnalyzedFood, FoodAnalysisResult, FoodItem, NutritionSource, NutritionTotals


@dataclass(frozen=True)
class ReferenceFood:
    name: str
    portion_reference: str
    portion_grams: Optional[float]
    calories: float
    protein: float
    carbs: float
    fat: float
    aliases: Tuple[str, ...] = field(default_factory=tuple)


REFERENCE_FOODS: List[ReferenceFood] = [
    ReferenceFood("White rice, cooked", "1 tablespoon", 25, 32, 0.6, 7.0, 0.1,
                  ("white rice", "rice", "arroz", "arroz branco")),
    ReferenceFood("Brown rice, cooked", "1 tablespoon", 25, 31, 0.7, 6.5, 0.3,
                  ("brown rice", "arroz integral")),
    ReferenceFood("Black beans, cooked", "1 ladle", 86, 66, 4.1, 12.3, 0.5,
                  ("black beans", "beans", "feijao", "feijao preto")),
    ReferenceFood("Pinto beans, cooked", "1 ladle", 86, 65, 4.1, 11.7, 0.4,
                  ("pinto beans", "feijao carioca")),
    ReferenceFood("Grilled chicken breast", "1 fillet", 100, 159, 32.0, 0.0, 2.5,
                  ("chicken breast", "grilled chicken", "chicken", "frango", "peito de frango")),
    ReferenceFood("Beef steak, grilled", "1 steak", 100, 219, 32.4, 0.0, 8.9,
                  ("steak", "beef", "bife", "carne")),
    ReferenceFood("Fried egg", "1 unit", 50, 120, 7.8, 0.6, 9.7,
                  ("fried egg", "ovo frito")),
    ReferenceFood("Boiled egg", "1 unit", 50, 73, 6.7, 0.3, 4.8,
                  ("boiled egg", "egg", "ovo", "ovo cozido")),
    ReferenceFood("French bread", "1 unit", 50, 150, 4.0, 29.3, 1.6,
                  ("french bread", "bread roll", "pao frances", "pao")),
    ReferenceFood("Banana", "1 unit", 86, 80, 1.1, 20.8, 0.1,
                  ("banana", "banana prata")),
    ReferenceFood("Apple", "1 unit", 130, 73, 0.3, 19.9, 0.0,
                  ("apple", "maca")),
    ReferenceFood("Lettuce salad", "1 cup", 35, 5, 0.5, 0.6, 0.1,
                  ("lettuce", "salad", "alface", "salada")),
    ReferenceFood("Tomato", "1 unit", 90, 14, 1.0, 2.8, 0.2,
                  ("tomato", "tomate")),
    ReferenceFood("French fries", "1 portion", 100, 267, 3.6, 35.6, 12.8,
                  ("french fries", "fries", "batata frita")),
    ReferenceFood("Mashed potatoes", "1 tablespoon", 30, 26, 0.5, 3.4, 1.1,
                  ("mashed potatoes", "pure de batata")),
    ReferenceFood("Spaghetti, cooked", "1 cup", 140, 178, 6.9, 34.6, 1.1,
                  ("spaghetti", "pasta", "macarrao", "espaguete")),
    ReferenceFood("Cassava flour", "1 tablespoon", 16, 58, 0.2, 14.1, 0.1,
                  ("cassava flour", "farofa", "farinha de mandioca")),
    ReferenceFood("Whole milk", "1 cup", 240, 146, 7.7, 11.0, 7.9,
                  ("milk", "whole milk", "leite")),
    ReferenceFood("Orange juice", "1 cup", 240, 110, 1.7, 25.8, 0.5,
                  ("orange juice", "suco de laranja")),
]

_PORTION_NUMBER_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)(?:\s*/\s*(\d+(?:[.,]\d+)?))?")
_GRAMS_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:g|gr|grams?|gramas?)\b", re.IGNORECASE)


def normalize_food_name(name: str) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = re.sub(r"[^a-z0-9 ]+", " ", ascii_only.lower())
    return " ".join(cleaned.split())


def _build_index(foods: List[ReferenceFood]) -> Dict[str, ReferenceFood]:
    index: Dict[str, ReferenceFood] = {}
    for food in foods:
        for key in (food.name, *food.aliases):
            index.setdefault(normalize_food_name(key), food)
    return index


_INDEX = _build_index(REFERENCE_FOODS)


def find_reference_food(name: str) -> Optional[ReferenceFood]:
    """Exact name/alias match first, then the longest reference key found inside ``name``."""
    query = normalize_food_name(name)
    if not query:
        return None
    exact = _INDEX.get(query)
    if exact is not None:
        return exact

    padded = f" {query} "
    best: Optional[Tuple[int, ReferenceFood]] = None
    for key, food in _INDEX.items():
        if f" {key} " in padded and (best is None or len(key) > best[0]):
            best = (len(key), food)
    return best[1] if best else None


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


def extract_quantity_from_portion(portion: str, reference: Optional[ReferenceFood] = None) -> float:
    """Number of reference portions described by ``portion``; 1.0 when unknown."""
    text = (portion or "").strip()
    if not text:
        return 1.0

    grams = _GRAMS_RE.search(text)
    if grams:
        if reference is not None and reference.portion_grams:
            quantity = round(_to_float(grams.group(1)) / reference.portion_grams, 2)
            return quantity if quantity > 0 else 1.0
        if grams.start() == 0:
            # "150g" alone says nothing about portions without a reference weight.
            return 1.0

    m = _PORTION_NUMBER_RE.match(text)
    if not m:
        return 1.0
    value = _to_float(m.group(1))
    if m.group(2):
        denominator = _to_float(m.group(2))
        if denominator == 0:
            return 1.0
        value = value / denominator
    return value if value > 0 else 1.0


def calculate_nutrition(reference: ReferenceFood, quantity: float) -> NutritionTotals:
    return NutritionTotals(
        calories=round(reference.calories * quantity),
        protein=round(reference.protein * quantity, 1),
        carbs=round(reference.carbs * quantity, 1),
        fat=round(reference.fat * quantity, 1),
    )


def refine_food_item(item: FoodItem) -> AnalyzedFood:
    """Replace the model's macro estimate with reference values when the food is known."""
    reference = find_reference_food(item.name)
    quantity = extract_quantity_from_portion(item.estimated_portion, reference)
    if reference is None:
        return AnalyzedFood(**item.model_dump(), source=NutritionSource.vision, quantity=quantity)

    nutrition = calculate_nutrition(reference, quantity)
    return AnalyzedFood(
        name=reference.name,
        estimated_portion=item.estimated_portion,
        calories=nutrition.calories,
        protein=nutrition.protein,
        carbs=nutrition.carbs,
        fat=nutrition.fat,
        confidence=item.confidence,
        source=NutritionSource.reference,
        quantity=quantity,
        reference_name=reference.name,
    )


def sum_nutrition(foods: List[FoodItem]) -> NutritionTotals:
    calories = 0.0
    protein = 0.0
    carbs = 0.0
    fat = 0.0
    for food in foods:
        calories += food.calories
        protein += food.protein
        carbs += food.carbs
        fat += food.fat
    return NutritionTotals(
        calories=round(calories, 1),
        protein=round(protein, 1),
        carbs=round(carbs, 1),
        fat=round(fat, 1),
    )


def refine_analysis(result: FoodAnalysisResult) -> Tuple[List[AnalyzedFood], NutritionTotals]:
    foods = [refine_food_item(item) for item in result.foods]
    return foods, sum_nutrition(foods)
