# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from slingo.diet.models import FoodAnalysisResult, FoodItem, NutritionSource
from slingo.diet.reference import (
    calculate_nutrition,
    extract_quantity_from_portion,
    find_reference_food,
    normalize_food_name,
    refine_analysis,
    refine_food_item,
)


class TestLookup(unittest.TestCase):
    def test_normalization(self) -> None:
        self.assertEqual(normalize_food_name("  Feijão   Preto! "), "feijao preto")

    def test_exact_alias_match_ignores_accents(self) -> None:
        food = find_reference_food("Feijão")
        self.assertIsNotNone(food)
        assert food is not None
        self.assertEqual(food.name, "Black beans, cooked")

    def test_longest_contained_key_wins(self) -> None:
        food = find_reference_food("grilled chicken breast with herbs")
        assert food is not None
        self.assertEqual(food.name, "Grilled chicken breast")

        food = find_reference_food("fried egg sandwich")
        assert food is not None
        self.assertEqual(food.name, "Fried egg")

    def test_no_match(self) -> None:
        self.assertIsNone(find_reference_food("dragon fruit smoothie"))
        self.assertIsNone(find_reference_food(""))


class TestPortions(unittest.TestCase):
    def test_leading_numbers(self) -> None:
        self.assertEqual(extract_quantity_from_portion("2 slices"), 2.0)
        self.assertEqual(extract_quantity_from_portion("1/2 cup"), 0.5)
        self.assertEqual(extract_quantity_from_portion("1,5 conchas"), 1.5)
        self.assertEqual(extract_quantity_from_portion("a plate"), 1.0)
        self.assertEqual(extract_quantity_from_portion(""), 1.0)

    def test_grams_use_reference_weight(self) -> None:
        rice = find_reference_food("rice")
        assert rice is not None
        self.assertEqual(extract_quantity_from_portion("100g", rice), 4.0)
        self.assertEqual(extract_quantity_from_portion("100g"), 1.0)

    def test_tiny_gram_portion_stays_positive(self) -> None:
        rice = find_reference_food("rice")
        assert rice is not None
        self.assertEqual(extract_quantity_from_portion("0.1g", rice), 1.0)

        item = FoodItem(name="rice", estimated_portion="0.1g", calories=1)
        refined = refine_food_item(item)
        self.assertEqual(refined.source, NutritionSource.reference)
        self.assertGreater(refined.quantity, 0)

    def test_calculate_nutrition_rounding(self) -> None:
        beans = find_reference_food("beans")
        assert beans is not None
        totals = calculate_nutrition(beans, 2)
        self.assertEqual(totals.calories, 132)
        self.assertEqual(totals.protein, 8.2)
        self.assertEqual(totals.carbs, 24.6)
        self.assertEqual(totals.fat, 1.0)


class TestRefinement(unittest.TestCase):
    def test_known_food_takes_reference_values(self) -> None:
        item = FoodItem(name="white rice", estimated_portion="3 tablespoons", calories=200, protein=4, carbs=40, fat=1, confidence=0.7)
        refined = refine_food_item(item)
        self.assertEqual(refined.source, NutritionSource.reference)
        self.assertEqual(refined.name, "White rice, cooked")
        self.assertEqual(refined.quantity, 3.0)
        self.assertEqual(refined.calories, 96)
        self.assertEqual(refined.confidence, 0.7)
        self.assertEqual(refined.estimated_portion, "3 tablespoons")

    def test_unknown_food_keeps_vision_values(self) -> None:
        item = FoodItem(name="Moqueca", estimated_portion="1 bowl", calories=420, protein=30, carbs=10, fat=28, confidence=0.6)
        refined = refine_food_item(item)
        self.assertEqual(refined.source, NutritionSource.vision)
        self.assertEqual(refined.name, "Moqueca")
        self.assertEqual(refined.calories, 420)
        self.assertIsNone(refined.reference_name)

    def test_totals_follow_refined_items(self) -> None:
        result = FoodAnalysisResult(
            foods=[
                FoodItem(name="banana", estimated_portion="2 units", calories=250),
                FoodItem(name="Moqueca", estimated_portion="1 bowl", calories=420),
            ]
        )
        foods, totals = refine_analysis(result)
        self.assertEqual([f.source for f in foods], [NutritionSource.reference, NutritionSource.vision])
        self.assertEqual(totals.calories, 580.0)


if __name__ == "__main__":
    unittest.main()
