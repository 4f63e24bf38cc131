"""Tests for static fallback records."""

import pytest

from moodchef import config
from moodchef.fallbacks import (
    COMMON_SUBSTITUTIONS,
    fallback,
    fallback_meal,
    fallback_meal_plan,
    fallback_recipes,
    fallback_substitutions,
    find_common_substitutes,
    modified_meal,
)
from moodchef.models import GenerationContext, ResponseShape
from tests.conftest import create_test_meal


class TestFallbackRecipes:
    def test_three_categories_in_order(self):
        recipes = fallback_recipes("tired")

        assert [r.category for r in recipes] == ["comfort", "quick", "healthy"]
        assert [r.id for r in recipes] == ["recipe_1", "recipe_2", "recipe_3"]
        assert [r.name for r in recipes] == ["Comfort Pasta Bowl", "Quick Stir-Fry", "Fresh Garden Salad"]

    def test_mood_interpolated(self):
        recipes = fallback_recipes("anxious")
        assert all("anxious" in r.mood_explanation for r in recipes)

    def test_scores_and_images(self):
        recipes = fallback_recipes("happy")

        assert [r.score for r in recipes] == [17, 20, 20]
        assert [r.image for r in recipes] == [
            config.DEFAULT_CATEGORY_IMAGES["comfort"],
            config.DEFAULT_CATEGORY_IMAGES["quick"],
            config.DEFAULT_CATEGORY_IMAGES["healthy"],
        ]

    def test_deterministic(self):
        assert fallback_recipes("sad") == fallback_recipes("sad")


class TestFallbackMeals:
    @pytest.mark.parametrize("meal_type,name", [
        ("breakfast", "Simple Oatmeal Bowl"),
        ("lunch", "Quick Sandwich"),
        ("dinner", "Simple Pasta"),
        ("snack", "Fruit and Nuts"),
    ])
    def test_meal_per_type(self, meal_type, name):
        meal = fallback_meal(meal_type)
        assert meal.recipe_name == name
        assert meal.type == meal_type
        assert meal.tags == [meal_type, "simple", "quick"]

    def test_unknown_type_gets_lunch(self):
        meal = fallback_meal("elevenses")
        assert meal.type == "lunch"
        assert meal.recipe_name == "Quick Sandwich"

    def test_meal_plan_days(self):
        plan = fallback_meal_plan(3, calorie_target=1800)

        assert [d.label for d in plan.days] == ["Day 1", "Day 2", "Day 3"]
        assert all(set(d.meals) == {"breakfast", "lunch", "dinner"} for d in plan.days)
        assert all(d.snacks == [] for d in plan.days)
        assert all(d.total_calories == 1800 for d in plan.days)
        assert plan.nutrition_summary == {"averageCaloriesPerDay": 1800}

    def test_meal_plan_with_snacks(self):
        plan = fallback_meal_plan(1, include_snacks=True)
        assert [s.recipe_name for s in plan.days[0].snacks] == ["Fruit and Nuts"]
        assert plan.days[0].total_calories == config.DEFAULT_CALORIE_TARGET


class TestModifiedMeal:
    def test_simple_overrides_applied(self):
        original = create_test_meal(recipe_name="Chili")
        meal = modified_meal(original, {"recipeName": "Vegan Chili", "servings": 6, "spiceLevel": "mild"})

        assert meal.recipe_name == "Vegan Chili"
        assert meal.servings == 6
        assert meal.cooking_time_minutes == original.cooking_time_minutes
        assert meal.customized is True
        assert meal.modifications == "recipeName, servings, spiceLevel modified"

    def test_original_untouched(self):
        original = create_test_meal(ingredients=[("beans", "1", "can")])
        meal = modified_meal(original, {"servings": 4})
        meal.ingredients[0].amount = "2"

        assert original.servings == 2
        assert original.ingredients[0].amount == "1"

    def test_no_modifications(self):
        assert modified_meal(create_test_meal(), {}).modifications == "no changes applied"


class TestSubstitutionLookup:
    @pytest.mark.parametrize("ingredient,key", [
        ("milk", "milk"),
        ("  Butter ", "butter"),
        ("egg", "eggs"),
        ("onions", "onion"),
        ("whole milk", "milk"),
        ("boneless chicken breasts", "chicken breast"),
    ])
    def test_finds_entries(self, ingredient, key):
        assert find_common_substitutes(ingredient) is COMMON_SUBSTITUTIONS[key]

    @pytest.mark.parametrize("ingredient", ["eggplant", "saffron", "", "   "])
    def test_misses(self, ingredient):
        assert find_common_substitutes(ingredient) is None

    def test_known_ingredient_fallback(self):
        result = fallback_substitutions("milk")

        assert result.original_ingredient == "milk"
        assert [s.ingredient for s in result.substitutes] == ["almond milk", "oat milk", "soy milk"]
        assert all(s.source == "database" and s.confidence == "medium" for s in result.substitutes)

    def test_unknown_ingredient_fallback(self):
        result = fallback_substitutions("saffron")

        assert len(result.substitutes) == 1
        generic = result.substitutes[0]
        assert generic.source == "general"
        assert generic.confidence == "low"
        assert generic.availability == "varies"
        assert "saffron" in generic.explanation


class TestFallbackDispatch:
    def test_uses_context(self):
        assert fallback(ResponseShape.SINGLE_MEAL, GenerationContext(meal_type="dinner")).recipe_name == "Simple Pasta"
        assert len(fallback(ResponseShape.MEAL_PLAN, GenerationContext(duration=2)).days) == 2
        assert fallback(ResponseShape.SUBSTITUTION_SET, GenerationContext(ingredient="garlic")).substitutes

    def test_default_context(self):
        recipes = fallback(ResponseShape.RECIPE_LIST)
        assert len(recipes) == 3
        assert "general" in recipes[0].mood_explanation
