"""Pytest configuration and fixtures."""

# Tests automatically get a test API key from config.py when pytest is detected

import pytest

from moodchef.ai_client import AIClientError
from moodchef.models import MealIngredient, MealPlan, MealPlanDay, MealRecord, RecipeCandidate
from moodchef.pipeline import ResponsePipeline


class FakeAIClient:
    """Stands in for GenerativeTextClient: replays canned replies in order.

    A reply that is an exception instance is raised instead of returned.
    The last reply is repeated once the list runs out.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeSpoonacular:
    def __init__(self, substitutes=None):
        self.substitutes = substitutes or []
        self.calls: list[str] = []

    def get_substitutes(self, ingredient: str) -> list[str]:
        self.calls.append(ingredient)
        return list(self.substitutes)


def failing_client() -> FakeAIClient:
    return FakeAIClient(AIClientError("API timeout after 30 seconds"))


def create_test_recipe(
    recipe_id: str = "recipe_1",
    name: str = "Test Recipe",
    category: str = "comfort",
    cooking_time_minutes: int = 30,
    servings: int = 2,
    difficulty: str = "easy",
    calories: int = 400,
    ingredients: list | None = None,
) -> RecipeCandidate:
    """Helper to create a RecipeCandidate with sensible defaults."""
    return RecipeCandidate(
        id=recipe_id,
        category=category,
        name=name,
        cooking_time_minutes=cooking_time_minutes,
        servings=servings,
        difficulty=difficulty,
        calories=calories,
        ingredients=ingredients or [],
        instructions="Cook it.",
    )


def create_test_meal(
    meal_type: str = "dinner",
    recipe_name: str = "Test Meal",
    calories: int = 500,
    ingredients: list[tuple[str, str, str]] | None = None,
) -> MealRecord:
    """Helper to create a MealRecord from (name, amount, unit) tuples."""
    return MealRecord(
        type=meal_type,
        recipe_name=recipe_name,
        ingredients=[MealIngredient(name, amount, unit) for name, amount, unit in ingredients or []],
        instructions="Cook everything together.",
        cooking_time_minutes=20,
        servings=2,
        calories=calories,
    )


def create_test_plan(*days_meals: dict[str, MealRecord]) -> MealPlan:
    """Helper to create a MealPlan with one day per meals dict."""
    return MealPlan(
        days=[
            MealPlanDay(day_number=i + 1, label=f"Day {i + 1}", meals=meals)
            for i, meals in enumerate(days_meals)
        ]
    )


@pytest.fixture
def pipeline():
    return ResponsePipeline()
