"""Domain records produced from generative-AI responses.

All records are plain dataclasses. ``to_dict()`` renders the camelCase shape
the frontend and the persisted JSON files use.
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

RECIPE_CATEGORIES = ("comfort", "quick", "healthy")
DIFFICULTIES = ("easy", "medium", "hard")
MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
AVAILABILITIES = ("common", "uncommon", "varies")
SUBSTITUTION_SOURCES = ("ai", "database", "general")
CONFIDENCE_LEVELS = ("high", "medium", "low")


class ResponseShape(str, Enum):
    """Top-level schema a model reply is expected to follow."""
    RECIPE_LIST = "recipeList"
    MEAL_PLAN = "mealPlan"
    SINGLE_MEAL = "singleMeal"
    SUBSTITUTION_SET = "substitutionSet"


@dataclass(frozen=True)
class GenerationContext:
    """Request details needed to build fallbacks and fill defaults."""
    mood: str = "general"
    ingredient: str = "ingredient"
    meal_type: str = "lunch"
    duration: int = 7
    include_snacks: bool = False
    calorie_target: int = 2000


@dataclass
class RecipeCandidate:
    id: str
    category: str
    name: str
    cooking_time_minutes: int
    servings: int
    difficulty: str
    calories: int
    ingredients: list[str] = field(default_factory=list)
    instructions: str = ""
    tags: list[str] = field(default_factory=list)
    mood_explanation: str = ""
    category_reason: str = ""
    nutrition_highlights: str = ""
    image: str = ""
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "recipeName": self.name,
            "cookingTime": self.cooking_time_minutes,
            "servings": self.servings,
            "difficulty": self.difficulty,
            "calories": self.calories,
            "ingredients": list(self.ingredients),
            "instructions": self.instructions,
            "tags": list(self.tags),
            "moodExplanation": self.mood_explanation,
            "categoryReason": self.category_reason,
            "nutritionHighlights": self.nutrition_highlights,
            "image": self.image,
            "score": self.score,
        }


@dataclass
class MealIngredient:
    name: str
    amount: str = ""
    unit: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "amount": self.amount, "unit": self.unit}


@dataclass
class MealRecord:
    type: str
    recipe_name: str
    ingredients: list[MealIngredient] = field(default_factory=list)
    instructions: str = ""
    cooking_time_minutes: int = 30
    servings: int = 2
    calories: int = 0
    difficulty: str = "easy"
    tags: list[str] = field(default_factory=list)
    nutrition_highlights: str = ""
    customized: bool = False
    modifications: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "recipeName": self.recipe_name,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "instructions": self.instructions,
            "cookingTime": self.cooking_time_minutes,
            "servings": self.servings,
            "calories": self.calories,
            "difficulty": self.difficulty,
            "tags": list(self.tags),
            "nutritionHighlights": self.nutrition_highlights,
            "customized": self.customized,
            "modifications": self.modifications,
        }


@dataclass
class SubstitutionSuggestion:
    ingredient: str
    ratio: str = "1:1"
    explanation: str = ""
    flavor_impact: str = ""
    availability: str = "common"
    source: str = "ai"
    confidence: str = "high"

    def to_dict(self) -> dict[str, str]:
        return {
            "ingredient": self.ingredient,
            "ratio": self.ratio,
            "explanation": self.explanation,
            "flavorImpact": self.flavor_impact,
            "availability": self.availability,
            "source": self.source,
            "confidence": self.confidence,
        }


@dataclass
class SubstitutionSet:
    original_ingredient: str
    substitutes: list[SubstitutionSuggestion] = field(default_factory=list)
    tips: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalIngredient": self.original_ingredient,
            "substitutes": [sub.to_dict() for sub in self.substitutes],
            "tips": self.tips,
        }


@dataclass
class MealPlanDay:
    day_number: int
    label: str
    meals: dict[str, MealRecord] = field(default_factory=dict)
    snacks: list[MealRecord] = field(default_factory=list)
    total_calories: int = 0
    date: datetime.date | None = None

    @property
    def all_meals(self) -> list[MealRecord]:
        return list(self.meals.values()) + list(self.snacks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dayNumber": self.day_number,
            "label": self.label,
            "date": self.date.isoformat() if self.date else None,
            "meals": {meal_type: meal.to_dict() for meal_type, meal in self.meals.items()},
            "snacks": [snack.to_dict() for snack in self.snacks],
            "totalCalories": self.total_calories,
        }


@dataclass
class MealPlan:
    days: list[MealPlanDay] = field(default_factory=list)
    shopping_list: list[dict[str, str]] = field(default_factory=list)
    nutrition_summary: dict[str, Any] = field(default_factory=dict)
    tips: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": [day.to_dict() for day in self.days],
            "shoppingList": list(self.shopping_list),
            "nutritionSummary": dict(self.nutrition_summary),
            "tips": self.tips,
        }


@dataclass
class Preferences:
    dietary_restrictions: list[str] = field(default_factory=list)
    allergies: list[str] = field(default_factory=list)
    disliked_ingredients: list[str] = field(default_factory=list)
    preferred_ingredients: list[str] = field(default_factory=list)
    cuisine_preferences: list[str] = field(default_factory=list)
    cooking_time: str = "moderate"
    difficulty: str = "easy"
    calorie_target: int = 2000
    meals_per_day: int = 3
    include_snacks: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Preferences":
        """Build preferences from a request body, accepting camelCase or snake_case keys.

        Unknown keys are ignored and wrong-typed values fall back to defaults.
        """
        data = data if isinstance(data, dict) else {}

        def pick(camel: str, snake: str) -> Any:
            return data.get(camel, data.get(snake))

        def str_list(value: Any) -> list[str]:
            if not isinstance(value, list):
                return []
            return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]

        defaults = cls()
        calorie_target = pick("calorieTarget", "calorie_target")
        meals_per_day = pick("mealsPerDay", "meals_per_day")
        cooking_time = pick("cookingTime", "cooking_time")
        difficulty = pick("difficulty", "difficulty")

        return cls(
            dietary_restrictions=str_list(pick("dietaryRestrictions", "dietary_restrictions")),
            allergies=str_list(pick("allergies", "allergies")),
            disliked_ingredients=str_list(pick("dislikedIngredients", "disliked_ingredients")),
            preferred_ingredients=str_list(pick("preferredIngredients", "preferred_ingredients")),
            cuisine_preferences=str_list(pick("cuisinePreferences", "cuisine_preferences")),
            cooking_time=cooking_time if isinstance(cooking_time, str) and cooking_time else defaults.cooking_time,
            difficulty=difficulty if isinstance(difficulty, str) and difficulty else defaults.difficulty,
            calorie_target=(
                int(calorie_target)
                if isinstance(calorie_target, (int, float)) and not isinstance(calorie_target, bool)
                and calorie_target > 0
                else defaults.calorie_target
            ),
            meals_per_day=(
                int(meals_per_day)
                if isinstance(meals_per_day, int) and not isinstance(meals_per_day, bool) and meals_per_day > 0
                else defaults.meals_per_day
            ),
            include_snacks=bool(pick("includeSnacks", "include_snacks")),
        )
