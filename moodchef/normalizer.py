"""Coerce parsed model output into domain records.

Model replies follow the requested JSON layout only loosely: numbers arrive as
``"25 minutes"``, lists as comma-separated strings, enums in any case or
spelling. Every field is read through a decode-with-default helper so a record
is always fully populated. Only a missing top-level shape makes ``normalize``
return None, which tells the pipeline to use the fallback instead.
"""

import math
import re
from collections.abc import Callable
from typing import Any

from moodchef import config
from moodchef.models import (
    AVAILABILITIES,
    CONFIDENCE_LEVELS,
    DIFFICULTIES,
    MEAL_TYPES,
    RECIPE_CATEGORIES,
    GenerationContext,
    MealIngredient,
    MealPlan,
    MealPlanDay,
    MealRecord,
    RecipeCandidate,
    ResponseShape,
    SubstitutionSet,
    SubstitutionSuggestion,
)
from moodchef.scoring import score

MAX_SUBSTITUTES = 5

DEFAULT_COOKING_TIME = 30
DEFAULT_SERVINGS = 2
DEFAULT_RECIPE_NAME = "Unnamed Recipe"
DEFAULT_INSTRUCTIONS = "No instructions provided"
DEFAULT_PLAN_TIPS = "Follow the recipes as provided and adjust seasoning to taste."
DEFAULT_SUBSTITUTION_TIPS = "Adjust seasoning to taste when using substitutes."

_LEADING_NUMBER = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")

_DIFFICULTY_ALIASES = {
    "beginner": "easy",
    "simple": "easy",
    "moderate": "medium",
    "intermediate": "medium",
    "advanced": "hard",
    "difficult": "hard",
    "challenging": "hard",
}

_MEAL_TYPE_ALIASES = {"snacks": "snack", "brunch": "lunch", "supper": "dinner"}

# Checked in order when the model invents a category ("Quick & Easy",
# "light lunch"); anything unmatched goes to comfort.
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("comfort", ("comfort", "cozy", "cosy", "hearty", "indulgent", "rich")),
    ("quick", ("quick", "fast", "speedy", "minute", "weeknight", "express")),
    ("healthy", ("healthy", "light", "fresh", "lean", "nutritious", "balanced", "wholesome")),
)
DEFAULT_CATEGORY = "comfort"

_CONFIDENCE_RANK = {"high": 3, "medium": 2, "low": 1}

_INGREDIENT_LINE = re.compile(
    r"^\s*(?P<amount>\d+(?:\.\d+)?(?:\s+\d+/\d+|/\d+)?)\s+"
    r"(?:(?P<unit>cups?|tbsp|tsp|tablespoons?|teaspoons?|g|kg|ml|l|oz|lbs?|pounds?|"
    r"slices?|pieces?|cloves?|cans?|pinch(?:es)?|handfuls?|leaves)\.?\s+)?"
    r"(?P<name>.+?)\s*$",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Decode-with-default helpers
# ---------------------------------------------------------------------------

def as_int(value: Any, default: int, minimum: int = 0) -> int:
    """Read an integer, accepting numeric strings like ``"25 minutes"``.

    Fractions are truncated. Booleans, non-numbers and values below
    ``minimum`` give ``default``.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return default
        number = int(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return default
        parsed = float(match.group(1))
        # Hundreds of digits overflow to inf
        if not math.isfinite(parsed):
            return default
        number = int(parsed)
    else:
        return default
    return number if number >= minimum else default


def as_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value if value.strip() else default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def as_text(value: Any, default: str = "") -> str:
    """Like ``as_str`` but joins a list of steps into one paragraph."""
    if isinstance(value, list):
        steps = [as_str(step) for step in value]
        joined = " ".join(step.strip() for step in steps if step.strip())
        return joined or default
    return as_str(value, default)


def as_str_list(value: Any, unique: bool = False) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    items: list[str] = []
    for item in value:
        text = as_str(item).strip()
        if not text or (unique and text in items):
            continue
        items.append(text)
    return items


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(value, (int, float)):
        return value != 0
    return False


def as_enum(value: Any, allowed: tuple[str, ...], default: str, aliases: dict[str, str] | None = None) -> str:
    if not isinstance(value, str):
        return default
    key = value.strip().lower()
    if key in allowed:
        return key
    return (aliases or {}).get(key, default)


def as_category(value: Any) -> str:
    """Map a model-supplied category onto comfort/quick/healthy."""
    if not isinstance(value, str):
        return DEFAULT_CATEGORY
    key = value.strip().lower()
    if key in RECIPE_CATEGORIES:
        return key
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in key for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def default_image(category: str) -> str:
    images = config.DEFAULT_CATEGORY_IMAGES
    return images.get(category, images["comfort"])


def _amount(value: Any) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return as_str(value).strip()


# ---------------------------------------------------------------------------
# Record decoders
# ---------------------------------------------------------------------------

def _recipe_ingredient(item: Any) -> str:
    if isinstance(item, dict):
        parts = [
            _amount(item.get("amount", item.get("quantity"))),
            as_str(item.get("unit")).strip(),
            as_str(item.get("name", item.get("item"))).strip(),
        ]
        return " ".join(part for part in parts if part)
    return as_str(item).strip()


def decode_recipe(data: dict[str, Any], index: int) -> RecipeCandidate:
    category = as_category(data.get("category"))
    raw_ingredients = data.get("ingredients")
    ingredients = (
        [line for line in (_recipe_ingredient(item) for item in raw_ingredients) if line]
        if isinstance(raw_ingredients, list)
        else as_str_list(raw_ingredients)
    )
    recipe = RecipeCandidate(
        id=f"recipe_{index}",
        category=category,
        name=as_str(data.get("recipeName", data.get("name")), DEFAULT_RECIPE_NAME),
        cooking_time_minutes=as_int(data.get("cookingTime"), DEFAULT_COOKING_TIME),
        servings=as_int(data.get("servings"), DEFAULT_SERVINGS, minimum=1),
        difficulty=as_enum(data.get("difficulty"), DIFFICULTIES, "easy", _DIFFICULTY_ALIASES),
        calories=as_int(data.get("calories"), 0),
        ingredients=ingredients,
        instructions=as_text(data.get("instructions"), DEFAULT_INSTRUCTIONS),
        tags=as_str_list(data.get("tags"), unique=True),
        mood_explanation=as_str(data.get("moodExplanation")),
        category_reason=as_str(data.get("categoryReason")),
        nutrition_highlights=as_str(data.get("nutritionHighlights")),
        image=default_image(category),
    )
    recipe.score = score(recipe)
    return recipe


def decode_meal_ingredient(item: Any) -> MealIngredient | None:
    if isinstance(item, dict):
        name = as_str(item.get("name", item.get("ingredient", item.get("item")))).strip()
        if not name:
            return None
        return MealIngredient(
            name=name,
            amount=_amount(item.get("amount", item.get("quantity"))),
            unit=as_str(item.get("unit")).strip(),
        )

    line = as_str(item).strip()
    if not line:
        return None
    match = _INGREDIENT_LINE.match(line)
    if not match:
        return MealIngredient(name=line)
    return MealIngredient(
        name=match.group("name"),
        amount=match.group("amount"),
        unit=(match.group("unit") or "").lower(),
    )


def decode_meal(data: dict[str, Any], meal_type: str) -> MealRecord:
    raw_ingredients = data.get("ingredients")
    ingredients = []
    if isinstance(raw_ingredients, list):
        ingredients = [ing for ing in map(decode_meal_ingredient, raw_ingredients) if ing is not None]

    return MealRecord(
        type=as_enum(data.get("type"), MEAL_TYPES, meal_type, _MEAL_TYPE_ALIASES),
        recipe_name=as_str(data.get("recipeName", data.get("name")), DEFAULT_RECIPE_NAME),
        ingredients=ingredients,
        instructions=as_text(data.get("instructions"), DEFAULT_INSTRUCTIONS),
        cooking_time_minutes=as_int(data.get("cookingTime"), DEFAULT_COOKING_TIME),
        servings=as_int(data.get("servings"), DEFAULT_SERVINGS, minimum=1),
        calories=as_int(data.get("calories"), 0),
        difficulty=as_enum(data.get("difficulty"), DIFFICULTIES, "easy", _DIFFICULTY_ALIASES),
        tags=as_str_list(data.get("tags"), unique=True),
        nutrition_highlights=as_str(data.get("nutritionHighlights")),
        customized=as_bool(data.get("customized")),
        modifications=as_str(data.get("modifications")),
    )


def _decode_day(data: dict[str, Any], number: int) -> MealPlanDay:
    raw_meals = data.get("meals")
    raw_meals = raw_meals if isinstance(raw_meals, dict) else {}

    meals = {
        meal_type: decode_meal(raw_meals[meal_type], meal_type)
        for meal_type in ("breakfast", "lunch", "dinner")
        if isinstance(raw_meals.get(meal_type), dict)
    }

    raw_snacks = raw_meals.get("snacks", raw_meals.get("snack"))
    if isinstance(raw_snacks, dict):
        raw_snacks = [raw_snacks]
    snacks = [
        decode_meal(snack, "snack")
        for snack in (raw_snacks if isinstance(raw_snacks, list) else [])
        if isinstance(snack, dict)
    ]

    computed_calories = sum(meal.calories for meal in list(meals.values()) + snacks)
    return MealPlanDay(
        day_number=as_int(data.get("dayNumber"), number, minimum=1),
        label=as_str(data.get("date"), f"Day {number}"),
        meals=meals,
        snacks=snacks,
        total_calories=as_int(data.get("totalCalories"), computed_calories, minimum=1),
    )


def _decode_shopping_list(value: Any) -> list[dict[str, str]]:
    if not isinstance(value, list):
        return []
    items = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        name = as_str(entry.get("ingredient", entry.get("name"))).strip()
        if name:
            items.append({
                "ingredient": name,
                "amount": _amount(entry.get("amount")),
                "unit": as_str(entry.get("unit")).strip(),
            })
    return items


def _decode_nutrition_summary(value: Any, calorie_target: int) -> dict[str, Any]:
    if isinstance(value, dict):
        numeric = {
            key: val for key, val in value.items()
            if isinstance(val, (int, float)) and not isinstance(val, bool)
        }
        if numeric:
            return numeric
    return {
        "averageCaloriesPerDay": calorie_target,
        "proteinPercentage": 20,
        "carbPercentage": 50,
        "fatPercentage": 30,
    }


def decode_substitute(entry: Any) -> SubstitutionSuggestion | None:
    if isinstance(entry, str):
        entry = {"ingredient": entry}
    if not isinstance(entry, dict):
        return None
    name = as_str(entry.get("ingredient", entry.get("name", entry.get("substitute")))).strip()
    if not name:
        return None
    return SubstitutionSuggestion(
        ingredient=name,
        ratio=as_str(entry.get("ratio"), "1:1"),
        explanation=as_str(entry.get("explanation", entry.get("note"))),
        flavor_impact=as_str(entry.get("flavorImpact")),
        availability=as_enum(entry.get("availability"), AVAILABILITIES, "common"),
        source="ai",
        confidence="high",
    )


def rank_substitutions(suggestions: list[SubstitutionSuggestion]) -> list[SubstitutionSuggestion]:
    """Drop duplicate ingredients (case-insensitive, first wins), order by
    descending confidence, keep the top five."""
    seen: set[str] = set()
    unique = []
    for suggestion in suggestions:
        key = suggestion.ingredient.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(suggestion)

    unique.sort(key=lambda s: _CONFIDENCE_RANK.get(s.confidence, 0), reverse=True)
    return unique[:MAX_SUBSTITUTES]


# ---------------------------------------------------------------------------
# Shape normalizers
# ---------------------------------------------------------------------------

def normalize_recipe_list(parsed: Any, context: GenerationContext) -> list[RecipeCandidate] | None:
    recipes = parsed.get("recipes") if isinstance(parsed, dict) else None
    if not isinstance(recipes, list):
        return None
    candidates: list[RecipeCandidate] = []
    for entry in recipes:
        if isinstance(entry, dict):
            candidates.append(decode_recipe(entry, len(candidates) + 1))
    return candidates or None


def normalize_meal_plan(parsed: Any, context: GenerationContext) -> MealPlan | None:
    plan = parsed.get("mealPlan") if isinstance(parsed, dict) else None
    if not isinstance(plan, dict) or not isinstance(plan.get("days"), list):
        return None

    days: list[MealPlanDay] = []
    for entry in plan["days"]:
        if isinstance(entry, dict):
            days.append(_decode_day(entry, len(days) + 1))
    if not days:
        return None

    return MealPlan(
        days=days,
        shopping_list=_decode_shopping_list(parsed.get("shoppingList", plan.get("shoppingList"))),
        nutrition_summary=_decode_nutrition_summary(
            parsed.get("nutritionSummary", plan.get("nutritionSummary")),
            context.calorie_target,
        ),
        tips=as_str(parsed.get("tips", plan.get("tips")), DEFAULT_PLAN_TIPS),
    )


def normalize_single_meal(parsed: Any, context: GenerationContext) -> MealRecord | None:
    if not isinstance(parsed, dict):
        return None
    meal = parsed.get("meal") or parsed.get("customizedMeal")
    if not isinstance(meal, dict):
        return None
    meal_type = context.meal_type if context.meal_type in MEAL_TYPES else "lunch"
    return decode_meal(meal, meal_type)


def normalize_substitution_set(parsed: Any, context: GenerationContext) -> SubstitutionSet | None:
    substitutes = parsed.get("substitutes") if isinstance(parsed, dict) else None
    if not isinstance(substitutes, list):
        return None
    suggestions = [sub for sub in map(decode_substitute, substitutes) if sub is not None]
    if not suggestions:
        return None
    return SubstitutionSet(
        original_ingredient=context.ingredient,
        substitutes=rank_substitutions(suggestions),
        tips=as_str(parsed.get("tips"), DEFAULT_SUBSTITUTION_TIPS),
    )


_NORMALIZERS: dict[ResponseShape, Callable[[Any, GenerationContext], Any]] = {
    ResponseShape.RECIPE_LIST: normalize_recipe_list,
    ResponseShape.MEAL_PLAN: normalize_meal_plan,
    ResponseShape.SINGLE_MEAL: normalize_single_meal,
    ResponseShape.SUBSTITUTION_SET: normalize_substitution_set,
}


def normalize(parsed: Any, shape: ResponseShape, context: GenerationContext | None = None) -> Any:
    """Turn parsed JSON into the domain record(s) for ``shape``.

    Returns:
        list[RecipeCandidate], MealPlan, MealRecord or SubstitutionSet, or None
        when the expected top-level key is missing or holds nothing usable
    """
    return _NORMALIZERS[ResponseShape(shape)](parsed, context or GenerationContext())
