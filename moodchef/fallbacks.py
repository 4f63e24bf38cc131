"""Static records served when a model reply cannot be used.

Everything here is a pure function of its arguments: the same shape and
context always produce the same records, and nothing touches the network or
disk.
"""

import re
from typing import Any

from moodchef import config
from moodchef.models import (
    MEAL_TYPES,
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
from moodchef.normalizer import as_int, as_str
from moodchef.scoring import score


MEAL_PLAN_FALLBACK_TIPS = "This is a basic meal plan. Customize it based on your preferences."
KNOWN_SUBSTITUTION_TIPS = "These are common substitutions. Adjust quantities and seasonings to taste."
GENERIC_SUBSTITUTION_TIPS = "When substituting ingredients, consider flavor, texture, and cooking properties."


# Ingredient substitution database, keyed by lowercase ingredient name
COMMON_SUBSTITUTIONS: dict[str, list[dict[str, str]]] = {
    # Produce
    "zucchini": [
        {"ingredient": "yellow squash", "ratio": "1:1", "explanation": "Same texture and mild flavor"},
        {"ingredient": "eggplant", "ratio": "1:1", "explanation": "Similar texture when cooked"},
    ],
    "onion": [
        {"ingredient": "shallots", "ratio": "1:1", "explanation": "Milder flavor, similar cooking properties"},
        {"ingredient": "leeks", "ratio": "1 cup sliced per 1 onion", "explanation": "Milder flavor"},
        {"ingredient": "garlic powder", "ratio": "1 tsp:1 onion", "explanation": "For flavor only, not texture"},
    ],
    "garlic": [
        {"ingredient": "garlic powder", "ratio": "1/8 tsp per clove", "explanation": "Less fresh flavor"},
        {"ingredient": "shallots", "ratio": "1:1", "explanation": "Milder, sweeter"},
    ],
    "fresh herbs": [
        {"ingredient": "dried herbs", "ratio": "1 tsp dried per 1 tbsp fresh", "explanation": "More concentrated"},
        {"ingredient": "frozen herbs", "ratio": "1:1", "explanation": "Better than dried"},
    ],

    # Dairy
    "milk": [
        {"ingredient": "almond milk", "ratio": "1:1", "explanation": "Dairy-free alternative with similar consistency"},
        {"ingredient": "oat milk", "ratio": "1:1", "explanation": "Creamy texture, works well in most recipes"},
        {"ingredient": "soy milk", "ratio": "1:1", "explanation": "Higher protein content"},
    ],
    "butter": [
        {"ingredient": "olive oil", "ratio": "3/4:1", "explanation": "Use 3/4 amount of oil"},
        {"ingredient": "applesauce", "ratio": "1/2:1", "explanation": "For baking, use half the amount"},
        {"ingredient": "coconut oil", "ratio": "1:1", "explanation": "For baking and cooking"},
    ],
    "heavy cream": [
        {"ingredient": "coconut cream", "ratio": "1:1", "explanation": "Vegan, rich texture"},
        {"ingredient": "milk + butter", "ratio": "1 cup milk + 2 tbsp butter", "explanation": "Mix together"},
    ],
    "sour cream": [
        {"ingredient": "greek yogurt", "ratio": "1:1", "explanation": "Higher protein"},
        {"ingredient": "coconut cream", "ratio": "1:1", "explanation": "Vegan option"},
    ],
    "parmesan cheese": [
        {"ingredient": "pecorino romano", "ratio": "1:1", "explanation": "Sharper flavor"},
        {"ingredient": "nutritional yeast", "ratio": "2:1", "explanation": "Vegan, nutty flavor"},
    ],

    # Eggs
    "eggs": [
        {"ingredient": "flax egg", "ratio": "1:1", "explanation": "1 tbsp ground flax + 3 tbsp water per egg"},
        {"ingredient": "applesauce", "ratio": "1/4 cup:1 egg", "explanation": "For baking only"},
        {"ingredient": "mashed banana", "ratio": "1/4 cup:1 egg", "explanation": "Adds sweetness"},
    ],

    # Pantry
    "all-purpose flour": [
        {"ingredient": "whole wheat flour", "ratio": "1:1", "explanation": "More fiber, denser texture"},
        {"ingredient": "oat flour", "ratio": "1:1 + 1 tsp", "explanation": "Gluten-free, slightly sweet"},
    ],
    "sugar": [
        {"ingredient": "honey", "ratio": "3/4 cup per 1 cup sugar", "explanation": "Reduce liquid by 1/4 cup"},
        {"ingredient": "maple syrup", "ratio": "3/4 cup per 1 cup sugar", "explanation": "Reduce liquid by 3 tbsp"},
    ],
    "white rice": [
        {"ingredient": "brown rice", "ratio": "1:1", "explanation": "More fiber, longer cook time"},
        {"ingredient": "quinoa", "ratio": "1:1", "explanation": "Higher protein"},
        {"ingredient": "cauliflower rice", "ratio": "1:1", "explanation": "Low-carb option"},
    ],
    "soy sauce": [
        {"ingredient": "tamari", "ratio": "1:1", "explanation": "Gluten-free"},
        {"ingredient": "coconut aminos", "ratio": "1:1", "explanation": "Soy-free, sweeter"},
    ],
    "lemon juice": [
        {"ingredient": "lime juice", "ratio": "1:1", "explanation": "Similar acidity"},
        {"ingredient": "white wine vinegar", "ratio": "1:1", "explanation": "More sharp"},
    ],
    "chicken broth": [
        {"ingredient": "vegetable broth", "ratio": "1:1", "explanation": "Vegetarian option"},
        {"ingredient": "bouillon cube + water", "ratio": "1 cube per cup", "explanation": "More sodium"},
    ],

    # Proteins
    "ground beef": [
        {"ingredient": "ground turkey", "ratio": "1:1", "explanation": "Leaner option"},
        {"ingredient": "lentils", "ratio": "1 cup cooked per 1 lb meat", "explanation": "Vegetarian, high fiber"},
    ],
    "chicken breast": [
        {"ingredient": "turkey breast", "ratio": "1:1", "explanation": "Similar texture"},
        {"ingredient": "tofu", "ratio": "Press and marinate", "explanation": "Vegetarian option"},
    ],
}


def find_common_substitutes(ingredient: str) -> list[dict[str, str]] | None:
    """Look up table entries for an ingredient.

    Tries an exact match, then singular/plural forms, then a whole-word match
    ("whole milk" matches "milk" but "eggplant" does not match "eggs").
    """
    key = ingredient.lower().strip()
    if not key:
        return None
    if key in COMMON_SUBSTITUTIONS:
        return COMMON_SUBSTITUTIONS[key]

    for variant in (key + "s", key.rstrip("s")):
        if variant in COMMON_SUBSTITUTIONS:
            return COMMON_SUBSTITUTIONS[variant]

    for name, entries in COMMON_SUBSTITUTIONS.items():
        stem = re.escape(name.rstrip("s"))
        if re.search(rf"\b{stem}s?\b", key):
            return entries
    return None


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------

def _fallback_recipe(
    index: int,
    category: str,
    name: str,
    cooking_time: int,
    calories: int,
    ingredients: list[str],
    instructions: str,
    mood_explanation: str,
    category_reason: str,
    tags: list[str],
    nutrition_highlights: str,
) -> RecipeCandidate:
    recipe = RecipeCandidate(
        id=f"recipe_{index}",
        category=category,
        name=name,
        cooking_time_minutes=cooking_time,
        servings=2,
        difficulty="easy",
        calories=calories,
        ingredients=ingredients,
        instructions=instructions,
        tags=tags,
        mood_explanation=mood_explanation,
        category_reason=category_reason,
        nutrition_highlights=nutrition_highlights,
        image=config.DEFAULT_CATEGORY_IMAGES[category],
    )
    recipe.score = score(recipe)
    return recipe


def fallback_recipes(mood: str) -> list[RecipeCandidate]:
    """One comfort, one quick and one healthy recipe for ``mood``."""
    return [
        _fallback_recipe(
            1, "comfort", "Comfort Pasta Bowl", 25, 450,
            ["2 cups pasta", "1 cup cheese sauce", "herbs to taste"],
            "Cook pasta, mix with cheese sauce, season and serve hot.",
            f"Perfect comfort food for when you're feeling {mood}",
            "Rich, cheesy, and emotionally satisfying",
            ["pasta", "comfort", "cheese"],
            "High in carbs and protein for comfort",
        ),
        _fallback_recipe(
            2, "quick", "Quick Stir-Fry", 15, 300,
            ["2 cups vegetables", "2 tbsp oil", "1 tbsp soy sauce"],
            "Heat oil, add vegetables, stir-fry for 10 minutes with sauce.",
            f"Fast and satisfying for your {mood} mood",
            "Ready in 15 minutes with minimal prep",
            ["stir-fry", "quick", "vegetables"],
            "High in fiber and vitamins",
        ),
        _fallback_recipe(
            3, "healthy", "Fresh Garden Salad", 10, 200,
            ["4 cups mixed greens", "1 cup vegetables", "2 tbsp dressing"],
            "Combine greens and vegetables, drizzle with dressing, toss and serve.",
            f"Light and refreshing to balance your {mood} feelings",
            "Nutrient-dense with fresh, clean flavors",
            ["salad", "healthy", "fresh"],
            "High in vitamins, low in calories",
        ),
    ]


# ---------------------------------------------------------------------------
# Meals
# ---------------------------------------------------------------------------

_FALLBACK_MEALS: dict[str, dict[str, Any]] = {
    "breakfast": {
        "recipe_name": "Simple Oatmeal Bowl",
        "ingredients": [("oats", "1", "cup"), ("milk", "1", "cup"), ("honey", "1", "tbsp")],
        "instructions": "Combine oats and milk in a pot. Cook for 5 minutes, stirring occasionally. Add honey to taste.",
        "cooking_time_minutes": 10,
        "calories": 300,
    },
    "lunch": {
        "recipe_name": "Quick Sandwich",
        "ingredients": [("bread", "2", "slices"), ("cheese", "2", "slices"), ("lettuce", "2", "leaves")],
        "instructions": "Layer cheese and lettuce between bread slices. Serve immediately.",
        "cooking_time_minutes": 5,
        "calories": 400,
    },
    "dinner": {
        "recipe_name": "Simple Pasta",
        "ingredients": [("pasta", "2", "cups"), ("tomato sauce", "1", "cup"), ("cheese", "1/4", "cup")],
        "instructions": "Cook pasta according to package directions. Drain and mix with sauce. Top with cheese.",
        "cooking_time_minutes": 20,
        "calories": 500,
    },
    "snack": {
        "recipe_name": "Fruit and Nuts",
        "ingredients": [("apple", "1", "medium"), ("almonds", "1/4", "cup")],
        "instructions": "Slice apple and serve with almonds.",
        "cooking_time_minutes": 2,
        "calories": 200,
    },
}


def fallback_meal(meal_type: str) -> MealRecord:
    """Static meal for a meal type; unknown types get the lunch dish."""
    meal_type = meal_type if meal_type in MEAL_TYPES else "lunch"
    base = _FALLBACK_MEALS[meal_type]
    return MealRecord(
        type=meal_type,
        recipe_name=base["recipe_name"],
        ingredients=[MealIngredient(name, amount, unit) for name, amount, unit in base["ingredients"]],
        instructions=base["instructions"],
        cooking_time_minutes=base["cooking_time_minutes"],
        servings=2,
        calories=base["calories"],
        difficulty="easy",
        tags=[meal_type, "simple", "quick"],
        nutrition_highlights="Basic nutrition",
        customized=False,
    )


def fallback_meal_plan(duration: int, include_snacks: bool = False, calorie_target: int | None = None) -> MealPlan:
    calorie_target = calorie_target or config.DEFAULT_CALORIE_TARGET
    days = [
        MealPlanDay(
            day_number=number,
            label=f"Day {number}",
            meals={meal_type: fallback_meal(meal_type) for meal_type in ("breakfast", "lunch", "dinner")},
            snacks=[fallback_meal("snack")] if include_snacks else [],
            total_calories=calorie_target,
        )
        for number in range(1, max(duration, 1) + 1)
    ]
    return MealPlan(
        days=days,
        shopping_list=[],
        nutrition_summary={"averageCaloriesPerDay": calorie_target},
        tips=MEAL_PLAN_FALLBACK_TIPS,
    )


def modified_meal(original: MealRecord, modifications: dict[str, Any]) -> MealRecord:
    """Apply simple overrides to a meal without asking the model.

    Only ``recipeName``, ``cookingTime`` and ``servings`` are applied; other
    requested changes are recorded in ``modifications`` but not acted on.
    """
    modifications = modifications if isinstance(modifications, dict) else {}
    changed = [key for key, value in modifications.items() if value not in (None, "")]
    return MealRecord(
        type=original.type,
        recipe_name=as_str(modifications.get("recipeName"), original.recipe_name),
        ingredients=[MealIngredient(ing.name, ing.amount, ing.unit) for ing in original.ingredients],
        instructions=original.instructions,
        cooking_time_minutes=as_int(modifications.get("cookingTime"), original.cooking_time_minutes, minimum=1),
        servings=as_int(modifications.get("servings"), original.servings, minimum=1),
        calories=original.calories,
        difficulty=original.difficulty,
        tags=list(original.tags),
        nutrition_highlights=original.nutrition_highlights,
        customized=True,
        modifications=f"{', '.join(changed)} modified" if changed else "no changes applied",
    )


# ---------------------------------------------------------------------------
# Substitutions
# ---------------------------------------------------------------------------

def fallback_substitutions(ingredient: str) -> SubstitutionSet:
    """Table entries for a known ingredient, otherwise one generic suggestion."""
    entries = find_common_substitutes(ingredient)
    if entries:
        return SubstitutionSet(
            original_ingredient=ingredient,
            substitutes=[
                SubstitutionSuggestion(
                    ingredient=entry["ingredient"],
                    ratio=entry["ratio"],
                    explanation=entry["explanation"],
                    availability="common",
                    source="database",
                    confidence="medium",
                )
                for entry in entries
            ],
            tips=KNOWN_SUBSTITUTION_TIPS,
        )

    return SubstitutionSet(
        original_ingredient=ingredient,
        substitutes=[
            SubstitutionSuggestion(
                ingredient="Similar ingredient from the same category",
                ratio="1:1",
                explanation=f"Look for ingredients with similar texture and flavor to {ingredient}",
                availability="varies",
                source="general",
                confidence="low",
            )
        ],
        tips=GENERIC_SUBSTITUTION_TIPS,
    )


def fallback(shape: ResponseShape, context: GenerationContext | None = None) -> Any:
    """Static record(s) for ``shape``, built only from ``context``."""
    context = context or GenerationContext()
    shape = ResponseShape(shape)
    if shape is ResponseShape.RECIPE_LIST:
        return fallback_recipes(context.mood)
    if shape is ResponseShape.MEAL_PLAN:
        return fallback_meal_plan(context.duration, context.include_snacks, context.calorie_target)
    if shape is ResponseShape.SINGLE_MEAL:
        return fallback_meal(context.meal_type)
    return fallback_substitutions(context.ingredient)
