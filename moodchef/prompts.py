"""Prompt builders for the generative model.

Each prompt pins the exact JSON layout the response normalizer reads, so the
keys here (``recipes``, ``mealPlan``, ``meal``, ``customizedMeal``,
``substitutes``) must stay in step with ``moodchef.normalizer``.
"""

from typing import Any

from moodchef import config
from moodchef.models import MealRecord, Preferences

JSON_ONLY = "IMPORTANT: Respond with ONLY valid JSON. No additional text, explanations, or markdown formatting."


def _joined(values: list[str], default: str = "None") -> str:
    return ", ".join(values) or default


def calorie_target_for_meal(meal_type: str, daily_target: int | None = None) -> int:
    """Share of the daily calorie target for one meal, rounded to the nearest calorie."""
    daily_target = daily_target or config.DEFAULT_CALORIE_TARGET
    return round(daily_target * config.MEAL_CALORIE_SPLITS.get(meal_type, 0.3))


def build_multi_recipe_prompt(mood: str, context: str | None, preferences: Preferences, count: int = 3) -> str:
    prompt = f"I am feeling {mood}."
    if context:
        prompt += f" Context: {context}."
    if preferences.dietary_restrictions:
        prompt += f" I follow these dietary restrictions: {_joined(preferences.dietary_restrictions)}."
    if preferences.allergies:
        prompt += f" I am allergic to: {_joined(preferences.allergies)}."

    prompt += f"""

Please suggest {count} different recipes that match my mood, each optimized for a different approach:

1. COMFORT recipe: Rich, indulgent, emotionally satisfying, higher calories, familiar flavors
2. QUICK recipe: Under 30 minutes, minimal prep, simple ingredients, one-pot if possible
3. HEALTHY recipe: Nutrient-dense, balanced macros, lighter, fresh ingredients

For each recipe, respond in this EXACT JSON format:
{{
  "recipes": [
    {{
      "category": "comfort|quick|healthy",
      "recipeName": "Exact recipe name",
      "cookingTime": 30,
      "servings": 2,
      "difficulty": "easy|medium|hard",
      "calories": 400,
      "ingredients": [
        "2 cups ingredient with measurements",
        "1 tbsp another ingredient"
      ],
      "instructions": "Step 1: Do this. Step 2: Do that. Keep concise but complete.",
      "moodExplanation": "Why this recipe matches the {mood} mood",
      "categoryReason": "Why this fits the comfort/quick/healthy category",
      "tags": ["tag1", "tag2"],
      "nutritionHighlights": "Key nutritional benefits or indulgent aspects"
    }}
  ]
}}

Make sure each recipe is distinctly different and truly optimized for its category."""
    return prompt


def _meal_json_example(root_key: str, meal_type: str, extra_tag: str = "other") -> str:
    return f"""{{
  "{root_key}": {{
    "type": "{meal_type}",
    "recipeName": "Specific recipe name",
    "cookingTime": 25,
    "servings": 2,
    "calories": 400,
    "difficulty": "easy",
    "ingredients": [
      {{"name": "ingredient name", "amount": "2", "unit": "cups"}}
    ],
    "instructions": "Clear, step-by-step cooking instructions in simple language",
    "tags": ["{meal_type}", "{extra_tag}"],
    "nutritionHighlights": "Key nutritional benefits or characteristics"
  }}
}}"""


def build_meal_plan_prompt(preferences: Preferences, duration: int) -> str:
    snack_line = (
        ',\n          "snacks": [{"recipeName": "Snack Name", "cookingTime": 5, "servings": 1, '
        '"calories": 150, "difficulty": "easy", "ingredients": [{"name": "snack ingredient", '
        '"amount": "1", "unit": "piece"}], "instructions": "Snack preparation", "tags": ["snack"], '
        '"nutritionHighlights": "Snack nutrition"}]'
        if preferences.include_snacks
        else ""
    )
    return f"""Create a {duration}-day meal plan with the following specifications:

DIETARY REQUIREMENTS:
- Dietary restrictions: {_joined(preferences.dietary_restrictions)}
- Allergies: {_joined(preferences.allergies)}
- Disliked ingredients: {_joined(preferences.disliked_ingredients)}
- Preferred ingredients: {_joined(preferences.preferred_ingredients)}
- Cuisine preferences: {_joined(preferences.cuisine_preferences, "Any")}

MEAL PREFERENCES:
- Cooking time preference: {preferences.cooking_time} (quick=<30min, moderate=30-60min, extended=>60min)
- Difficulty level: {preferences.difficulty}
- Target calories per day: {preferences.calorie_target}
- Meals per day: {preferences.meals_per_day}
- Include snacks: {"Yes" if preferences.include_snacks else "No"}

REQUIREMENTS:
1. Each meal should be unique and varied
2. Balance nutrition across the plan
3. Consider ingredient overlap for shopping efficiency
4. Provide clear, simple cooking instructions
5. Include accurate ingredient measurements
6. Estimate cooking times and calories

{JSON_ONLY}

Required JSON format:
{{
  "mealPlan": {{
    "totalDays": {duration},
    "days": [
      {{
        "dayNumber": 1,
        "date": "Day 1",
        "meals": {{
          "breakfast": {{"recipeName": "Recipe Name", "cookingTime": 20, "servings": 2, "calories": 400, "difficulty": "easy", "ingredients": [{{"name": "ingredient name", "amount": "2", "unit": "cups"}}], "instructions": "Step-by-step cooking instructions", "tags": ["breakfast"], "nutritionHighlights": "Key nutritional benefits"}},
          "lunch": {{"recipeName": "Lunch Recipe Name", "cookingTime": 25, "servings": 2, "calories": 500, "difficulty": "easy", "ingredients": [{{"name": "ingredient", "amount": "1", "unit": "cup"}}], "instructions": "Lunch cooking instructions", "tags": ["lunch"], "nutritionHighlights": "Lunch nutrition info"}},
          "dinner": {{"recipeName": "Dinner Recipe Name", "cookingTime": 30, "servings": 2, "calories": 600, "difficulty": "easy", "ingredients": [{{"name": "ingredient", "amount": "2", "unit": "cups"}}], "instructions": "Dinner cooking instructions", "tags": ["dinner"], "nutritionHighlights": "Dinner nutrition info"}}{snack_line}
        }},
        "totalCalories": {preferences.calorie_target}
      }}
    ]
  }},
  "shoppingList": [
    {{"ingredient": "ingredient name", "amount": "total amount needed", "unit": "cups"}}
  ],
  "nutritionSummary": {{
    "averageCaloriesPerDay": {preferences.calorie_target},
    "proteinPercentage": 20,
    "carbPercentage": 50,
    "fatPercentage": 30
  }},
  "tips": "Meal prep and cooking tips for this plan"
}}

Make sure each day has varied, interesting meals that follow the dietary requirements."""


def build_single_meal_prompt(meal_type: str, preferences: Preferences, existing_meals: list[MealRecord] | None = None) -> str:
    avoid = ""
    if existing_meals:
        names = ", ".join(meal.recipe_name for meal in existing_meals)
        avoid = f"\nAVOID REPETITION - Don't use these recent meals as inspiration: {names}\n"

    return f"""Generate a {meal_type} recipe with these specifications:

DIETARY REQUIREMENTS:
- Dietary restrictions: {_joined(preferences.dietary_restrictions)}
- Allergies: {_joined(preferences.allergies)}
- Disliked ingredients: {_joined(preferences.disliked_ingredients)}
- Preferred ingredients: {_joined(preferences.preferred_ingredients)}

MEAL PREFERENCES:
- Cooking time: {preferences.cooking_time}
- Difficulty: {preferences.difficulty}
- Target calories: {calorie_target_for_meal(meal_type, preferences.calorie_target)}
{avoid}
{JSON_ONLY}

Required JSON format:
{_meal_json_example("meal", meal_type)}"""


def build_customization_prompt(original_meal: MealRecord, modifications: dict[str, Any], preferences: Preferences) -> str:
    ingredients = ", ".join(
        " ".join(part for part in (ing.amount, ing.unit, ing.name) if part)
        for ing in original_meal.ingredients
    )
    changes = "\n".join(f"- {key}: {value}" for key, value in modifications.items()) or "- none"

    return f"""Customize this existing recipe based on user modifications:

ORIGINAL RECIPE:
- Name: {original_meal.recipe_name}
- Ingredients: {ingredients}
- Instructions: {original_meal.instructions}
- Cooking time: {original_meal.cooking_time_minutes} minutes
- Calories: {original_meal.calories}

USER MODIFICATIONS:
{changes}

DIETARY REQUIREMENTS:
- Dietary restrictions: {_joined(preferences.dietary_restrictions)}
- Allergies: {_joined(preferences.allergies)}

Please modify the recipe to incorporate the user's changes while maintaining:
1. Nutritional balance
2. Cooking feasibility
3. Flavor harmony
4. Appropriate cooking times and methods

{JSON_ONLY}

Required JSON format (set "customized" to true and describe the changes in "modifications"):
{_meal_json_example("customizedMeal", original_meal.type, "customized")}"""


def build_substitution_prompt(ingredient: str, recipe_context: str | None, dietary_restrictions: list[str]) -> str:
    return f"""I'm cooking and I don't have "{ingredient}".

Recipe context: {recipe_context or "General cooking"}
Dietary restrictions: {_joined(dietary_restrictions)}

Please suggest 3-5 suitable substitutes with explanations. Consider:
- Flavor profile compatibility
- Texture similarity
- Cooking behavior
- Quantity adjustments needed
- Availability in typical kitchens

Format as JSON:
{{
  "substitutes": [
    {{
      "ingredient": "substitute name",
      "ratio": "1:1 or specific ratio",
      "explanation": "why this works",
      "flavorImpact": "how it changes the taste",
      "availability": "common/uncommon"
    }}
  ],
  "tips": "additional cooking tips for substitutions"
}}"""
