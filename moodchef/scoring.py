"""Display-ordering score for generated recipe candidates."""

from moodchef.models import RecipeCandidate

MAX_SCORE = 30

DIFFICULTY_POINTS = {"easy": 10, "medium": 7, "hard": 4}
UNKNOWN_DIFFICULTY_POINTS = 5


def _time_points(cooking_time_minutes: int) -> int:
    if cooking_time_minutes <= 20:
        return 10
    if cooking_time_minutes <= 30:
        return 8
    return 5


def _comfort_calorie_points(calories: int) -> int:
    if calories >= 500:
        return 10
    if calories >= 350:
        return 7
    return 4


def _healthy_calorie_points(calories: int) -> int:
    if calories <= 300:
        return 10
    if calories <= 450:
        return 7
    return 4


def score(recipe: RecipeCandidate) -> int:
    """Score a recipe for how well it fits its category, between 0 and 30.

    Quick recipes earn points for short cooking times, comfort recipes for
    richness (higher calories) and healthy recipes for lightness (lower
    calories). Every recipe earns points for being easy to cook. Categories
    outside comfort/quick/healthy get no category points.
    """
    points = 0

    if recipe.category == "quick":
        points += _time_points(recipe.cooking_time_minutes)
    elif recipe.category == "comfort":
        points += _comfort_calorie_points(recipe.calories)
    elif recipe.category == "healthy":
        points += _healthy_calorie_points(recipe.calories)

    points += DIFFICULTY_POINTS.get(recipe.difficulty, UNKNOWN_DIFFICULTY_POINTS)

    return max(0, min(points, MAX_SCORE))
