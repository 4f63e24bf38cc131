import logging
from datetime import date

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect, generate_csrf

from moodchef import config
from moodchef.ai_client import GenerativeTextClient
from moodchef.images import ImageService
from moodchef.interactions import (
    InteractionNotFound,
    RecipeNotFound,
    compute_analytics,
    create_interaction,
    get_interaction,
    list_history,
    load_interactions,
    rate_interaction,
    select_recipe,
)
from moodchef.logging_config import configure_logging
from moodchef.meal_plan_store import MealPlanNotFound, create_meal_plan, get_meal_plan, list_meal_plans
from moodchef.meal_planner import MAX_PLAN_DAYS, MealPlannerService, empty_meal_plan
from moodchef.models import MEAL_TYPES, Preferences
from moodchef.normalizer import decode_meal
from moodchef.pipeline import ResponsePipeline
from moodchef.recipe_generator import MoodRecipeGenerator
from moodchef.storage import StorageLoadError, StorageSaveError
from moodchef.substitutions import SpoonacularClient, SubstitutionService, parse_substitution_request

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = config.SECRET_KEY
csrf = CSRFProtect(app)
limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[],          # no global limit; apply per-route only
    storage_uri="memory://",
)

# Module-level services, built once and shared by all requests
_ai_client = GenerativeTextClient(api_key=config.GEMINI_API_KEY)
_pipeline = ResponsePipeline()
_image_service = ImageService(
    unsplash_key=config.UNSPLASH_ACCESS_KEY,
    pexels_key=config.PEXELS_API_KEY,
)
_recipe_generator = MoodRecipeGenerator(_ai_client, _pipeline, _image_service)
_substitution_service = SubstitutionService(
    _ai_client,
    _pipeline,
    SpoonacularClient(api_key=config.SPOONACULAR_API_KEY),
)
_meal_planner = MealPlannerService(_ai_client, _pipeline, _substitution_service)


def _error(error: str, message: str, status: int):
    return jsonify({"error": error, "message": message}), status


def _json_body() -> dict | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


@app.errorhandler(StorageLoadError)
def handle_storage_load_error(e):
    logger.error("Failed to load data file", extra={"error": str(e)})
    return _error("Storage error", f"Failed to load data: {e}", 500)


@app.errorhandler(StorageSaveError)
def handle_storage_save_error(e):
    logger.error("Failed to save data file", extra={"error": str(e)})
    return _error("Storage error", f"Failed to save data: {e}", 500)


@app.route("/api/csrf-token")
def csrf_token():
    """Token for the X-CSRFToken header required on state-changing requests."""
    return jsonify({"csrfToken": generate_csrf()})


# ---------------------------------------------------------------------------
# Mood recipes
# ---------------------------------------------------------------------------

@app.route("/api/mood", methods=["POST"])
@limiter.limit("10 per minute")
def submit_mood():
    """Generate comfort/quick/healthy recipes for a mood and record the interaction."""
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    mood = data.get("mood")
    if not isinstance(mood, str) or not mood.strip():
        return _error("Validation error", "Mood is required", 400)
    mood = mood.strip()
    context = data.get("context") if isinstance(data.get("context"), str) else None

    logger.info("Generating recipes for mood", extra={"mood": mood})
    result = _recipe_generator.generate_recipes(mood, context, Preferences.from_dict(data.get("preferences")))

    interaction = create_interaction(
        config.INTERACTIONS_FILE,
        mood,
        context,
        result.value,
        used_fallback=result.used_fallback,
        preferred_category=data.get("preferredCategory"),
    )

    return jsonify({
        "message": "Mood-based recipes generated successfully",
        "interaction": {
            "id": interaction.id,
            "mood": interaction.mood,
            "context": interaction.context,
            "recipes": interaction.recipes,
            "totalRecipes": len(interaction.recipes),
            "createdAt": interaction.created_at,
        },
        "usedFallback": result.used_fallback,
    })


@app.route("/api/mood/history")
def mood_history():
    page = _int_arg("page", 1)
    limit = _int_arg("limit", config.DEFAULT_PER_PAGE)
    category = request.args.get("category") or None

    interactions, pagination = list_history(config.INTERACTIONS_FILE, page, limit, category)
    return jsonify({
        "interactions": [i.to_dict() for i in interactions],
        "analytics": compute_analytics(load_interactions(config.INTERACTIONS_FILE)),
        "pagination": pagination,
    })


@app.route("/api/mood/<interaction_id>")
def mood_interaction(interaction_id):
    try:
        interaction = get_interaction(config.INTERACTIONS_FILE, interaction_id)
    except InteractionNotFound as e:
        return _error("Not found", str(e), 404)

    payload = interaction.to_dict()
    payload["allRecipes"] = interaction.recipes
    return jsonify({"interaction": payload})


@app.route("/api/mood/<interaction_id>/rate", methods=["PUT"])
def rate_mood_interaction(interaction_id):
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    try:
        interaction = rate_interaction(
            config.INTERACTIONS_FILE,
            interaction_id,
            data.get("rating"),
            notes=data.get("notes") if isinstance(data.get("notes"), str) else None,
            rated_category=data.get("selectedRecipeCategory"),
        )
    except ValueError as e:
        return _error("Validation error", str(e), 400)
    except InteractionNotFound as e:
        return _error("Not found", str(e), 404)

    return jsonify({"message": "Rating saved successfully", "interaction": interaction.to_dict()})


@app.route("/api/mood/select-recipe", methods=["POST"])
def select_mood_recipe():
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    interaction_id = data.get("interactionId")
    if not interaction_id:
        return _error("Validation error", "Interaction ID and selected recipe/category are required", 400)

    try:
        interaction = select_recipe(
            config.INTERACTIONS_FILE,
            interaction_id,
            recipe_id=data.get("selectedRecipeId"),
            category=data.get("selectedCategory"),
        )
    except ValueError:
        return _error("Validation error", "Interaction ID and selected recipe/category are required", 400)
    except (InteractionNotFound, RecipeNotFound) as e:
        return _error("Not found", str(e), 404)

    return jsonify({
        "message": "Recipe selection recorded",
        "selectedRecipe": interaction.selected_recipe,
        "interaction": interaction.to_dict(),
    })


@app.route("/api/mood/substitutions", methods=["POST"])
@limiter.limit("10 per minute")
def mood_substitutions():
    """Substitutes for an ingredient given by name or in free text ("I'm out of butter")."""
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    ingredient = data.get("ingredient")
    text = data.get("text")
    if not (isinstance(ingredient, str) and ingredient.strip()) and isinstance(text, str) and text.strip():
        ingredient = parse_substitution_request(text)
    if not isinstance(ingredient, str) or not ingredient.strip():
        return _error("Validation error", "Please specify which ingredient you need to substitute", 400)
    ingredient = ingredient.strip()

    preferences = Preferences.from_dict(data.get("preferences"))
    substitutions = _substitution_service.get_substitutions(
        ingredient,
        data.get("recipeContext") or "general cooking",
        preferences.dietary_restrictions,
    )
    logger.info("Substitutions requested", extra={"ingredient": ingredient})

    return jsonify({
        "message": "Substitution suggestions generated",
        "substitutions": substitutions.to_dict(),
        "requestedIngredient": ingredient,
    })


# ---------------------------------------------------------------------------
# Meal plans
# ---------------------------------------------------------------------------

@app.route("/api/meal-plans", methods=["POST"])
@limiter.limit("10 per minute")
def create_plan():
    """Create a meal plan, generated by the model unless generateWithAI is false."""
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    name = data.get("name")
    duration = data.get("duration")
    if not isinstance(name, str) or not name.strip() or duration is None or not data.get("startDate"):
        return _error("Validation error", "Name, duration, and start date are required", 400)
    if isinstance(duration, bool) or not isinstance(duration, int) or not 1 <= duration <= MAX_PLAN_DAYS:
        return _error("Validation error", f"Duration must be between 1 and {MAX_PLAN_DAYS} days", 400)
    try:
        start_date = date.fromisoformat(str(data["startDate"])[:10])
    except ValueError:
        return _error("Validation error", "Start date must be an ISO date (YYYY-MM-DD)", 400)

    raw_preferences = data.get("preferences") if isinstance(data.get("preferences"), dict) else {}
    generate_with_ai = data.get("generateWithAI", True) is not False

    if generate_with_ai:
        result = _meal_planner.generate_meal_plan(Preferences.from_dict(raw_preferences), duration, start_date)
        plan, used_fallback = result.value, result.used_fallback
    else:
        plan, used_fallback = empty_meal_plan(duration, start_date), False

    record = create_meal_plan(
        config.MEAL_PLANS_FILE,
        name.strip(),
        plan,
        start_date,
        duration,
        description=data.get("description") or "",
        preferences=raw_preferences,
        generated_by="ai" if generate_with_ai else "manual",
        used_fallback=used_fallback,
    )
    return jsonify({"message": "Meal plan created successfully", "mealPlan": record}), 201


@app.route("/api/meal-plans", methods=["GET"])
def list_plans():
    plans, pagination = list_meal_plans(
        config.MEAL_PLANS_FILE,
        _int_arg("page", 1),
        _int_arg("limit", config.DEFAULT_PER_PAGE),
        request.args.get("status") or None,
    )
    return jsonify({"mealPlans": plans, "pagination": pagination})


@app.route("/api/meal-plans/<plan_id>", methods=["GET"])
def get_plan(plan_id):
    try:
        record = get_meal_plan(config.MEAL_PLANS_FILE, plan_id)
    except MealPlanNotFound as e:
        return _error("Not found", str(e), 404)
    return jsonify({"mealPlan": record})


@app.route("/api/meal-plans/generate-meal", methods=["POST"])
@limiter.limit("10 per minute")
def generate_meal():
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    meal_type = data.get("mealType")
    if meal_type not in MEAL_TYPES:
        return _error("Validation error", f"mealType must be one of: {', '.join(MEAL_TYPES)}", 400)

    existing = data.get("existingMeals") if isinstance(data.get("existingMeals"), list) else []
    existing_meals = [decode_meal(m, meal_type) for m in existing if isinstance(m, dict)]

    result = _meal_planner.generate_single_meal(meal_type, Preferences.from_dict(data.get("preferences")), existing_meals)
    return jsonify({"meal": result.value.to_dict(), "usedFallback": result.used_fallback})


@app.route("/api/meal-plans/customize-meal", methods=["POST"])
@limiter.limit("10 per minute")
def customize_meal():
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    meal = data.get("meal")
    modifications = data.get("modifications")
    if not isinstance(meal, dict) or not isinstance(modifications, dict) or not modifications:
        return _error("Validation error", "meal and modifications objects are required", 400)

    original = decode_meal(meal, meal.get("type") if meal.get("type") in MEAL_TYPES else "lunch")
    result = _meal_planner.customize_meal(original, modifications, Preferences.from_dict(data.get("preferences")))
    return jsonify({"customizedMeal": result.value.to_dict(), "usedFallback": result.used_fallback})


@app.route("/api/meal-plans/substitutions", methods=["POST"])
@limiter.limit("10 per minute")
def meal_substitutions():
    data = _json_body()
    if data is None:
        return _error("Invalid JSON", "Request body must be a JSON object", 400)

    meal = data.get("meal")
    unavailable = data.get("unavailableIngredients")
    if not isinstance(meal, dict):
        return _error("Validation error", "meal object is required", 400)
    if not isinstance(unavailable, list) or not unavailable:
        return _error("Validation error", "Unavailable ingredients array is required", 400)

    ingredients = [str(i).strip() for i in unavailable if str(i).strip()]
    substitutions = _meal_planner.suggest_ingredient_substitutions(
        decode_meal(meal, meal.get("type") if meal.get("type") in MEAL_TYPES else "lunch"),
        ingredients,
        Preferences.from_dict(data.get("preferences")),
    )
    return jsonify({
        "substitutions": {ingredient: subs.to_dict() for ingredient, subs in substitutions.items()}
    })


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

@app.route("/api/metrics/fallbacks")
def fallback_metrics():
    """How often each response shape fell back to static data, and why."""
    return jsonify({"total": _pipeline.counter.total(), "fallbacks": _pipeline.counter.snapshot()})


if __name__ == "__main__":
    import os
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV") != "production"
    app.run(host="0.0.0.0", port=port, debug=debug)
