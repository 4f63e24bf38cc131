import os
import secrets
import sys

# Signs sessions and CSRF tokens
# Set SECRET_KEY in the environment for production; a random key is
# generated on startup otherwise (sessions won't survive restarts).
SECRET_KEY = os.environ.get("SECRET_KEY", secrets.token_hex(32))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


# Check if we're running in a test environment
def _is_testing():
    """Check if code is running under pytest."""
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


# Gemini API key (REQUIRED for recipe, meal plan and substitution generation)
# Get your API key at: https://aistudio.google.com/app/apikey
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "test-key" if _is_testing() else None)

if not GEMINI_API_KEY and not _is_testing():
    print("\n" + "=" * 70, file=sys.stderr)
    print("ERROR: GEMINI_API_KEY environment variable is required", file=sys.stderr)
    print("=" * 70, file=sys.stderr)
    print("\nThe Gemini API key is required to generate mood-based recipes.", file=sys.stderr)
    print("Get your API key at: https://aistudio.google.com/app/apikey", file=sys.stderr)
    print("\nThen set the environment variable:", file=sys.stderr)
    print("  export GEMINI_API_KEY='your-api-key-here'", file=sys.stderr)
    print("\nOr add it to a .env file and load it before starting the app.", file=sys.stderr)
    print("=" * 70 + "\n", file=sys.stderr)
    sys.exit(1)

# Gemini exposes an OpenAI-compatible chat completions endpoint, so the
# standard openai SDK is used to talk to it.
AI_BASE_URL = os.environ.get("AI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/")
AI_MODEL = os.environ.get("AI_MODEL", "gemini-2.5-flash")
AI_TEMPERATURE = 0.7
AI_TOP_P = 0.95
AI_MAX_TOKENS = 2048
AI_TIMEOUT_SECONDS = 30.0

# Spoonacular API key (OPTIONAL - adds database-backed substitutions)
# Get your free API key at: https://spoonacular.com/food-api/console#Dashboard
SPOONACULAR_API_KEY = os.environ.get("SPOONACULAR_API_KEY")

# Stock photo providers (OPTIONAL - Foodish and category defaults are used otherwise)
UNSPLASH_ACCESS_KEY = os.environ.get("UNSPLASH_ACCESS_KEY")
PEXELS_API_KEY = os.environ.get("PEXELS_API_KEY")

IMAGE_CACHE_DIR = os.environ.get("IMAGE_CACHE_DIR", "cache/images")
IMAGE_CACHE_TTL_SECONDS = 24 * 60 * 60

INTERACTIONS_FILE = "data/interactions.json"
MEAL_PLANS_FILE = "data/meal_plans.json"

# Number of recipe candidates requested per mood (one per category)
RECIPE_COUNT = 3

# Daily calorie target used when the user has not set one.
DEFAULT_CALORIE_TARGET = 2000

# Share of the daily calorie target given to each meal type in prompts.
# Unknown meal types get 30 %.
MEAL_CALORIE_SPLITS: dict[str, float] = {
    "breakfast": 0.25,
    "lunch":     0.35,
    "dinner":    0.35,
    "snack":     0.05,
}

DEFAULT_CATEGORY_IMAGES: dict[str, str] = {
    "comfort": "https://images.unsplash.com/photo-1551782450-a2132b4ba21d?w=400&h=300&fit=crop",
    "quick": "https://images.unsplash.com/photo-1546069901-ba9599a7e63c?w=400&h=300&fit=crop",
    "healthy": "https://images.unsplash.com/photo-1512621776951-a57141f2eefd?w=400&h=300&fit=crop",
    "food": "https://images.unsplash.com/photo-1556909114-f6e7ad7d3136?w=400&h=300&fit=crop",
}

DEFAULT_PER_PAGE = 10
