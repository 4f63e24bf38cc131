import json

import pytest

from moodchef import config, main
from moodchef.ai_client import AIClientError
from moodchef.main import app, limiter
from tests.conftest import FakeSpoonacular

RECIPES_REPLY = json.dumps({
    "recipes": [
        {"category": "comfort", "recipeName": "Shepherd's Pie", "cookingTime": 60, "calories": 620, "difficulty": "medium"},
        {"category": "quick", "recipeName": "Pesto Pasta", "cookingTime": 15, "calories": 480, "difficulty": "easy"},
        {"category": "healthy", "recipeName": "Quinoa Bowl", "cookingTime": 25, "calories": 350, "difficulty": "easy"},
    ]
})

PLAN_REPLY = json.dumps({
    "mealPlan": {
        "days": [
            {
                "dayNumber": 1,
                "meals": {
                    "breakfast": {"recipeName": "Yogurt Parfait", "calories": 300,
                                  "ingredients": [{"name": "greek yogurt", "amount": "1", "unit": "cup"}]},
                    "lunch": {"recipeName": "Lentil Salad", "calories": 500},
                    "dinner": {"recipeName": "Salmon Traybake", "calories": 650},
                },
            },
            {
                "dayNumber": 2,
                "meals": {
                    "breakfast": {"recipeName": "Yogurt Parfait", "calories": 300,
                                  "ingredients": [{"name": "greek yogurt", "amount": "1/2", "unit": "cup"}]},
                },
            },
        ]
    }
})

MEAL = {
    "type": "dinner",
    "recipeName": "Beef Chili",
    "ingredients": [{"name": "ground beef", "amount": "500", "unit": "g"}],
    "instructions": "Brown the beef. Simmer with beans.",
    "cookingTime": 45,
    "servings": 4,
    "calories": 550,
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Create a test client with temporary data files and no network access."""
    monkeypatch.setattr(config, 'INTERACTIONS_FILE', str(tmp_path / "interactions.json"))
    monkeypatch.setattr(config, 'MEAL_PLANS_FILE', str(tmp_path / "meal_plans.json"))

    # Keep external services out of the tests
    monkeypatch.setattr(main._recipe_generator, 'image_service', None)
    monkeypatch.setattr(main._substitution_service, 'spoonacular', FakeSpoonacular())
    monkeypatch.setattr(main._ai_client, 'generate', _failing_generate)
    main._pipeline.counter.reset()
    limiter.reset()

    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    with app.test_client() as client:
        yield client


def _failing_generate(prompt):
    raise AIClientError("API timeout after 30 seconds")


def _reply_with(monkeypatch, reply):
    monkeypatch.setattr(main._ai_client, 'generate', lambda prompt: reply)


def _create_interaction(client, mood="tired"):
    response = client.post('/api/mood', json={"mood": mood})
    return json.loads(response.data)["interaction"]


class TestSubmitMood:
    def test_generates_recipes(self, client, monkeypatch):
        _reply_with(monkeypatch, RECIPES_REPLY)
        response = client.post('/api/mood', json={"mood": "stressed", "context": "exams", "preferredCategory": "quick"})
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data["usedFallback"] is False
        assert data["interaction"]["mood"] == "stressed"
        assert data["interaction"]["totalRecipes"] == 3
        assert [r["recipeName"] for r in data["interaction"]["recipes"]] == ["Shepherd's Pie", "Pesto Pasta", "Quinoa Bowl"]

    def test_ai_failure_serves_fallback_recipes(self, client):
        response = client.post('/api/mood', json={"mood": "sad"})
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data["usedFallback"] is True
        assert [r["category"] for r in data["interaction"]["recipes"]] == ["comfort", "quick", "healthy"]

    @pytest.mark.parametrize("body", [{}, {"mood": ""}, {"mood": "   "}, {"mood": 5}])
    def test_mood_required(self, client, body):
        response = client.post('/api/mood', json=body)
        assert response.status_code == 400

        data = json.loads(response.data)
        assert data["error"] == "Validation error"
        assert data["message"] == "Mood is required"

    def test_invalid_json(self, client):
        response = client.post('/api/mood', data="{not json", content_type="application/json")
        assert response.status_code == 400
        assert json.loads(response.data)["error"] == "Invalid JSON"

    def test_rate_limited(self, client):
        for _ in range(10):
            assert client.post('/api/mood', json={"mood": "happy"}).status_code == 200
        assert client.post('/api/mood', json={"mood": "happy"}).status_code == 429


class TestMoodInteractions:
    def test_get_interaction(self, client):
        interaction = _create_interaction(client)

        response = client.get(f"/api/mood/{interaction['id']}")
        assert response.status_code == 200

        data = json.loads(response.data)["interaction"]
        assert data["id"] == interaction["id"]
        assert len(data["allRecipes"]) == 3
        assert data["selectedRecipe"]["id"] == "recipe_1"

    def test_get_unknown_interaction(self, client):
        response = client.get('/api/mood/does-not-exist')
        assert response.status_code == 404
        assert json.loads(response.data)["error"] == "Not found"

    def test_rate(self, client):
        interaction = _create_interaction(client)

        response = client.put(f"/api/mood/{interaction['id']}/rate", json={"rating": 5, "notes": "Great"})
        assert response.status_code == 200
        assert json.loads(response.data)["interaction"]["rating"] == 5

    @pytest.mark.parametrize("rating", [0, 6, "five", None])
    def test_rate_invalid(self, client, rating):
        interaction = _create_interaction(client)
        response = client.put(f"/api/mood/{interaction['id']}/rate", json={"rating": rating})
        assert response.status_code == 400

    def test_rate_unknown(self, client):
        response = client.put('/api/mood/nope/rate', json={"rating": 3})
        assert response.status_code == 404

    def test_select_recipe(self, client):
        interaction = _create_interaction(client)

        response = client.post('/api/mood/select-recipe', json={
            "interactionId": interaction["id"],
            "selectedCategory": "healthy",
        })
        assert response.status_code == 200
        assert json.loads(response.data)["selectedRecipe"]["recipeName"] == "Fresh Garden Salad"

    def test_select_recipe_validation(self, client):
        interaction = _create_interaction(client)
        assert client.post('/api/mood/select-recipe', json={"interactionId": interaction["id"]}).status_code == 400
        assert client.post('/api/mood/select-recipe', json={"selectedCategory": "quick"}).status_code == 400

    def test_select_unknown_recipe(self, client):
        interaction = _create_interaction(client)
        response = client.post('/api/mood/select-recipe', json={
            "interactionId": interaction["id"],
            "selectedRecipeId": "recipe_42",
        })
        assert response.status_code == 404

    def test_history_and_analytics(self, client):
        first = _create_interaction(client, "happy")
        _create_interaction(client, "sad")
        _create_interaction(client, "sad")
        client.put(f"/api/mood/{first['id']}/rate", json={"rating": 4})

        response = client.get('/api/mood/history?limit=2')
        assert response.status_code == 200

        data = json.loads(response.data)
        assert len(data["interactions"]) == 2
        assert data["pagination"] == {"current": 1, "pages": 2, "total": 3}
        assert data["analytics"]["favoriteMood"] == "sad"
        assert data["analytics"]["averageRating"] == 4

    def test_history_with_corrupt_file(self, client, tmp_path):
        (tmp_path / "interactions.json").write_text("{broken")

        response = client.get('/api/mood/history')
        assert response.status_code == 500
        assert json.loads(response.data)["error"] == "Storage error"


class TestMoodSubstitutions:
    def test_free_text_request(self, client):
        response = client.post('/api/mood/substitutions', json={"text": "I don't have eggs"})
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data["requestedIngredient"] == "eggs"
        assert data["substitutions"]["substitutes"][0]["ingredient"] == "flax egg"

    def test_ai_suggestions_ranked_first(self, client, monkeypatch):
        _reply_with(monkeypatch, '{"substitutes": [{"ingredient": "aquafaba", "ratio": "3 tbsp per egg"}]}')
        response = client.post('/api/mood/substitutions', json={"ingredient": "eggs", "recipeContext": "brownies"})

        substitutes = json.loads(response.data)["substitutions"]["substitutes"]
        assert substitutes[0] == {
            "ingredient": "aquafaba",
            "ratio": "3 tbsp per egg",
            "explanation": "",
            "flavorImpact": "",
            "availability": "common",
            "source": "ai",
            "confidence": "high",
        }

    def test_ingredient_required(self, client):
        response = client.post('/api/mood/substitutions', json={"text": "   "})
        assert response.status_code == 400


class TestMealPlans:
    def test_create_with_ai(self, client, monkeypatch):
        _reply_with(monkeypatch, PLAN_REPLY)
        response = client.post('/api/meal-plans', json={
            "name": "Spring week",
            "duration": 2,
            "startDate": "2026-04-06",
            "preferences": {"calorieTarget": 1900},
        })
        assert response.status_code == 201

        record = json.loads(response.data)["mealPlan"]
        assert record["usedFallback"] is False
        assert record["endDate"] == "2026-04-07"
        assert [d["date"] for d in record["plan"]["days"]] == ["2026-04-06", "2026-04-07"]
        assert record["generatedShoppingList"] == [{"item": "greek yogurt", "quantity": 1.5, "unit": "cup"}]

    def test_create_falls_back_when_ai_fails(self, client):
        response = client.post('/api/meal-plans', json={"name": "Week", "duration": 3, "startDate": "2026-04-06"})
        assert response.status_code == 201

        record = json.loads(response.data)["mealPlan"]
        assert record["usedFallback"] is True
        assert len(record["plan"]["days"]) == 3

    def test_create_manual(self, client, monkeypatch):
        def must_not_call(prompt):
            raise AssertionError("model should not be called")

        monkeypatch.setattr(main._ai_client, 'generate', must_not_call)
        response = client.post('/api/meal-plans', json={
            "name": "Manual", "duration": 2, "startDate": "2026-04-06", "generateWithAI": False,
        })
        assert response.status_code == 201
        assert json.loads(response.data)["mealPlan"]["generatedBy"] == "manual"

    @pytest.mark.parametrize("body", [
        {"duration": 7, "startDate": "2026-04-06"},
        {"name": "X", "startDate": "2026-04-06"},
        {"name": "X", "duration": 7},
        {"name": "X", "duration": 0, "startDate": "2026-04-06"},
        {"name": "X", "duration": 15, "startDate": "2026-04-06"},
        {"name": "X", "duration": "7", "startDate": "2026-04-06"},
        {"name": "X", "duration": 7, "startDate": "next monday"},
    ])
    def test_create_validation(self, client, body):
        response = client.post('/api/meal-plans', json=body)
        assert response.status_code == 400
        assert json.loads(response.data)["error"] == "Validation error"

    def test_list_and_get(self, client):
        created = json.loads(client.post('/api/meal-plans', json={
            "name": "Week", "duration": 1, "startDate": "2026-04-06",
        }).data)["mealPlan"]

        listing = json.loads(client.get('/api/meal-plans').data)
        assert [p["id"] for p in listing["mealPlans"]] == [created["id"]]
        assert listing["pagination"]["total"] == 1

        response = client.get(f"/api/meal-plans/{created['id']}")
        assert response.status_code == 200
        assert json.loads(response.data)["mealPlan"]["name"] == "Week"

    def test_get_unknown(self, client):
        assert client.get('/api/meal-plans/missing').status_code == 404


class TestMeals:
    def test_generate_meal(self, client, monkeypatch):
        _reply_with(monkeypatch, '{"meal": {"recipeName": "Miso Soup", "calories": 150}}')
        response = client.post('/api/meal-plans/generate-meal', json={
            "mealType": "lunch",
            "existingMeals": [MEAL, "junk"],
        })
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data["meal"]["recipeName"] == "Miso Soup"
        assert data["meal"]["type"] == "lunch"
        assert data["usedFallback"] is False

    def test_generate_meal_requires_valid_type(self, client):
        response = client.post('/api/meal-plans/generate-meal', json={"mealType": "brunch"})
        assert response.status_code == 400

    def test_customize_meal(self, client, monkeypatch):
        _reply_with(monkeypatch, '{"customizedMeal": {"recipeName": "Turkey Chili", "calories": 450}}')
        response = client.post('/api/meal-plans/customize-meal', json={
            "meal": MEAL,
            "modifications": {"protein": "turkey"},
        })
        assert response.status_code == 200

        meal = json.loads(response.data)["customizedMeal"]
        assert meal["recipeName"] == "Turkey Chili"
        assert meal["customized"] is True
        assert meal["type"] == "dinner"

    def test_customize_meal_applies_overrides_when_ai_fails(self, client):
        response = client.post('/api/meal-plans/customize-meal', json={
            "meal": MEAL,
            "modifications": {"servings": 2},
        })

        data = json.loads(response.data)
        assert data["usedFallback"] is True
        assert data["customizedMeal"]["recipeName"] == "Beef Chili"
        assert data["customizedMeal"]["servings"] == 2

    @pytest.mark.parametrize("body", [{"meal": MEAL}, {"modifications": {"servings": 2}}, {"meal": MEAL, "modifications": {}}])
    def test_customize_meal_validation(self, client, body):
        assert client.post('/api/meal-plans/customize-meal', json=body).status_code == 400

    def test_meal_substitutions(self, client):
        response = client.post('/api/meal-plans/substitutions', json={
            "meal": MEAL,
            "unavailableIngredients": ["ground beef", "saffron"],
        })
        assert response.status_code == 200

        substitutions = json.loads(response.data)["substitutions"]
        assert substitutions["ground beef"]["substitutes"][0]["ingredient"] == "ground turkey"
        assert substitutions["saffron"]["substitutes"][0]["source"] == "general"

    def test_meal_substitutions_validation(self, client):
        assert client.post('/api/meal-plans/substitutions', json={"meal": MEAL}).status_code == 400
        assert client.post('/api/meal-plans/substitutions', json={"unavailableIngredients": ["x"]}).status_code == 400


class TestMetrics:
    def test_fallback_counts(self, client):
        client.post('/api/mood', json={"mood": "sad"})
        client.post('/api/meal-plans/generate-meal', json={"mealType": "dinner"})

        data = json.loads(client.get('/api/metrics/fallbacks').data)
        assert data["total"] == 2
        assert {"shape": "recipeList", "reason": "ai_error", "count": 1} in data["fallbacks"]
        assert {"shape": "singleMeal", "reason": "ai_error", "count": 1} in data["fallbacks"]

    def test_csrf_token(self, client):
        data = json.loads(client.get('/api/csrf-token').data)
        assert data["csrfToken"]
