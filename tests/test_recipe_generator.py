import json

from moodchef import config
from moodchef.models import Preferences, ResponseShape
from moodchef.pipeline import REASON_AI_ERROR
from moodchef.recipe_generator import MoodRecipeGenerator
from tests.conftest import FakeAIClient, failing_client

RECIPES_REPLY = "```json\n" + json.dumps({
    "recipes": [
        {"category": "comfort", "recipeName": "Mac and Cheese", "cookingTime": 35, "calories": 650, "difficulty": "easy"},
        {"category": "quick", "recipeName": "Egg Fried Rice", "cookingTime": 15, "calories": 450, "difficulty": "easy"},
        {"category": "healthy", "recipeName": "Lentil Soup", "cookingTime": 40, "calories": 320, "difficulty": "medium"},
    ]
}) + "\n```"


class FakeImageService:
    def __init__(self):
        self.calls = []

    def get_recipe_image(self, recipe_name, category="food"):
        self.calls.append((recipe_name, category))
        return f"https://images.test/{category}.jpg"


class TestMoodRecipeGenerator:
    def test_generates_recipes_from_reply(self, pipeline):
        generator = MoodRecipeGenerator(FakeAIClient(RECIPES_REPLY), pipeline)
        result = generator.generate_recipes("stressed", "long day at work")

        assert result.used_fallback is False
        assert [r.name for r in result.value] == ["Mac and Cheese", "Egg Fried Rice", "Lentil Soup"]
        assert [r.score for r in result.value] == [20, 20, 14]
        assert result.value[0].image == config.DEFAULT_CATEGORY_IMAGES["comfort"]

    def test_prompt_includes_mood_context_and_restrictions(self, pipeline):
        ai = FakeAIClient(RECIPES_REPLY)
        preferences = Preferences(dietary_restrictions=["vegetarian"], allergies=["peanuts"])
        MoodRecipeGenerator(ai, pipeline).generate_recipes("happy", "celebrating", preferences)

        prompt = ai.prompts[0]
        assert "I am feeling happy." in prompt
        assert "celebrating" in prompt
        assert "vegetarian" in prompt
        assert "peanuts" in prompt

    def test_ai_error_serves_fallback(self, pipeline):
        result = MoodRecipeGenerator(failing_client(), pipeline).generate_recipes("sad")

        assert result.used_fallback is True
        assert result.reason == REASON_AI_ERROR
        assert [r.category for r in result.value] == ["comfort", "quick", "healthy"]
        assert "sad" in result.value[0].mood_explanation
        assert pipeline.counter.get(ResponseShape.RECIPE_LIST, REASON_AI_ERROR) == 1

    def test_unusable_reply_serves_fallback(self, pipeline):
        result = MoodRecipeGenerator(FakeAIClient("Here are some ideas: pasta, salad."), pipeline).generate_recipes("bored")

        assert result.used_fallback is True
        assert len(result.value) == 3

    def test_images_looked_up_per_recipe(self, pipeline):
        images = FakeImageService()
        result = MoodRecipeGenerator(FakeAIClient(RECIPES_REPLY), pipeline, images).generate_recipes("tired")

        assert images.calls == [
            ("Mac and Cheese", "comfort"),
            ("Egg Fried Rice", "quick"),
            ("Lentil Soup", "healthy"),
        ]
        assert result.value[2].image == "https://images.test/healthy.jpg"

    def test_images_added_to_fallback_recipes(self, pipeline):
        images = FakeImageService()
        result = MoodRecipeGenerator(failing_client(), pipeline, images).generate_recipes("tired")

        assert len(images.calls) == 3
        assert result.value[0].image == "https://images.test/comfort.jpg"
