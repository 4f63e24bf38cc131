"""Tests for ingredient substitution lookup and merging."""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from moodchef.fallbacks import GENERIC_SUBSTITUTION_TIPS
from moodchef.models import ResponseShape
from moodchef.pipeline import REASON_AI_ERROR, REASON_EXTRACTION_MISS
from moodchef.substitutions import SpoonacularClient, SubstitutionService, parse_substitution_request
from tests.conftest import FakeAIClient, FakeSpoonacular, failing_client


def _ai_reply(*names, tips="Use less if it tastes strong."):
    return json.dumps({
        "substitutes": [{"ingredient": name, "ratio": "1:1", "explanation": "works"} for name in names],
        "tips": tips,
    })


class TestParseSubstitutionRequest:
    @pytest.mark.parametrize("text,expected", [
        ("I don't have zucchini", "zucchini"),
        ("I dont have any heavy cream at home", "heavy cream"),
        ("No eggs available", "eggs"),
        ("I'm out of soy sauce.", "soy sauce"),
        ("missing butter today", "butter"),
        ("What can I substitute for buttermilk?", "buttermilk"),
        ("replace sour cream with something", "sour cream"),
        ("What can I use instead of Parmesan cheese?", "parmesan cheese"),
        ("  Garlic ", "garlic"),
    ])
    def test_extracts_ingredient(self, text, expected):
        assert parse_substitution_request(text) == expected


class TestSpoonacularClient:
    def test_without_key_makes_no_request(self):
        client = SpoonacularClient(api_key=None)
        with patch.object(client.session, "get") as mock_get:
            assert client.get_substitutes("butter") == []
        mock_get.assert_not_called()

    def test_returns_substitutes(self):
        client = SpoonacularClient(api_key="key")
        response = Mock()
        response.json.return_value = {"status": "success", "substitutes": ["1 cup margarine", " ", 3]}
        with patch.object(client.session, "get", return_value=response) as mock_get:
            assert client.get_substitutes("butter") == ["1 cup margarine"]

        assert mock_get.call_args.kwargs["params"] == {"ingredientName": "butter", "apiKey": "key"}

    def test_request_error_returns_empty(self):
        client = SpoonacularClient(api_key="key")
        with patch.object(client.session, "get", side_effect=requests.ConnectionError("down")):
            assert client.get_substitutes("butter") == []

    def test_unexpected_payload_returns_empty(self):
        client = SpoonacularClient(api_key="key")
        response = Mock()
        response.json.return_value = {"status": "failure", "message": "Could not find any substitutes"}
        with patch.object(client.session, "get", return_value=response):
            assert client.get_substitutes("unobtainium") == []


class TestSubstitutionService:
    def test_merges_ai_database_and_table(self, pipeline):
        service = SubstitutionService(
            FakeAIClient(_ai_reply("ghee")),
            pipeline,
            FakeSpoonacular(["margarine"]),
        )
        result = service.get_substitutions("butter", "pound cake")

        assert result.original_ingredient == "butter"
        assert [s.ingredient for s in result.substitutes] == ["ghee", "olive oil", "applesauce", "coconut oil", "margarine"]
        assert result.substitutes[0].source == "ai"
        assert result.substitutes[-1].confidence == "medium"
        assert result.tips == "Use less if it tastes strong."

    def test_duplicates_keep_first_source(self, pipeline):
        service = SubstitutionService(FakeAIClient(_ai_reply("Oat Milk")), pipeline, FakeSpoonacular())
        result = service.get_substitutions("milk")

        names = [s.ingredient.lower() for s in result.substitutes]
        assert names.count("oat milk") == 1
        assert result.substitutes[0].source == "ai"

    def test_capped_at_five(self, pipeline):
        service = SubstitutionService(
            FakeAIClient(_ai_reply("a", "b", "c", "d")),
            pipeline,
            FakeSpoonacular(["e", "f"]),
        )
        assert len(service.get_substitutions("milk").substitutes) == 5

    def test_ai_failure_uses_table(self, pipeline):
        service = SubstitutionService(failing_client(), pipeline, FakeSpoonacular())
        result = service.get_substitutions("eggs")

        assert result.substitutes
        assert all(s.source == "database" for s in result.substitutes)

    def test_unusable_reply_does_not_leak_fallback_entries(self, pipeline):
        service = SubstitutionService(FakeAIClient("I can't help"), pipeline, FakeSpoonacular(["margarine"]))
        result = service.get_substitutions("saffron")

        assert [s.ingredient for s in result.substitutes] == ["margarine"]
        assert pipeline.counter.get(ResponseShape.SUBSTITUTION_SET, REASON_EXTRACTION_MISS) == 1

    def test_nothing_found_returns_generic_fallback(self, pipeline):
        service = SubstitutionService(FakeAIClient("no json"), pipeline, FakeSpoonacular())
        result = service.get_substitutions("saffron")

        assert len(result.substitutes) == 1
        assert result.substitutes[0].confidence == "low"
        assert result.tips == GENERIC_SUBSTITUTION_TIPS

    def test_nothing_found_after_ai_error_counts_fallback(self, pipeline):
        service = SubstitutionService(failing_client(), pipeline, FakeSpoonacular())
        result = service.get_substitutions("saffron")

        assert result.substitutes[0].source == "general"
        assert pipeline.counter.get(ResponseShape.SUBSTITUTION_SET, REASON_AI_ERROR) == 1

    def test_prompt_mentions_restrictions(self, pipeline):
        ai = FakeAIClient(_ai_reply("ghee"))
        SubstitutionService(ai, pipeline, FakeSpoonacular()).get_substitutions("butter", "cookies", ["vegan"])

        assert "butter" in ai.prompts[0]
        assert "vegan" in ai.prompts[0]
