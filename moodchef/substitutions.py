"""Ingredient substitution suggestions.

Suggestions come from three places, in order of preference: the generative
model, the Spoonacular substitutes endpoint and the static table in
``moodchef.fallbacks``. They are merged, deduplicated by ingredient name,
ranked by confidence and capped at five.
"""

import logging
import re

import requests

from moodchef.ai_client import AIClientError, GenerativeTextClient
from moodchef.fallbacks import COMMON_SUBSTITUTIONS, find_common_substitutes
from moodchef.models import GenerationContext, ResponseShape, SubstitutionSet, SubstitutionSuggestion
from moodchef.normalizer import DEFAULT_SUBSTITUTION_TIPS, rank_substitutions
from moodchef.pipeline import REASON_AI_ERROR, ResponsePipeline
from moodchef.prompts import build_substitution_prompt

logger = logging.getLogger(__name__)

__all__ = [
    "COMMON_SUBSTITUTIONS",
    "SpoonacularClient",
    "SubstitutionService",
    "parse_substitution_request",
]

# Tried in order; the first match names the ingredient.
_REQUEST_PATTERNS = (
    re.compile(r"(?:don['’]?t have|\bno|missing|out of)\s+(?:any\s+)?([a-z][a-z\s-]*?)(?=\s+(?:available|left|today|at home)\b|[?.!,]|$)", re.IGNORECASE),
    re.compile(r"(?:substitute|replace)\s+(?:for\s+)?([a-z][a-z\s-]*?)(?=\s+(?:with|in)\b|[?.!,]|$)", re.IGNORECASE),
    re.compile(r"(?:instead of)\s+([a-z][a-z\s-]*?)(?=[?.!,]|$)", re.IGNORECASE),
)


def parse_substitution_request(text: str) -> str:
    """Pull the ingredient name out of a free-text request.

    ``"I don't have zucchini"`` gives ``"zucchini"``. Text that matches no
    pattern is taken to be the ingredient itself.
    """
    for pattern in _REQUEST_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip().lower()
    return text.strip().lower()


class SpoonacularClient:
    """Client for the Spoonacular ingredient substitutes endpoint."""

    BASE_URL = 'https://api.spoonacular.com'

    def __init__(self, api_key: str | None = None):
        self.session = requests.Session()
        self.api_key = api_key

    def get_substitutes(self, ingredient: str) -> list[str]:
        """Substitute descriptions for ``ingredient``; empty on any error or without a key."""
        if not self.api_key:
            return []
        try:
            response = self.session.get(
                f'{self.BASE_URL}/food/ingredients/substitutes',
                params={'ingredientName': ingredient, 'apiKey': self.api_key},
                timeout=5
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Spoonacular substitution lookup failed", extra={"ingredient": ingredient, "error": str(e)})
            return []

        substitutes = data.get('substitutes') if isinstance(data, dict) else None
        if not isinstance(substitutes, list):
            return []
        return [s.strip() for s in substitutes if isinstance(s, str) and s.strip()]


class SubstitutionService:
    """Merge model, Spoonacular and table suggestions for one ingredient."""

    def __init__(
        self,
        ai_client: GenerativeTextClient,
        pipeline: ResponsePipeline,
        spoonacular: SpoonacularClient | None = None,
    ):
        self.ai_client = ai_client
        self.pipeline = pipeline
        self.spoonacular = spoonacular or SpoonacularClient()

    def get_substitutions(
        self,
        ingredient: str,
        recipe_context: str | None = None,
        dietary_restrictions: list[str] | None = None,
    ) -> SubstitutionSet:
        context = GenerationContext(ingredient=ingredient)
        ai_suggestions: list[SubstitutionSuggestion] = []
        tips = DEFAULT_SUBSTITUTION_TIPS
        result = None

        try:
            raw = self.ai_client.generate(
                build_substitution_prompt(ingredient, recipe_context, dietary_restrictions or [])
            )
        except AIClientError:
            logger.warning("Substitution model call failed", extra={"ingredient": ingredient})
        else:
            result = self.pipeline.run(raw, ResponseShape.SUBSTITUTION_SET, context)
            # A fallback set is the table/generic answer; it is rebuilt below
            if not result.used_fallback:
                ai_suggestions = result.value.substitutes
                tips = result.value.tips

        merged = list(ai_suggestions)
        merged.extend(
            SubstitutionSuggestion(
                ingredient=name,
                explanation=f"Common substitute for {ingredient}",
                source="database",
                confidence="medium",
            )
            for name in self.spoonacular.get_substitutes(ingredient)
        )
        merged.extend(
            SubstitutionSuggestion(
                ingredient=entry["ingredient"],
                ratio=entry["ratio"],
                explanation=entry["explanation"],
                source="database",
                confidence="high",
            )
            for entry in find_common_substitutes(ingredient) or []
        )

        if not merged:
            if result is not None:
                return result.value
            return self.pipeline.fallback(ResponseShape.SUBSTITUTION_SET, context, REASON_AI_ERROR).value

        return SubstitutionSet(
            original_ingredient=ingredient,
            substitutes=rank_substitutions(merged),
            tips=tips,
        )
