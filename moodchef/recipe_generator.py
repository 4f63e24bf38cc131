"""Mood-based recipe suggestions."""

import logging

from moodchef import config
from moodchef.ai_client import AIClientError, GenerativeTextClient
from moodchef.images import ImageService
from moodchef.models import GenerationContext, Preferences, ResponseShape
from moodchef.pipeline import REASON_AI_ERROR, PipelineResult, ResponsePipeline
from moodchef.prompts import build_multi_recipe_prompt

logger = logging.getLogger(__name__)


class MoodRecipeGenerator:
    """Ask the model for comfort/quick/healthy recipes that fit a mood."""

    def __init__(
        self,
        ai_client: GenerativeTextClient,
        pipeline: ResponsePipeline,
        image_service: ImageService | None = None,
    ):
        self.ai_client = ai_client
        self.pipeline = pipeline
        self.image_service = image_service

    def generate_recipes(
        self,
        mood: str,
        context: str | None = None,
        preferences: Preferences | None = None,
        count: int = config.RECIPE_COUNT,
    ) -> PipelineResult:
        """Generate recipe candidates for ``mood``.

        Returns:
            PipelineResult whose value is a list of RecipeCandidate. When the
            model is unreachable or its reply unusable the three static
            recipes are returned with ``used_fallback`` set.
        """
        preferences = preferences or Preferences()
        generation_context = GenerationContext(mood=mood)
        prompt = build_multi_recipe_prompt(mood, context, preferences, count)

        try:
            raw = self.ai_client.generate(prompt)
        except AIClientError as e:
            result = self.pipeline.fallback(ResponseShape.RECIPE_LIST, generation_context, REASON_AI_ERROR, detail=str(e))
        else:
            result = self.pipeline.run(raw, ResponseShape.RECIPE_LIST, generation_context)

        if self.image_service is not None:
            for recipe in result.value:
                recipe.image = self.image_service.get_recipe_image(recipe.name, recipe.category)

        logger.info(
            "Generated mood recipes",
            extra={"mood": mood, "count": len(result.value), "used_fallback": result.used_fallback},
        )
        return result
