"""Multi-day meal plans, single meals, customization and per-meal substitutions."""

import logging
from datetime import date, timedelta
from typing import Any

from moodchef.ai_client import AIClientError, GenerativeTextClient
from moodchef.fallbacks import modified_meal
from moodchef.models import (
    GenerationContext,
    MealPlan,
    MealPlanDay,
    MealRecord,
    Preferences,
    ResponseShape,
    SubstitutionSet,
)
from moodchef.pipeline import REASON_AI_ERROR, PipelineResult, ResponsePipeline
from moodchef.prompts import (
    build_customization_prompt,
    build_meal_plan_prompt,
    build_single_meal_prompt,
)
from moodchef.substitutions import SubstitutionService

logger = logging.getLogger(__name__)

MAX_PLAN_DAYS = 14
# Recent meals listed in the single-meal prompt to avoid repeats
RECENT_MEALS_LIMIT = 5


def calculate_day_calories(day: MealPlanDay) -> int:
    return sum(meal.calories for meal in day.all_meals)


def empty_meal_plan(duration: int, start_date: date | None = None) -> MealPlan:
    """Plan with dated but empty days, for plans the user fills in by hand."""
    start_date = start_date or date.today()
    return MealPlan(
        days=[
            MealPlanDay(day_number=i + 1, label=f"Day {i + 1}", date=start_date + timedelta(days=i))
            for i in range(duration)
        ],
        tips="You can manually add meals to this plan.",
    )


class MealPlannerService:
    def __init__(
        self,
        ai_client: GenerativeTextClient,
        pipeline: ResponsePipeline,
        substitution_service: SubstitutionService,
    ):
        self.ai_client = ai_client
        self.pipeline = pipeline
        self.substitution_service = substitution_service

    def _generate(self, prompt: str, shape: ResponseShape, context: GenerationContext) -> PipelineResult:
        try:
            raw = self.ai_client.generate(prompt)
        except AIClientError as e:
            return self.pipeline.fallback(shape, context, REASON_AI_ERROR, detail=str(e))
        return self.pipeline.run(raw, shape, context)

    def generate_meal_plan(
        self,
        preferences: Preferences | None = None,
        duration: int = 7,
        start_date: date | None = None,
    ) -> PipelineResult:
        """Generate a ``duration``-day plan; days are dated from ``start_date`` (today by default).

        Extra days returned by the model are dropped.
        """
        preferences = preferences or Preferences()
        start_date = start_date or date.today()
        context = GenerationContext(
            duration=duration,
            include_snacks=preferences.include_snacks,
            calorie_target=preferences.calorie_target,
        )

        result = self._generate(build_meal_plan_prompt(preferences, duration), ResponseShape.MEAL_PLAN, context)

        plan: MealPlan = result.value
        plan.days = plan.days[:duration]
        for offset, day in enumerate(plan.days):
            day.date = start_date + timedelta(days=offset)

        logger.info(
            "Generated meal plan",
            extra={"duration": duration, "days": len(plan.days), "used_fallback": result.used_fallback},
        )
        return result

    def generate_single_meal(
        self,
        meal_type: str,
        preferences: Preferences | None = None,
        existing_meals: list[MealRecord] | None = None,
    ) -> PipelineResult:
        preferences = preferences or Preferences()
        recent = (existing_meals or [])[-RECENT_MEALS_LIMIT:]
        context = GenerationContext(meal_type=meal_type, calorie_target=preferences.calorie_target)
        return self._generate(
            build_single_meal_prompt(meal_type, preferences, recent),
            ResponseShape.SINGLE_MEAL,
            context,
        )

    def customize_meal(
        self,
        original: MealRecord,
        modifications: dict[str, Any],
        preferences: Preferences | None = None,
    ) -> PipelineResult:
        """Rework a meal with the model.

        If the model is unreachable or its reply unusable, the simple
        overrides in ``modifications`` are applied to the original meal
        instead of serving an unrelated static meal.
        """
        preferences = preferences or Preferences()
        context = GenerationContext(meal_type=original.type, calorie_target=preferences.calorie_target)
        prompt = build_customization_prompt(original, modifications, preferences)

        try:
            raw = self.ai_client.generate(prompt)
        except AIClientError:
            self.pipeline.counter.increment(ResponseShape.SINGLE_MEAL, REASON_AI_ERROR)
            logger.warning(
                "Meal customization model call failed, applying modifications locally",
                extra={"recipe_name": original.recipe_name},
            )
            return PipelineResult(modified_meal(original, modifications), used_fallback=True, reason=REASON_AI_ERROR)

        result = self.pipeline.run(raw, ResponseShape.SINGLE_MEAL, context)
        if result.used_fallback:
            return PipelineResult(modified_meal(original, modifications), used_fallback=True, reason=result.reason)

        meal: MealRecord = result.value
        meal.customized = True
        if not meal.modifications:
            meal.modifications = ", ".join(modifications) + " modified" if modifications else ""
        return result

    def suggest_ingredient_substitutions(
        self,
        meal: MealRecord,
        unavailable: list[str],
        preferences: Preferences | None = None,
    ) -> dict[str, SubstitutionSet]:
        """Substitutions for each unavailable ingredient, one lookup per ingredient."""
        preferences = preferences or Preferences()
        recipe_context = f"{meal.recipe_name}: {meal.instructions}"
        return {
            ingredient: self.substitution_service.get_substitutions(
                ingredient, recipe_context, preferences.dietary_restrictions
            )
            for ingredient in unavailable
        }
