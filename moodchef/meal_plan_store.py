"""Persisted meal plans."""

import logging
import threading
import uuid
from datetime import date, datetime, timedelta, timezone
from math import ceil
from pathlib import Path
from typing import Any

from moodchef.models import MealPlan
from moodchef.shopping_list import generate_shopping_list
from moodchef.storage import load_json, save_json

logger = logging.getLogger(__name__)

_ROOT_KEY = "mealPlans"

_lock = threading.Lock()


class MealPlanNotFound(Exception):
    """Raised when no meal plan has the requested id."""
    pass


def create_meal_plan(
    file_path: Path | str,
    name: str,
    plan: MealPlan,
    start_date: date,
    duration: int,
    description: str = "",
    preferences: dict[str, Any] | None = None,
    generated_by: str = "ai",
    used_fallback: bool = False,
) -> dict[str, Any]:
    """Store a plan together with a shopping list aggregated from its meals."""
    record = {
        "id": uuid.uuid4().hex,
        "name": name,
        "description": description,
        "startDate": start_date.isoformat(),
        "endDate": (start_date + timedelta(days=duration - 1)).isoformat(),
        "duration": duration,
        "preferences": preferences or {},
        "status": "draft",
        "generatedBy": generated_by,
        "usedFallback": used_fallback,
        "plan": plan.to_dict(),
        "generatedShoppingList": generate_shopping_list(plan).to_dict()["items"],
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }

    with _lock:
        plans = load_json(file_path, _ROOT_KEY)
        plans.append(record)
        save_json(file_path, _ROOT_KEY, plans)

    logger.info("Meal plan created", extra={"meal_plan_id": record["id"], "duration": duration})
    return record


def get_meal_plan(file_path: Path | str, plan_id: str) -> dict[str, Any]:
    for record in load_json(file_path, _ROOT_KEY):
        if record.get("id") == plan_id:
            return record
    raise MealPlanNotFound(f"Meal plan '{plan_id}' not found")


def list_meal_plans(
    file_path: Path | str,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
) -> tuple[list[dict[str, Any]], dict[str, int]]:
    """Newest-first page of plan summaries (without days or shopping lists)."""
    page = max(page, 1)
    limit = max(limit, 1)

    plans = load_json(file_path, _ROOT_KEY)
    if status:
        plans = [p for p in plans if p.get("status") == status]
    plans.reverse()
    plans.sort(key=lambda p: p.get("createdAt", ""), reverse=True)

    summary_keys = ("id", "name", "description", "startDate", "endDate", "duration", "status", "createdAt", "preferences")
    start = (page - 1) * limit
    summaries = [{key: p.get(key) for key in summary_keys} for p in plans[start:start + limit]]
    return summaries, {"current": page, "pages": ceil(len(plans) / limit), "total": len(plans)}
