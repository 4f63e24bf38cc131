"""Persisted mood interactions: the recipes offered for a mood and what the user did with them."""

import logging
import threading
import uuid
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from math import ceil
from pathlib import Path
from typing import Any

from moodchef.models import RecipeCandidate
from moodchef.storage import load_json, save_json

logger = logging.getLogger(__name__)

_ROOT_KEY = "interactions"

# Serialises read-modify-write cycles on the interactions file
_lock = threading.Lock()


class InteractionNotFound(Exception):
    """Raised when no interaction has the requested id."""
    pass


class RecipeNotFound(Exception):
    """Raised when an interaction has no recipe matching the selection."""
    pass


@dataclass
class Interaction:
    id: str
    mood: str
    context: str = ""
    recipes: list[dict[str, Any]] = field(default_factory=list)
    selected_recipe: dict[str, Any] | None = None
    rating: int | None = None
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    used_fallback: bool = False
    created_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Interaction":
        required = ["id", "mood"]
        missing = [f for f in required if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mood": self.mood,
            "context": self.context,
            "recipes": self.recipes,
            "totalRecipes": len(self.recipes),
            "selectedRecipe": self.selected_recipe,
            "rating": self.rating,
            "notes": self.notes,
            "tags": self.tags,
            "metadata": self.metadata,
            "usedFallback": self.used_fallback,
            "createdAt": self.created_at,
        }


def load_interactions(file_path: Path | str) -> list[Interaction]:
    return [Interaction.from_dict(item) for item in load_json(file_path, _ROOT_KEY)]


def save_interactions(file_path: Path | str, interactions: list[Interaction]) -> None:
    save_json(file_path, _ROOT_KEY, [asdict(interaction) for interaction in interactions])


def _find(interactions: list[Interaction], interaction_id: str) -> Interaction:
    for interaction in interactions:
        if interaction.id == interaction_id:
            return interaction
    raise InteractionNotFound(f"Interaction '{interaction_id}' not found")


def create_interaction(
    file_path: Path | str,
    mood: str,
    context: str | None,
    recipes: list[RecipeCandidate],
    used_fallback: bool = False,
    preferred_category: str | None = None,
) -> Interaction:
    """Record the recipes offered for a mood. The first recipe starts as the selection."""
    recipe_dicts = [recipe.to_dict() for recipe in recipes]
    interaction = Interaction(
        id=uuid.uuid4().hex,
        mood=mood,
        context=context or "",
        recipes=recipe_dicts,
        selected_recipe=recipe_dicts[0] if recipe_dicts else None,
        tags=[mood, "multi-recipe", "ai-enhanced"],
        metadata={
            "totalRecipes": len(recipe_dicts),
            "categories": [r["category"] for r in recipe_dicts],
            "preferredCategory": preferred_category,
        },
        used_fallback=used_fallback,
        created_at=datetime.now(timezone.utc).isoformat(),
    )

    with _lock:
        interactions = load_interactions(file_path)
        interactions.append(interaction)
        save_interactions(file_path, interactions)

    logger.info("Interaction created", extra={"interaction_id": interaction.id, "mood": mood})
    return interaction


def get_interaction(file_path: Path | str, interaction_id: str) -> Interaction:
    return _find(load_interactions(file_path), interaction_id)


def rate_interaction(
    file_path: Path | str,
    interaction_id: str,
    rating: Any,
    notes: str | None = None,
    rated_category: str | None = None,
) -> Interaction:
    """Store a 1-5 rating.

    Raises:
        ValueError: If rating is not an integer from 1 to 5
        InteractionNotFound: If the id is unknown
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")

    with _lock:
        interactions = load_interactions(file_path)
        interaction = _find(interactions, interaction_id)
        interaction.rating = rating
        interaction.notes = notes or ""
        if rated_category:
            interaction.metadata["ratedCategory"] = rated_category
        save_interactions(file_path, interactions)

    return interaction


def select_recipe(
    file_path: Path | str,
    interaction_id: str,
    recipe_id: str | None = None,
    category: str | None = None,
) -> Interaction:
    """Mark one of the offered recipes as the user's choice, by id or by category.

    Raises:
        ValueError: If neither recipe_id nor category is given
        InteractionNotFound: If the id is unknown
        RecipeNotFound: If no offered recipe matches
    """
    if not recipe_id and not category:
        raise ValueError("Selected recipe id or category is required")

    with _lock:
        interactions = load_interactions(file_path)
        interaction = _find(interactions, interaction_id)

        if recipe_id:
            selected = next((r for r in interaction.recipes if r.get("id") == recipe_id), None)
        else:
            selected = next((r for r in interaction.recipes if r.get("category") == category), None)
        if selected is None:
            raise RecipeNotFound("Selected recipe not found")

        interaction.selected_recipe = selected
        interaction.metadata.update({
            "selectedRecipeId": selected.get("id"),
            "selectedCategory": selected.get("category"),
            "selectionTimestamp": datetime.now(timezone.utc).isoformat(),
        })
        save_interactions(file_path, interactions)

    return interaction


def list_history(
    file_path: Path | str,
    page: int = 1,
    limit: int = 10,
    category: str | None = None,
) -> tuple[list[Interaction], dict[str, int]]:
    """Newest-first page of interactions, optionally only those whose selection is in ``category``."""
    page = max(page, 1)
    limit = max(limit, 1)

    interactions = load_interactions(file_path)
    if category:
        interactions = [
            i for i in interactions
            if (i.selected_recipe or {}).get("category") == category
        ]
    # Reversed first so same-timestamp entries still come out newest first
    interactions.reverse()
    interactions.sort(key=lambda i: i.created_at, reverse=True)

    total = len(interactions)
    start = (page - 1) * limit
    pagination = {"current": page, "pages": ceil(total / limit), "total": total}
    return interactions[start:start + limit], pagination


def compute_analytics(interactions: list[Interaction]) -> dict[str, Any]:
    """Summarise moods, selected categories and ratings across interactions.

    Ties for favourite go to the value seen first.
    """
    analytics: dict[str, Any] = {
        "totalRecipes": len(interactions),
        "averageRating": 0,
        "favoriteCategory": None,
        "favoriteMood": None,
        "categoryBreakdown": {},
        "moodBreakdown": {},
        "ratingDistribution": {str(star): 0 for star in range(1, 6)},
    }
    if not interactions:
        return analytics

    moods = Counter(i.mood for i in interactions)
    categories = Counter((i.selected_recipe or {}).get("category") or "unknown" for i in interactions)
    ratings = [i.rating for i in interactions if i.rating]

    for rating in ratings:
        analytics["ratingDistribution"][str(rating)] += 1

    analytics["averageRating"] = round(sum(ratings) / len(ratings), 1) if ratings else 0
    analytics["categoryBreakdown"] = dict(categories)
    analytics["moodBreakdown"] = dict(moods)
    analytics["favoriteCategory"] = categories.most_common(1)[0][0]
    analytics["favoriteMood"] = moods.most_common(1)[0][0]
    return analytics
