"""Aggregate the ingredients of a meal plan into a shopping list."""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any

from rapidfuzz import fuzz, process

from moodchef.models import MealIngredient, MealPlan

logger = logging.getLogger(__name__)

# Names scoring at or above this (0-100) with token_sort_ratio are one
# ingredient. Whole-string score: "milk" and "almond milk" stay separate.
_FUZZY_THRESHOLD = 85

# display unit -> (family, size in the family's base unit: ml or g)
_MEASURES: dict[str, tuple[str, float]] = {
    "ml": ("volume", 1),
    "tsp": ("volume", 4.92892),
    "tbsp": ("volume", 14.7868),
    "fl oz": ("volume", 29.5735),
    "cup": ("volume", 236.588),
    "pt": ("volume", 473.176),
    "qt": ("volume", 946.353),
    "l": ("volume", 1000),
    "g": ("weight", 1),
    "oz": ("weight", 28.3495),
    "lb": ("weight", 453.592),
    "kg": ("weight", 1000),
}

# Largest unit first; a total at or above the threshold (in base units) is
# shown in that unit. A quarter cup and up reads better in cups than tbsp.
_READABLE: dict[str, list[tuple[float, str]]] = {
    "volume": [(1000, "l"), (59.1471, "cup"), (14.7868, "tbsp"), (0, "tsp")],
    "weight": [(1000, "kg"), (453.592, "lb"), (28.3495, "oz"), (0, "g")],
}

_UNIT_SPELLINGS: dict[str, tuple[str, ...]] = {
    "ml": ("milliliter", "milliliters", "millilitre", "millilitres"),
    "tsp": ("teaspoon", "teaspoons", "tsps"),
    "tbsp": ("tablespoon", "tablespoons", "tbsps"),
    "fl oz": ("fluid ounce", "fluid ounces"),
    "cup": ("cups",),
    "pt": ("pint", "pints"),
    "qt": ("quart", "quarts"),
    "l": ("liter", "liters", "litre", "litres"),
    "g": ("gram", "grams"),
    "kg": ("kilogram", "kilograms"),
    "oz": ("ounce", "ounces"),
    "lb": ("pound", "pounds", "lbs"),
    "slice": ("slices",),
    "piece": ("pieces",),
    "clove": ("cloves",),
    "can": ("cans",),
    "leaf": ("leaves",),
}
_UNIT_ALIASES = {spelling: unit for unit, spellings in _UNIT_SPELLINGS.items() for spelling in spellings}

# Buy it, but the amount means nothing on a shopping list
_NO_QUANTITY_UNITS = frozenset({"to taste", "to serve", "as needed", "as required", "pinch", "pinches"})

# "2", "1.5", "1/2", "1 1/2"
_AMOUNT = re.compile(r"^\s*(?:(\d+(?:\.\d+)?)(?:\s+(\d+)\s*/\s*(\d+))?|(\d+)\s*/\s*(\d+))\s*$")


def parse_amount(amount: str | None) -> float | None:
    """Parse a model-written amount such as ``"2"``, ``"1/2"`` or ``"1 1/2"``.

    Returns None for anything else ("a handful", "", "2-3").
    """
    if not amount:
        return None
    match = _AMOUNT.match(amount)
    if not match:
        return None
    whole, mixed_num, mixed_den, num, den = match.groups()
    if num is not None:
        return float(Fraction(int(num), int(den))) if int(den) else None
    value = Fraction(whole)
    if mixed_num is not None:
        if not int(mixed_den):
            return None
        value += Fraction(int(mixed_num), int(mixed_den))
    return float(value)


def _normalize_unit(unit: str | None) -> str | None:
    """Display form of a unit; ``""`` for no unit, None when the quantity should be dropped."""
    key = (unit or "").strip().lower().rstrip(".")
    if key in ("", "serving", "servings"):
        return ""
    if key in _NO_QUANTITY_UNITS:
        return None
    return _UNIT_ALIASES.get(key, key)


def _readable(family: str, base_total: float) -> tuple[float, str]:
    for threshold, unit in _READABLE[family]:
        if base_total >= threshold:
            return base_total / _MEASURES[unit][1], unit
    # Unreachable: every ladder ends at 0
    raise ValueError(f"Negative total for {family}")


def _combine_entries(entries: list[tuple[float, str]]) -> list[tuple[float, str]]:
    """Collapse (quantity, unit) pairs for one ingredient.

    Equal units are summed. Different units of the same family (volume or
    weight) are converted and shown in the most readable unit. Anything else
    (no unit, "slice", "medium") stays a separate line per unit.
    """
    totals: dict[str, float] = {}
    for qty, unit in entries:
        totals[unit] = totals.get(unit, 0.0) + qty

    combined: list[tuple[float, str]] = []
    families: dict[str, list[str]] = {}
    for unit, qty in totals.items():
        if unit in _MEASURES:
            families.setdefault(_MEASURES[unit][0], []).append(unit)
        else:
            combined.append((qty, unit))

    for family, units in families.items():
        if len(units) == 1:
            combined.append((totals[units[0]], units[0]))
        else:
            combined.append(_readable(family, sum(totals[u] * _MEASURES[u][1] for u in units)))
    return combined


def _normalize_name(name: str) -> str:
    """Grouping key: accents stripped, lowercased, a simple plural ``s`` dropped.

    Only words longer than four letters lose the ``s`` ("onions", not "oats").
    """
    decomposed = unicodedata.normalize("NFKD", name.strip())
    key = "".join(c for c in decomposed if not unicodedata.combining(c)).lower()
    if len(key) > 4 and key.endswith("s") and not key.endswith("ss"):
        key = key[:-1]
    return key


@dataclass
class ShoppingListItem:
    item: str
    quantity: float | None  # None = buy it but no meaningful quantity
    unit: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": self.item,
            "quantity": round(self.quantity, 2) if self.quantity is not None else None,
            "unit": self.unit,
        }


@dataclass
class ShoppingList:
    items: list[ShoppingListItem]

    def to_dict(self) -> dict[str, Any]:
        return {"items": [item.to_dict() for item in self.items]}


@dataclass
class _Aggregate:
    display_name: str
    entries: list[tuple[float, str]] = field(default_factory=list)
    # Set once any use has no usable quantity; the line then has none either
    quantity_less: bool = False

    def lines(self) -> list[ShoppingListItem]:
        if self.quantity_less or not self.entries:
            return [ShoppingListItem(item=self.display_name, quantity=None, unit="")]
        return [
            ShoppingListItem(item=self.display_name, quantity=qty, unit=unit)
            for qty, unit in _combine_entries(self.entries)
        ]


def _aggregate(ingredients: list[MealIngredient]) -> list[_Aggregate]:
    """Group ingredients by name. The first spelling seen names the group;
    later names join the closest existing group if similar enough."""
    groups: dict[str, _Aggregate] = {}
    for ingredient in ingredients:
        key = _normalize_name(ingredient.name)
        if not key:
            continue
        if key not in groups:
            match = process.extractOne(key, list(groups), scorer=fuzz.token_sort_ratio, score_cutoff=_FUZZY_THRESHOLD)
            if match is not None:
                key = match[0]
            else:
                groups[key] = _Aggregate(display_name=ingredient.name.strip())

        unit = _normalize_unit(ingredient.unit)
        qty = parse_amount(ingredient.amount)
        if unit is None or qty is None:
            groups[key].quantity_less = True
        else:
            groups[key].entries.append((qty, unit))
    return list(groups.values())


def generate_shopping_list(meal_plan: MealPlan) -> ShoppingList:
    """Aggregate the ingredients of every meal in a plan.

    Same-name ingredients are combined into one line; compatible units
    (tsp/tbsp/cup, oz/lb) are converted and summed. Amounts that cannot be
    parsed make the ingredient a quantity-less line.
    """
    ingredients = [ing for day in meal_plan.days for meal in day.all_meals for ing in meal.ingredients]
    logger.debug("Generating shopping list", extra={"ingredient_count": len(ingredients)})

    items = [line for group in _aggregate(ingredients) for line in group.lines()]
    items.sort(key=lambda x: x.item.lower())
    logger.info("Shopping list generated", extra={"item_count": len(items)})
    return ShoppingList(items=items)
