"""
Diner-side dish filtering for the public menu.

Rules:
    - a dish containing any selected allergen (case-insensitive) is hidden
    - "vegan" keeps only vegan dishes; "vegetarian" alone keeps vegetarian
      and vegan dishes
    - spicy is tri-state: None matches everything, otherwise an exact match
    - selected badges must all be present on the dish
"""

from dataclasses import dataclass, field
from typing import Optional

ALLERGEN_OPTIONS = [
    ("gluten", "Gluten"),
    ("dairy", "Dairy"),
    ("eggs", "Eggs"),
    ("fish", "Fish"),
    ("shellfish", "Shellfish"),
    ("nuts", "Nuts"),
    ("soy", "Soy"),
    ("pork", "Pork"),
    ("beef", "Beef"),
    ("poultry", "Poultry"),
]

DIETARY_OPTIONS = [
    ("vegetarian", "Vegetarian"),
    ("vegan", "Vegan"),
]

# badge -> dish column
BADGE_FIELDS = {
    "new": "is_new",
    "special": "is_special",
    "popular": "is_popular",
    "chef": "is_chef_recommendation",
}

BADGE_LABELS = {
    "new": "New",
    "special": "Special",
    "popular": "Popular",
    "chef": "Chef's Pick",
}


@dataclass
class FilterSelection:
    allergens: list[str] = field(default_factory=list)
    dietary: list[str] = field(default_factory=list)
    spicy: Optional[bool] = None
    badges: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.allergens or self.dietary or self.badges) and self.spicy is None

    @classmethod
    def from_query(
        cls,
        exclude: Optional[str] = None,
        diet: Optional[str] = None,
        spicy: Optional[str] = None,
        badge: Optional[str] = None,
    ) -> "FilterSelection":
        """Build a selection from comma-separated query parameters; unknown values are dropped."""

        def split(value: Optional[str], allowed) -> list[str]:
            items = [v.strip().lower() for v in (value or "").split(",") if v.strip()]
            return [v for v in items if v in allowed]

        spicy_value = None
        if spicy is not None and spicy.strip().lower() in ("true", "1", "yes"):
            spicy_value = True
        elif spicy is not None and spicy.strip().lower() in ("false", "0", "no"):
            spicy_value = False

        return cls(
            allergens=split(exclude, {value for value, _ in ALLERGEN_OPTIONS}),
            dietary=split(diet, {value for value, _ in DIETARY_OPTIONS}),
            spicy=spicy_value,
            badges=split(badge, BADGE_FIELDS),
        )

    def to_query(self) -> dict[str, str]:
        params = {}
        if self.allergens:
            params["exclude"] = ",".join(self.allergens)
        if self.dietary:
            params["diet"] = ",".join(self.dietary)
        if self.spicy is not None:
            params["spicy"] = "true" if self.spicy else "false"
        if self.badges:
            params["badge"] = ",".join(self.badges)
        return params


def dish_passes(dish: dict, selection: FilterSelection) -> bool:
    selected_allergens = {a.lower() for a in selection.allergens}
    if selected_allergens and dish.get("allergens"):
        if any(str(a).lower() in selected_allergens for a in dish["allergens"]):
            return False

    if selection.dietary:
        vegan_selected = "vegan" in selection.dietary
        vegetarian_selected = "vegetarian" in selection.dietary
        if vegan_selected and not dish.get("is_vegan"):
            return False
        if vegetarian_selected and not vegan_selected:
            if not dish.get("is_vegetarian") and not dish.get("is_vegan"):
                return False

    if selection.spicy is not None and bool(dish.get("is_spicy")) != selection.spicy:
        return False

    for badge in selection.badges:
        column = BADGE_FIELDS.get(badge)
        if column and not dish.get(column):
            return False

    return True


def filter_dishes(dishes: list[dict], selection: FilterSelection) -> list[dict]:
    if selection.is_empty:
        return list(dishes)
    return [dish for dish in dishes if dish_passes(dish, selection)]


def ordered_options(options: list[tuple[str, str]], order: Optional[list[str]]) -> list[tuple[str, str]]:
    """Apply a restaurant's custom filter order; ids missing from it are dropped."""
    if not order:
        return list(options)
    by_value = dict(options)
    return [(value, by_value[value]) for value in order if value in by_value]


def dish_badges(dish: dict, order: Optional[list[str]] = None) -> list[str]:
    """Badges present on a dish, in the restaurant's display order."""
    badges = order or list(BADGE_FIELDS)
    return [badge for badge in badges if badge in BADGE_FIELDS and dish.get(BADGE_FIELDS[badge])]
