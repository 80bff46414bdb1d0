from taptab.services.menu_filter import (
    FilterSelection,
    dish_badges,
    dish_passes,
    filter_dishes,
    ordered_options,
    ALLERGEN_OPTIONS,
)

PIZZA = {"name": "Margherita", "allergens": ["Gluten", "dairy"], "is_vegetarian": True, "is_popular": True}
CURRY = {"name": "Curry", "allergens": ["soy"], "is_vegan": True, "is_spicy": True, "is_new": True, "is_popular": True}
STEAK = {"name": "Steak", "allergens": None, "is_chef_recommendation": True}
DISHES = [PIZZA, CURRY, STEAK]


def names(dishes):
    return [d["name"] for d in dishes]


def test_empty_selection_keeps_everything():
    assert FilterSelection().is_empty
    assert names(filter_dishes(DISHES, FilterSelection())) == ["Margherita", "Curry", "Steak"]


def test_allergen_exclusion_is_case_insensitive():
    selection = FilterSelection(allergens=["gluten"])
    assert names(filter_dishes(DISHES, selection)) == ["Curry", "Steak"]


def test_vegetarian_includes_vegan_dishes():
    selection = FilterSelection(dietary=["vegetarian"])
    assert names(filter_dishes(DISHES, selection)) == ["Margherita", "Curry"]


def test_vegan_requires_vegan_flag():
    selection = FilterSelection(dietary=["vegetarian", "vegan"])
    assert names(filter_dishes(DISHES, selection)) == ["Curry"]


def test_spicy_is_tri_state():
    assert names(filter_dishes(DISHES, FilterSelection(spicy=True))) == ["Curry"]
    assert names(filter_dishes(DISHES, FilterSelection(spicy=False))) == ["Margherita", "Steak"]


def test_badges_are_and_combined():
    assert names(filter_dishes(DISHES, FilterSelection(badges=["popular"]))) == ["Margherita", "Curry"]
    assert names(filter_dishes(DISHES, FilterSelection(badges=["popular", "new"]))) == ["Curry"]
    assert not dish_passes(STEAK, FilterSelection(badges=["new"]))


def test_from_query_drops_unknown_values():
    selection = FilterSelection.from_query(exclude="Gluten, unicorn", diet="vegan", spicy="no", badge="chef,x")

    assert selection.allergens == ["gluten"]
    assert selection.dietary == ["vegan"]
    assert selection.spicy is False
    assert selection.badges == ["chef"]
    assert FilterSelection.from_query(spicy="").spicy is None


def test_to_query_round_trips_selection():
    selection = FilterSelection(allergens=["nuts", "soy"], spicy=True)
    assert selection.to_query() == {"exclude": "nuts,soy", "spicy": "true"}


def test_ordered_options_follow_restaurant_order():
    ordered = ordered_options(ALLERGEN_OPTIONS, ["soy", "gluten", "unknown"])
    assert ordered == [("soy", "Soy"), ("gluten", "Gluten")]
    assert ordered_options(ALLERGEN_OPTIONS, None) == ALLERGEN_OPTIONS


def test_dish_badges_in_display_order():
    assert dish_badges(CURRY) == ["new", "popular"]
    assert dish_badges(CURRY, ["popular", "new"]) == ["popular", "new"]
