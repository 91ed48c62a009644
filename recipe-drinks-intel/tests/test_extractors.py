"""Tests for the meal and cocktail record extractors."""

import pytest
from pydantic import ValidationError

from conftest import make_drink, make_meal
from extractors import (
    COCKTAIL_INGREDIENT_FIELDS,
    MEAL_INGREDIENT_FIELDS,
    IngredientLine,
    extract_cocktail,
    extract_meal,
)


class TestExtractMeal:

    def test_none_in_none_out(self):
        assert extract_meal(None) is None

    def test_non_object_is_not_a_record(self):
        assert extract_meal("52771") is None

    def test_fields_are_renamed(self):
        meal = extract_meal(make_meal())
        assert meal.id == "52771"
        assert meal.name == "Spicy Arrabiata Penne"
        assert meal.category == "Vegetarian"
        assert meal.area == "Italian"
        assert meal.thumbnail.endswith("52771.jpg")
        assert meal.youtube == "https://www.youtube.com/watch?v=1IszT_guI08"

    def test_absent_optionals_are_null(self):
        raw = make_meal()
        del raw["strYoutube"]
        meal = extract_meal(raw)
        assert meal.youtube is None
        assert meal.source is None
        dumped = meal.model_dump(mode="json")
        assert "youtube" in dumped and dumped["youtube"] is None
        assert "source" in dumped and dumped["source"] is None

    def test_empty_string_optionals_are_null(self):
        meal = extract_meal(make_meal(strYoutube="", strSource=""))
        assert meal.youtube is None
        assert meal.source is None

    def test_ingredients_keep_index_order_and_skip_blanks(self):
        raw = make_meal(
            strIngredient1="  garlic ",
            strMeasure1=" 3 cloves ",
            strIngredient2="   ",
            strMeasure2="1 tbsp",
            strIngredient3=None,
            strIngredient5="basil",
            strMeasure5=None,
            strIngredient20="salt",
            strMeasure20="pinch",
        )
        meal = extract_meal(raw)
        assert meal.ingredients == (
            IngredientLine(ingredient="garlic", measure="3 cloves"),
            IngredientLine(ingredient="basil", measure=""),
            IngredientLine(ingredient="salt", measure="pinch"),
        )

    def test_count_matches_non_empty_indices(self):
        raw = {"idMeal": "1"}
        expected = []
        for i in range(1, 21):
            name = f"ing{i}" if i % 3 else " "
            raw[f"strIngredient{i}"] = name
            raw[f"strMeasure{i}"] = f"{i} g"
            if name.strip():
                expected.append(name)
        meal = extract_meal(raw)
        assert [line.ingredient for line in meal.ingredients] == expected

    def test_indices_past_twenty_are_ignored(self):
        meal = extract_meal(make_meal(strIngredient21="ghost", strMeasure21="1"))
        assert "ghost" not in [line.ingredient for line in meal.ingredients]

    def test_tags_are_split_and_trimmed(self):
        assert extract_meal(make_meal(strTags="a, b ,c")).tags == ("a", "b", "c")

    def test_missing_tags_is_empty(self):
        raw = make_meal()
        del raw["strTags"]
        assert extract_meal(raw).tags == ()
        assert extract_meal(make_meal(strTags=None)).tags == ()

    def test_empty_tag_pieces_are_kept(self):
        assert extract_meal(make_meal(strTags="Pasta,,Curry,")).tags == ("Pasta", "", "Curry", "")

    def test_whitespace_only_tags(self):
        assert extract_meal(make_meal(strTags=" ")).tags == ("",)
        assert extract_meal(make_meal(strTags="")).tags == ()

    def test_record_is_immutable(self):
        meal = extract_meal(make_meal())
        with pytest.raises(ValidationError):
            meal.name = "Something else"

    def test_serialized_ingredient_shape(self):
        dumped = extract_meal(make_meal()).model_dump(mode="json")
        assert dumped["ingredients"][0] == {"ingredient": "penne rigate", "measure": "1 pound"}
        assert dumped["tags"] == ["Pasta", "Curry"]


class TestExtractCocktail:

    def test_none_in_none_out(self):
        assert extract_cocktail(None) is None

    def test_fields_are_renamed(self):
        drink = extract_cocktail(make_drink())
        assert drink.id == "11007"
        assert drink.name == "Margarita"
        assert drink.alcoholic == "Alcoholic"
        assert drink.glass == "Cocktail glass"
        assert drink.iba == "Contemporary Classics"

    def test_measures_trimmed_and_defaulted(self):
        drink = extract_cocktail(make_drink())
        assert drink.ingredients == (
            IngredientLine(ingredient="Tequila", measure="1 1/2 oz"),
            IngredientLine(ingredient="Triple sec", measure="1/2 oz"),
            IngredientLine(ingredient="Lime juice", measure=""),
        )

    def test_scan_stops_at_fifteen(self):
        drink = extract_cocktail(make_drink(strIngredient15="Soda", strIngredient16="Ghost"))
        names = [line.ingredient for line in drink.ingredients]
        assert names[-1] == "Soda"
        assert "Ghost" not in names

    def test_missing_iba_is_null(self):
        assert extract_cocktail(make_drink(strIBA=None)).iba is None

    def test_no_tags_field(self):
        assert "tags" not in extract_cocktail(make_drink()).model_dump()


def test_field_tables_are_ordered_pairs():
    assert len(MEAL_INGREDIENT_FIELDS) == 20
    assert len(COCKTAIL_INGREDIENT_FIELDS) == 15
    assert MEAL_INGREDIENT_FIELDS[0] == ("strIngredient1", "strMeasure1")
    assert COCKTAIL_INGREDIENT_FIELDS[-1] == ("strIngredient15", "strMeasure15")
