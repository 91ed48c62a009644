"""
Record extractors for TheMealDB and TheCocktailDB payloads.

Upstream records carry ingredients as numbered field pairs
(``strIngredient1``/``strMeasure1`` ... ``strIngredientN``/``strMeasureN``).
The extractors flatten them into an ordered list of ingredient lines and
rename the remaining fields. Meals scan 20 pairs, cocktails 15; anything
beyond that is ignored even if present.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

MEAL_MAX_INGREDIENTS = 20
COCKTAIL_MAX_INGREDIENTS = 15

MEAL_INGREDIENT_FIELDS: tuple[tuple[str, str], ...] = tuple(
    (f"strIngredient{i}", f"strMeasure{i}") for i in range(1, MEAL_MAX_INGREDIENTS + 1)
)
COCKTAIL_INGREDIENT_FIELDS: tuple[tuple[str, str], ...] = tuple(
    (f"strIngredient{i}", f"strMeasure{i}") for i in range(1, COCKTAIL_MAX_INGREDIENTS + 1)
)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class IngredientLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    ingredient: str
    measure: str = ""


class MealRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    area: Optional[str] = None
    instructions: Optional[str] = None
    thumbnail: Optional[str] = None
    youtube: Optional[str] = None
    ingredients: tuple[IngredientLine, ...] = ()
    tags: tuple[str, ...] = ()
    source: Optional[str] = None


class CocktailRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    alcoholic: Optional[str] = None
    glass: Optional[str] = None
    instructions: Optional[str] = None
    thumbnail: Optional[str] = None
    ingredients: tuple[IngredientLine, ...] = ()
    iba: Optional[str] = None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> Optional[str]:
    """Empty strings from upstream mean "absent"."""
    return _text(value) or None


def _ingredient_lines(
    raw: dict[str, Any], fields: tuple[tuple[str, str], ...]
) -> tuple[IngredientLine, ...]:
    lines = []
    for name_field, measure_field in fields:
        name = raw.get(name_field)
        if not isinstance(name, str) or not name.strip():
            continue
        measure = raw.get(measure_field)
        lines.append(IngredientLine(
            ingredient=name.strip(),
            measure=measure.strip() if isinstance(measure, str) else "",
        ))
    return tuple(lines)


def _split_tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, str) or not value:
        return ()
    return tuple(t.strip() for t in value.split(","))


def extract_meal(raw: Optional[dict[str, Any]]) -> Optional[MealRecord]:
    """Normalize a raw TheMealDB meal. ``None`` in, ``None`` out."""
    if not isinstance(raw, dict):
        return None
    return MealRecord(
        id=_text(raw.get("idMeal")),
        name=_text(raw.get("strMeal")),
        category=_text(raw.get("strCategory")),
        area=_text(raw.get("strArea")),
        instructions=_text(raw.get("strInstructions")),
        thumbnail=_text(raw.get("strMealThumb")),
        youtube=_optional_text(raw.get("strYoutube")),
        ingredients=_ingredient_lines(raw, MEAL_INGREDIENT_FIELDS),
        tags=_split_tags(raw.get("strTags")),
        source=_optional_text(raw.get("strSource")),
    )


def extract_cocktail(raw: Optional[dict[str, Any]]) -> Optional[CocktailRecord]:
    """Normalize a raw TheCocktailDB drink. ``None`` in, ``None`` out."""
    if not isinstance(raw, dict):
        return None
    return CocktailRecord(
        id=_text(raw.get("idDrink")),
        name=_text(raw.get("strDrink")),
        category=_text(raw.get("strCategory")),
        alcoholic=_text(raw.get("strAlcoholic")),
        glass=_text(raw.get("strGlass")),
        instructions=_text(raw.get("strInstructions")),
        thumbnail=_text(raw.get("strDrinkThumb")),
        ingredients=_ingredient_lines(raw, COCKTAIL_INGREDIENT_FIELDS),
        # International Bartenders Association category
        iba=_optional_text(raw.get("strIBA")),
    )
