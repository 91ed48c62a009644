"""
Entrypoints — priced, named operations exposed to AI agents.
=============================================================
Each entrypoint pairs a key, a description, an input schema (pydantic),
a USDC price and a handler. Handlers are stateless: they build upstream
URLs, fetch, run the matching extractor and shape the output payload.

  overview                 $0.0001  sample meal + cocktail, endpoint list
  meal-search              $0.001   TheMealDB search.php?s=
  meal-by-category         $0.002   TheMealDB filter.php?c=
  meal-by-ingredient       $0.002   TheMealDB filter.php?i=
  cocktail-search          $0.001   TheCocktailDB search.php?s=
  full-recipe              $0.003   TheMealDB lookup.php?i=
  random-discover          $0.001   random meal + random cocktail
  analytics*               $0.0001  payment analytics pass-through

Fetch failures are not caught here; they propagate to the serving layer.
The only local translation is full-recipe's "Meal not found" payload.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from analytics import PaymentTracker
from config import AGENT_NAME, Settings
from extractors import CocktailRecord, MealRecord, extract_cocktail, extract_meal
from fetcher import JSONFetcher
from pricing import ENTRYPOINT_PRICES, format_price, get_price

logger = logging.getLogger("recipe-drinks-intel.entrypoints")

MEAL_CATEGORIES = [
    "Beef", "Chicken", "Dessert", "Lamb", "Miscellaneous", "Pasta", "Pork",
    "Seafood", "Side", "Starter", "Vegan", "Vegetarian", "Breakfast", "Goat",
]

# Paid lookups advertised by overview
LISTED_KEYS = [
    "meal-search",
    "meal-by-category",
    "meal-by-ingredient",
    "cocktail-search",
    "full-recipe",
]


def fetched_at() -> str:
    """Current UTC time as ISO-8601 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _encode(value: str) -> str:
    return quote(value, safe="")


class RecipeNotFoundError(Exception):
    """Lookup by id found no meal."""

    def __init__(self, meal_id: str):
        super().__init__(f"Meal not found: {meal_id}")
        self.meal_id = meal_id


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------


class _Input(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EmptyInput(_Input):
    pass


class MealSearchInput(_Input):
    query: str = Field(description='Meal name to search (e.g., "chicken", "pasta", "curry")')


class MealCategoryInput(_Input):
    category: str = Field(description='Category name (e.g., "Seafood", "Vegetarian", "Dessert")')
    limit: Optional[int] = Field(default=None, ge=0, description="Max results to return (default 20)")


class MealIngredientInput(_Input):
    ingredient: str = Field(description='Main ingredient (e.g., "chicken_breast", "salmon", "tofu")')
    limit: Optional[int] = Field(default=None, ge=0, description="Max results (default 20)")


class CocktailSearchInput(_Input):
    query: str = Field(description='Cocktail name to search (e.g., "margarita", "mojito", "martini")')


class FullRecipeInput(_Input):
    meal_id: str = Field(alias="mealId", description="Meal ID from search results")


class AnalyticsInput(_Input):
    window_ms: Optional[int] = Field(default=None, alias="windowMs", ge=0, description="Time window in ms")


class AnalyticsTransactionsInput(AnalyticsInput):
    limit: Optional[int] = Field(default=None, ge=0, description="Max transactions (default 50)")


# ---------------------------------------------------------------------------
# Recipe service (handlers)
# ---------------------------------------------------------------------------


class RecipeService:
    """Handlers for every entrypoint, bound to one configuration."""

    def __init__(
        self,
        settings: Settings,
        fetcher: JSONFetcher,
        tracker: Optional[PaymentTracker] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.tracker = tracker

    # ── URL builders ──────────────────────────────────────────────────────

    def meal_url(self, endpoint: str, **params: str) -> str:
        query = "&".join(f"{k}={_encode(v)}" for k, v in params.items())
        return f"{self.settings.meal_base}/{endpoint}" + (f"?{query}" if query else "")

    def cocktail_url(self, endpoint: str, **params: str) -> str:
        query = "&".join(f"{k}={_encode(v)}" for k, v in params.items())
        return f"{self.settings.cocktail_base}/{endpoint}" + (f"?{query}" if query else "")

    def _clamp(self, limit: Optional[int], default: int, maximum: int) -> int:
        if limit is None:
            return default
        return min(limit, maximum)

    # ── Fetch helpers ─────────────────────────────────────────────────────

    async def _fetch_pair(self, first_url: str, second_url: str) -> tuple[Any, Any]:
        """Fetch two URLs concurrently. Both succeed or the call fails.

        The first failure propagates and the other fetch is cancelled.
        """
        tasks = [
            asyncio.ensure_future(self.fetcher.fetch_json(first_url)),
            asyncio.ensure_future(self.fetcher.fetch_json(second_url)),
        ]
        try:
            first, second = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return first, second

    @staticmethod
    def _items(data: Any, field: str) -> list:
        """Upstream array-or-null field; anything else becomes []."""
        items = data.get(field) if isinstance(data, dict) else None
        return items if isinstance(items, list) else []

    async def random_pair(self) -> tuple[Optional[MealRecord], Optional[CocktailRecord]]:
        meal_data, drink_data = await self._fetch_pair(
            self.meal_url("random.php"),
            self.cocktail_url("random.php"),
        )
        meals = self._items(meal_data, "meals")
        drinks = self._items(drink_data, "drinks")
        return (
            extract_meal(meals[0]) if meals else None,
            extract_cocktail(drinks[0]) if drinks else None,
        )

    async def lookup_meal(self, meal_id: str) -> MealRecord:
        data = await self.fetcher.fetch_json(self.meal_url("lookup.php", i=meal_id))
        meals = self._items(data, "meals")
        meal = extract_meal(meals[0]) if meals else None
        if meal is None:
            raise RecipeNotFoundError(meal_id)
        return meal

    # ── Handlers ──────────────────────────────────────────────────────────

    async def overview(self, _: EmptyInput) -> dict:
        meal, drink = await self.random_pair()
        return {
            "agent": AGENT_NAME,
            "description": "Recipe and cocktail intelligence for AI agents",
            "dataSources": ["TheMealDB (live)", "TheCocktailDB (live)"],
            "sampleMeal": (
                {"name": meal.name, "category": meal.category, "area": meal.area} if meal else None
            ),
            "sampleCocktail": (
                {"name": drink.name, "category": drink.category, "glass": drink.glass} if drink else None
            ),
            "endpoints": [
                {
                    "key": key,
                    "price": format_price(get_price(key)),
                    "description": ENTRYPOINT_PRICES[key].label,
                }
                for key in LISTED_KEYS
            ],
            "fetchedAt": fetched_at(),
        }

    async def meal_search(self, payload: MealSearchInput) -> dict:
        data = await self.fetcher.fetch_json(self.meal_url("search.php", s=payload.query))
        meals = [m for m in map(extract_meal, self._items(data, "meals")) if m is not None]
        return {
            "query": payload.query,
            "count": len(meals),
            "meals": [
                {"id": m.id, "name": m.name, "category": m.category, "area": m.area, "thumbnail": m.thumbnail}
                for m in meals
            ],
            "fetchedAt": fetched_at(),
        }

    async def _filter_meals(self, limit: Optional[int], **params: str) -> list[dict]:
        data = await self.fetcher.fetch_json(self.meal_url("filter.php", **params))
        meals = [m for m in map(extract_meal, self._items(data, "meals")) if m is not None]
        meals = meals[: self._clamp(limit, self.settings.default_result_limit, self.settings.max_result_limit)]
        return [{"id": m.id, "name": m.name, "thumbnail": m.thumbnail} for m in meals]

    async def meal_by_category(self, payload: MealCategoryInput) -> dict:
        meals = await self._filter_meals(payload.limit, c=payload.category)
        return {
            "category": payload.category,
            "count": len(meals),
            "meals": meals,
            "availableCategories": list(MEAL_CATEGORIES),
            "fetchedAt": fetched_at(),
        }

    async def meal_by_ingredient(self, payload: MealIngredientInput) -> dict:
        # TheMealDB spells multi-word ingredients with underscores
        meals = await self._filter_meals(payload.limit, i=payload.ingredient.replace(" ", "_"))
        return {
            "ingredient": payload.ingredient,
            "count": len(meals),
            "meals": meals,
            "fetchedAt": fetched_at(),
        }

    async def cocktail_search(self, payload: CocktailSearchInput) -> dict:
        data = await self.fetcher.fetch_json(self.cocktail_url("search.php", s=payload.query))
        drinks = [d for d in map(extract_cocktail, self._items(data, "drinks")) if d is not None]
        return {
            "query": payload.query,
            "count": len(drinks),
            "cocktails": [
                {
                    "id": d.id,
                    "name": d.name,
                    "category": d.category,
                    "alcoholic": d.alcoholic,
                    "glass": d.glass,
                    "thumbnail": d.thumbnail,
                }
                for d in drinks
            ],
            "fetchedAt": fetched_at(),
        }

    async def full_recipe(self, payload: FullRecipeInput) -> dict:
        try:
            meal = await self.lookup_meal(payload.meal_id)
        except RecipeNotFoundError:
            logger.info("full-recipe: no meal with id %s", payload.meal_id)
            return {"error": "Meal not found", "mealId": payload.meal_id}
        return {
            **meal.model_dump(mode="json"),
            "fetchedAt": fetched_at(),
            "dataSource": "TheMealDB (live)",
        }

    async def random_discover(self, _: EmptyInput) -> dict:
        meal, drink = await self.random_pair()
        return {
            "meal": meal.model_dump(mode="json") if meal else None,
            "cocktail": drink.model_dump(mode="json") if drink else None,
            "fetchedAt": fetched_at(),
        }

    async def analytics(self, payload: AnalyticsInput) -> dict:
        if self.tracker is None:
            return {"error": "Analytics not available", "payments": []}
        summary = await self.tracker.get_summary(payload.window_ms)
        return {
            **summary,
            "outgoingTotal": str(summary["outgoingTotal"]),
            "incomingTotal": str(summary["incomingTotal"]),
            "netTotal": str(summary["netTotal"]),
        }

    async def analytics_transactions(self, payload: AnalyticsTransactionsInput) -> dict:
        if self.tracker is None:
            return {"transactions": []}
        txs = await self.tracker.get_all_transactions(payload.window_ms)
        limit = self._clamp(
            payload.limit, self.settings.default_transaction_limit, self.settings.max_transaction_limit
        )
        return {"transactions": txs[:limit]}

    async def analytics_csv(self, payload: AnalyticsInput) -> dict:
        if self.tracker is None:
            return {"csv": ""}
        return {"csv": await self.tracker.export_to_csv(payload.window_ms)}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


ENTRYPOINT_DESCRIPTIONS = {
    "overview": "Free overview - sample recipe and cocktail to try before you buy",
    "meal-search": "Search meals by name - returns matching recipes",
    "meal-by-category": "Get meals in a specific category (Beef, Chicken, Seafood, Vegetarian, etc.)",
    "meal-by-ingredient": "Find meals containing a specific ingredient",
    "cocktail-search": "Search cocktails by name",
    "full-recipe": "Get complete recipe with full instructions, ingredients, and measurements",
    "random-discover": "Get random meal and cocktail for discovery/inspiration",
    "analytics": "Payment analytics summary",
    "analytics-transactions": "Recent payment transactions",
    "analytics-csv": "Export payment data as CSV",
}


@dataclass(frozen=True)
class Entrypoint:
    key: str
    description: str
    price: Decimal
    input_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[dict]]

    def input_schema(self) -> dict:
        return self.input_model.model_json_schema(by_alias=True)


class EntrypointRegistry:
    def __init__(self):
        self._entrypoints: dict[str, Entrypoint] = {}

    def add(self, key: str, input_model: type[BaseModel], handler: Callable[[Any], Awaitable[dict]]):
        if key in self._entrypoints:
            raise ValueError(f"Entrypoint already registered: {key}")
        self._entrypoints[key] = Entrypoint(
            key=key,
            description=ENTRYPOINT_DESCRIPTIONS[key],
            price=get_price(key),
            input_model=input_model,
            handler=handler,
        )

    def get(self, key: str) -> Optional[Entrypoint]:
        return self._entrypoints.get(key)

    def __iter__(self):
        return iter(self._entrypoints.values())

    def __len__(self) -> int:
        return len(self._entrypoints)


def build_registry(service: RecipeService) -> EntrypointRegistry:
    registry = EntrypointRegistry()
    registry.add("overview", EmptyInput, service.overview)
    registry.add("meal-search", MealSearchInput, service.meal_search)
    registry.add("meal-by-category", MealCategoryInput, service.meal_by_category)
    registry.add("meal-by-ingredient", MealIngredientInput, service.meal_by_ingredient)
    registry.add("cocktail-search", CocktailSearchInput, service.cocktail_search)
    registry.add("full-recipe", FullRecipeInput, service.full_recipe)
    registry.add("random-discover", EmptyInput, service.random_discover)
    registry.add("analytics", AnalyticsInput, service.analytics)
    registry.add("analytics-transactions", AnalyticsTransactionsInput, service.analytics_transactions)
    registry.add("analytics-csv", AnalyticsInput, service.analytics_csv)
    return registry
