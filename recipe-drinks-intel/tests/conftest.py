"""
Shared pytest fixtures.

Upstream (TheMealDB / TheCocktailDB) traffic is served by ``FakeUpstream``
through ``httpx.MockTransport`` so no test touches the network.
"""

import asyncio
import os
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep the module-level app in main.py light during imports
os.environ.setdefault("MCP_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from analytics import PaymentTracker  # noqa: E402
from config import Settings  # noqa: E402
from entrypoints import RecipeService  # noqa: E402
from fetcher import JSONFetcher  # noqa: E402

MEAL_BASE = "https://meal.test/api/json/v1/1"
COCKTAIL_BASE = "https://cocktail.test/api/json/v1/1"
PAY_TO = "0x1111111111111111111111111111111111111111"


class FakeUpstream:
    """Routes requests by (host, path) to canned responses."""

    def __init__(self):
        self.routes: dict[tuple[str, str], dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.cancelled = 0

    def add(
        self,
        host: str,
        path: str,
        json: Any = None,
        *,
        status: int = 200,
        content: Optional[bytes] = None,
        delay: float = 0.0,
        error: Optional[type[Exception]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.routes[(host, path)] = {
            "json": json, "status": status, "content": content, "delay": delay, "error": error,
            "headers": headers or {},
        }

    def meal(self, endpoint: str, json: Any = None, **kwargs):
        self.add("meal.test", f"/api/json/v1/1/{endpoint}", json, **kwargs)

    def cocktail(self, endpoint: str, json: Any = None, **kwargs):
        self.add("cocktail.test", f"/api/json/v1/1/{endpoint}", json, **kwargs)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, text="no such route")
        if route["delay"]:
            try:
                await asyncio.sleep(route["delay"])
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if route["error"] is not None:
            raise route["error"]("simulated failure", request=request)
        if route["content"] is not None:
            return httpx.Response(route["status"], content=route["content"], headers=route["headers"])
        return httpx.Response(route["status"], json=route["json"])


def make_meal(meal_id: str = "52771", name: str = "Spicy Arrabiata Penne", **fields) -> dict:
    raw = {
        "idMeal": meal_id,
        "strMeal": name,
        "strCategory": "Vegetarian",
        "strArea": "Italian",
        "strInstructions": "Bring a large pot of water to a boil.",
        "strMealThumb": f"https://www.themealdb.com/images/media/meals/{meal_id}.jpg",
        "strTags": "Pasta,Curry",
        "strYoutube": "https://www.youtube.com/watch?v=1IszT_guI08",
        "strSource": None,
        "strIngredient1": "penne rigate",
        "strMeasure1": "1 pound",
        "strIngredient2": "olive oil",
        "strMeasure2": "1/4 cup",
        "strIngredient3": "",
        "strMeasure3": "",
    }
    raw.update(fields)
    return raw


def make_drink(drink_id: str = "11007", name: str = "Margarita", **fields) -> dict:
    raw = {
        "idDrink": drink_id,
        "strDrink": name,
        "strCategory": "Ordinary Drink",
        "strAlcoholic": "Alcoholic",
        "strGlass": "Cocktail glass",
        "strInstructions": "Rub the rim of the glass with the lime slice.",
        "strDrinkThumb": f"https://www.thecocktaildb.com/images/media/drink/{drink_id}.jpg",
        "strIBA": "Contemporary Classics",
        "strIngredient1": "Tequila",
        "strMeasure1": "1 1/2 oz ",
        "strIngredient2": "Triple sec",
        "strMeasure2": "1/2 oz ",
        "strIngredient3": "Lime juice",
        "strMeasure3": None,
    }
    raw.update(fields)
    return raw


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        meal_base=MEAL_BASE,
        cocktail_base=COCKTAIL_BASE,
        fetch_timeout_ms=1000,
        pay_to_address=PAY_TO,
        x402_test_mode=True,
        mcp_enabled=False,
        icon_path=str(tmp_path / "icon.png"),
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def upstream_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest.fixture
def fetcher(settings, upstream_client) -> JSONFetcher:
    return JSONFetcher(settings, client=upstream_client)


@pytest.fixture
def tracker() -> PaymentTracker:
    return PaymentTracker()


@pytest.fixture
def service(settings, fetcher, tracker) -> RecipeService:
    return RecipeService(settings, fetcher, tracker)


@pytest_asyncio.fixture
async def test_client(settings, fetcher, tracker):
    """HTTPX client talking to the FastAPI app through ASGITransport."""
    from main import create_app

    app = create_app(settings, fetcher=fetcher, tracker=tracker)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
