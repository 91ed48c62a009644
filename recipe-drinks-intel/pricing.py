"""
Per-entrypoint pricing for the Recipe & Drinks Intel agent.

Prices are USDC amounts kept as Decimal so that sub-cent values
($0.0001) survive the conversion to on-chain atomic units exactly.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

USDC_DECIMALS = 6


class EntrypointPrice(BaseModel):
    amount: Decimal
    label: str
    currency: str = "USDC"


ENTRYPOINT_PRICES: dict[str, EntrypointPrice] = {
    # ── Discovery ─────────────────────────────────────────────────────────
    "overview": EntrypointPrice(amount=Decimal("0.0001"), label="Sample meal + cocktail, endpoint list"),
    "random-discover": EntrypointPrice(amount=Decimal("0.001"), label="Random meal + random cocktail"),

    # ── Meals ─────────────────────────────────────────────────────────────
    "meal-search": EntrypointPrice(amount=Decimal("0.001"), label="Search meals by name"),
    "meal-by-category": EntrypointPrice(amount=Decimal("0.002"), label="Get meals in a category"),
    "meal-by-ingredient": EntrypointPrice(amount=Decimal("0.002"), label="Find meals with specific ingredient"),
    "full-recipe": EntrypointPrice(amount=Decimal("0.003"), label="Get complete recipe with instructions"),

    # ── Cocktails ─────────────────────────────────────────────────────────
    "cocktail-search": EntrypointPrice(amount=Decimal("0.001"), label="Search cocktails by name"),

    # ── Payment analytics ─────────────────────────────────────────────────
    "analytics": EntrypointPrice(amount=Decimal("0.0001"), label="Payment analytics summary"),
    "analytics-transactions": EntrypointPrice(amount=Decimal("0.0001"), label="Recent payment transactions"),
    "analytics-csv": EntrypointPrice(amount=Decimal("0.0001"), label="Payment data as CSV"),
}


def get_price(key: str) -> Decimal:
    """Return the USDC price of an entrypoint.

    Raises:
        KeyError: The entrypoint has no price configured.
    """
    return ENTRYPOINT_PRICES[key].amount


def to_atomic_units(amount: Decimal) -> str:
    """USDC amount -> smallest on-chain unit (6 decimals), as a string."""
    return str(int((amount * (10 ** USDC_DECIMALS)).to_integral_value()))


def format_price(amount: Decimal) -> str:
    """Render a price the way callers see it, e.g. ``$0.001``."""
    return f"${amount.normalize():f}"
