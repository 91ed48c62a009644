"""
Runtime configuration for the Recipe & Drinks Intel agent.

All environment access happens in ``Settings.from_env()``. The resulting
object is handed to the fetcher, the recipe service, the x402 facilitator
and the app factory explicitly.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

AGENT_NAME = "recipe-drinks-intel"
VERSION = "1.0.0"
DEFAULT_PUBLIC_URL = "https://recipe-drinks-intel-production.up.railway.app"


def _env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).lower() in ("1", "true", "yes")


class Settings(BaseModel):
    # ── Upstream APIs ─────────────────────────────────────────────────────
    meal_base: str = "https://www.themealdb.com/api/json/v1/1"
    cocktail_base: str = "https://www.thecocktaildb.com/api/json/v1/1"
    fetch_timeout_ms: int = Field(default=10_000, gt=0)

    # ── Result limits ─────────────────────────────────────────────────────
    # Caller-supplied limits are clamped to the max values, never rejected.
    default_result_limit: int = Field(default=20, ge=0)
    max_result_limit: int = Field(default=100, ge=1)
    default_transaction_limit: int = Field(default=50, ge=0)
    max_transaction_limit: int = Field(default=500, ge=1)

    # ── Server ────────────────────────────────────────────────────────────
    port: int = 3000
    public_domain: str = ""
    icon_path: str = "./icon.png"
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    mcp_enabled: bool = True

    # ── x402 payments (USDC on Base L2) ───────────────────────────────────
    x402_facilitator_url: str = "https://www.x402.org/facilitator"
    pay_to_address: str = ""
    x402_network: str = "eip155:8453"
    x402_test_mode: bool = False
    cdp_api_key_id: str = ""
    cdp_api_key_secret: str = ""

    # ── Firestore (payment transaction log) ───────────────────────────────
    firestore_project: str = ""
    firestore_database: str = "(default)"

    @property
    def public_base_url(self) -> str:
        if self.public_domain:
            return f"https://{self.public_domain}"
        return DEFAULT_PUBLIC_URL

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        origins = os.environ.get("ALLOWED_ORIGINS", "*")
        return cls(
            meal_base=os.environ.get("MEAL_BASE", cls.model_fields["meal_base"].default),
            cocktail_base=os.environ.get("COCKTAIL_BASE", cls.model_fields["cocktail_base"].default),
            fetch_timeout_ms=int(os.environ.get("FETCH_TIMEOUT_MS", "10000")),
            default_result_limit=int(os.environ.get("DEFAULT_RESULT_LIMIT", "20")),
            max_result_limit=int(os.environ.get("MAX_RESULT_LIMIT", "100")),
            default_transaction_limit=int(os.environ.get("DEFAULT_TRANSACTION_LIMIT", "50")),
            max_transaction_limit=int(os.environ.get("MAX_TRANSACTION_LIMIT", "500")),
            port=int(os.environ.get("PORT", "3000")),
            public_domain=os.environ.get("RAILWAY_PUBLIC_DOMAIN", ""),
            icon_path=os.environ.get("ICON_PATH", "./icon.png"),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            mcp_enabled=_env_bool("MCP_ENABLED", True),
            x402_facilitator_url=os.environ.get(
                "X402_FACILITATOR_URL", cls.model_fields["x402_facilitator_url"].default
            ),
            pay_to_address=os.environ.get("PAYMENTS_RECEIVABLE_ADDRESS", ""),
            x402_network=os.environ.get("X402_NETWORK", "eip155:8453"),
            x402_test_mode=_env_bool("X402_TEST_MODE"),
            cdp_api_key_id=os.environ.get("CDP_API_KEY_ID", ""),
            cdp_api_key_secret=os.environ.get("CDP_API_KEY_SECRET", ""),
            firestore_project=os.environ.get("FIRESTORE_PROJECT", ""),
            firestore_database=os.environ.get("FIRESTORE_DATABASE", "(default)"),
        )
