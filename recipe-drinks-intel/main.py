"""
Recipe & Drinks Intel — x402-metered recipe and cocktail API for AI agents.

Wraps TheMealDB and TheCocktailDB behind priced entrypoints paid in USDC
on Base L2 (x402), with MCP and A2A/ERC-8004 discovery documents.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from analytics import PaymentTracker
from config import AGENT_NAME, VERSION, Settings
from entrypoints import RecipeService, build_registry
from fetcher import JSONFetcher
from payments import X402Facilitator
from routes.discovery import router as discovery_router
from routes.entrypoints import router as entrypoints_router

logger = logging.getLogger("recipe-drinks-intel")


# ---------------------------------------------------------------------------
# MCP Server (streamable HTTP)
# ---------------------------------------------------------------------------

def create_mcp_app():
    """Create the MCP HTTP application, or None if it cannot be built."""
    try:
        from mcp_server import mcp
        mcp_app = mcp.http_app(path="/", stateless_http=True)
        logger.info("MCP server created successfully")
        return mcp_app
    except Exception as e:
        logger.warning("MCP server creation failed: %s — MCP endpoint disabled", e)
        return None


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    *,
    fetcher: Optional[JSONFetcher] = None,
    facilitator: Optional[X402Facilitator] = None,
    tracker: Optional[PaymentTracker] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    fetcher = fetcher or JSONFetcher(settings)
    facilitator = facilitator or X402Facilitator(settings)
    tracker = tracker or PaymentTracker()
    registry = build_registry(RecipeService(settings, fetcher, tracker))

    mcp_app = create_mcp_app() if settings.mcp_enabled else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Attach Firestore and the MCP session manager; close HTTP clients on exit."""
        db = None
        if settings.firestore_project:
            from google.cloud import firestore
            logger.info("Initialising Firestore client for project=%s", settings.firestore_project)
            db = firestore.AsyncClient(project=settings.firestore_project, database=settings.firestore_database)
            tracker.set_db(db)

        if not settings.pay_to_address and not settings.x402_test_mode:
            logger.warning("PAYMENTS_RECEIVABLE_ADDRESS is not set; x402 verification will fail")

        logger.info(
            "%s ready. port=%s entrypoints=%d x402_network=%s test_mode=%s",
            AGENT_NAME, settings.port, len(registry), settings.x402_network, settings.x402_test_mode,
        )

        try:
            if mcp_app and getattr(mcp_app, "lifespan", None):
                async with mcp_app.lifespan(mcp_app):
                    logger.info("MCP session manager started")
                    yield
            else:
                yield
        finally:
            logger.info("Shutting down %s", AGENT_NAME)
            await fetcher.close()
            await facilitator.close()
            if db:
                db.close()

    app = FastAPI(
        title="Recipe & Drinks Intel",
        description=(
            "Recipe and cocktail intelligence for AI agents - search meals, drinks, "
            "ingredients, and get cooking instructions from TheMealDB and TheCocktailDB. "
            "Every entrypoint is paid per call with x402 USDC micropayments."
        ),
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.fetcher = fetcher
    app.state.facilitator = facilitator
    app.state.tracker = tracker
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["PAYMENT-REQUIRED", "X-PAYMENT-RESPONSE"],
    )

    app.include_router(discovery_router)
    app.include_router(entrypoints_router)

    if mcp_app:
        @app.middleware("http")
        async def mcp_trailing_slash(request: Request, call_next):
            """Rewrite /mcp to /mcp/ so MCP clients don't get 307 redirected on POST."""
            if request.url.path == "/mcp":
                request.scope["path"] = "/mcp/"
            return await call_next(request)

        app.mount("/mcp", mcp_app)
        logger.info("MCP server mounted at /mcp")

    return app


settings = Settings.from_env()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    logger.info("Recipe & Drinks Intel running on port %d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
