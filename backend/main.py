from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from api.scraper_routes import router as scraper_router
from config.settings import Settings
from sourcing.context import ScraperContext


def create_app(context: Optional[ScraperContext] = None) -> FastAPI:
    """
    Build the API app.

    Args:
        context: Pre-built context (tests). When omitted the app builds one
            from Settings on startup and shuts it down on exit.
    """
    owns_context = context is None
    settings = context.settings if context is not None else Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context or ScraperContext(settings)
        ctx.init()
        app.state.context = ctx
        try:
            yield
        finally:
            if owns_context:
                await ctx.shutdown()

    app = FastAPI(
        title="Career Page Scraper API",
        description="Company catalog, listing-system classification and job ingestion",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(scraper_router, prefix="/api/scraper", tags=["Scraper"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    return app


app = create_app()

# Lambda handler
handler = Mangum(app, lifespan="auto")
