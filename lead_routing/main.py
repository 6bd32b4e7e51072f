"""Lead Routing Engine — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lead_routing.adapters.persistence.database import engine
from lead_routing.config import settings
from lead_routing.infrastructure.api.dependencies import registry
from lead_routing.infrastructure.api.routes_assignment import router as assignment_router
from lead_routing.infrastructure.api.routes_health import router as health_router
from lead_routing.infrastructure.api.routes_stats import router as stats_router

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    if settings.store_backend.lower() == "sql":
        try:
            async with engine.begin():
                pass  # Connection pool warmed up
            logger.info("Database connection established")
        except Exception as e:
            logger.warning("Database not available on startup: %s", e)
    else:
        logger.info("Using in-memory stores; state is lost on restart")
    yield
    await registry.close()
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Lead Routing Engine",
        description="Rule- and territory-based lead assignment with fairness and capacity caps",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignment_router, prefix="/api")
    app.include_router(stats_router, prefix="/api")

    return app


app = create_app()
