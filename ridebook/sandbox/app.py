"""
FastAPI application factory for the sandbox ride authority.

* Registers routes for rides and admin.
* Creates tables and seeds the driver roster via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridebook.infrastructure.database import Base, async_session_factory, engine
from ridebook.sandbox.middleware import limiter
from ridebook.sandbox.routes import admin, rides
from ridebook.sandbox.seed import seed_drivers

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and seed drivers on startup; dispose on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as session:
        await seed_drivers(session)
        await session.commit()
    logger.info("Sandbox authority ready")
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ridebook Sandbox Authority",
        description=(
            "Local stand-in for the ride authority.  Prices rides, stores "
            "their lifecycle and lets an operator advance them through the "
            "admin routes."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
