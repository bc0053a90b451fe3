"""
FastAPI application factory.

* Registers routes for users, stores, products and admin.
* Starts / stops the periodic offers campaign via lifespan events and
  closes the shared geocoder client on shutdown.
* Applies rate limiting (slowapi).
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from geomarket.api.middleware import limiter
from geomarket.api.routes import admin, products, stores, users
from geomarket.infrastructure.geocoding import close_geocoder
from geomarket.workers import campaign as _campaign

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the offers loop on startup; stop it and release clients on shutdown."""
    await _campaign.start_offers_loop()
    yield
    await _campaign.stop_offers_loop()
    await close_geocoder()


def create_app() -> FastAPI:
    app = FastAPI(
        title="GeoMarket API",
        description=(
            "Marketplace backend: owners publish stores and products, "
            "clients discover accepted stores within their radius of "
            "interest, admins review stores and send nearby offers."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(stores.router, prefix="/api/v1")
    app.include_router(products.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
