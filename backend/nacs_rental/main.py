"""
NACS Car Rental API
FastAPI application wiring routers, CORS and the shared pricing/catalog collaborators
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from nacs_rental.api.v1 import bookings, pricing, vehicles
from nacs_rental.core.config import settings
from nacs_rental.services.catalog.cache import CatalogCache
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One cache and one memoizing engine per process, shared by all requests
    app.state.catalog_cache = CatalogCache(ttl_seconds=settings.CATALOG_CACHE_TTL_SECONDS)
    app.state.pricing_engine = BookingPricingEngine()
    app.state.booking_store = None

    app.include_router(pricing.router, prefix="/api/v1/pricing", tags=["pricing"])
    app.include_router(vehicles.router, prefix="/api/v1/vehicles", tags=["vehicles"])
    app.include_router(bookings.router, prefix="/api/v1/bookings", tags=["bookings"])

    @app.get("/health", tags=["health"])
    async def health():
        return {
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "version": settings.API_VERSION,
        }

    logger.info(f"🚗 {settings.API_TITLE} v{settings.API_VERSION} ready ({settings.ENVIRONMENT})")
    return app


app = create_app()
