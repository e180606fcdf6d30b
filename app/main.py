"""
FastAPI application for the booking engine

Public booking pages, the tenant dashboard API and health checks
"""
import uvicorn
from collections import defaultdict
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from contextlib import asynccontextmanager
import logging

from app.config.settings import get_settings
from app.config.redis import get_redis_pool
from app.core.exceptions import register_exception_handlers
from app.core.middleware import correlation_id_middleware, request_logging_middleware
from app.core.monitoring import health_router
from app.api.v1.router import api_v1_router
from app.api.middleware.rate_limit_middleware import RateLimitMiddleware
from app.services.rate_limit.rate_limit_store import (
    RateLimitStore,
    InMemoryRateLimitStore,
    RedisRateLimitStore,
)
from app.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


def build_rate_limit_store() -> RateLimitStore:
    """Redis-backed in deployments, per-instance memory otherwise"""
    if settings.RATE_LIMIT_BACKEND == "redis":
        import redis.asyncio as redis
        return RedisRateLimitStore(redis.Redis(connection_pool=get_redis_pool()))
    return InMemoryRateLimitStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    logger.info(f"🚀 {settings.APP_NAME} starting up...")

    routes_list = []
    for route in app.routes:
        if isinstance(route, APIRoute):
            for method in route.methods:
                routes_list.append((method, route.path, route.name, route.tags))

    routes_list.sort(key=lambda x: (x[1], x[0]))

    # Group by tag
    routes_by_tag = defaultdict(list)
    for method, path, name, tags in routes_list:
        tag = tags[0] if tags else "other"
        routes_by_tag[tag].append((method, path, name))

    for tag, routes in sorted(routes_by_tag.items()):
        logger.debug(f"[{tag.upper()}]")
        for method, path, name in routes:
            logger.debug(f"  {method:8} {path:60} ({name})")

    logger.info(f"✅ Total routes registered: {len(routes_list)}")

    yield

    # Shutdown
    logger.info(f"🛑 {settings.APP_NAME} shutting down...")


def create_app(rate_limit_store: RateLimitStore = None) -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Availability, slot generation and booking requests for multi-tenant scheduling",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    register_exception_handlers(app)

    app.state.rate_limit_store = rate_limit_store or build_rate_limit_store()
    app.add_middleware(
        RateLimitMiddleware,
        store=app.state.rate_limit_store,
        requests_per_minute=settings.PUBLIC_RATE_LIMIT_PER_MINUTE,
        trusted_proxy_count=settings.TRUSTED_PROXY_COUNT,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "public": "/api/v1/public/booking/{token}",
                "dashboard": "/api/v1/dashboard/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
