"""
Hauler Portal API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hauler_portal.api import api_router
from hauler_portal.core.config import settings
from hauler_portal.core.database import close_db, init_db
from hauler_portal.core.redis import close_redis, init_redis, redis_status

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Redis only backs onboarding drafts, so a Redis failure is tolerated
    outside production; drafts then fall back to memory.
    """
    # Startup
    print(f"Starting Hauler Portal API in {settings.python_env} mode...")

    # Initialize Redis
    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize Database
    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    yield  # Application runs here

    # Shutdown
    print("Shutting down Hauler Portal API...")
    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Hauler Portal API",
    description="Hauler onboarding intake and review API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to Hauler Portal API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/health/redis", tags=["Health"])
async def redis_health() -> dict[str, str]:
    return {"redis": await redis_status()}
