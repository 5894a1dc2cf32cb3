"""
Main application entry point for the Lost Pets API.

This module initializes the FastAPI application, configures logging
and CORS, creates the database tables, initializes the rate limiter
with a Redis backend and includes the routers for authentication,
users, pets and sighting reports.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- FastAPILimiter: Rate limiting of public endpoints
- redis.asyncio: Async Redis client
- fakeredis: In-process Redis used when the server is unreachable
- app.database: Database engine
- app.models: SQLAlchemy models
- app.core: Application settings
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_limiter import FastAPILimiter
from fakeredis import FakeAsyncRedis
import redis.asyncio as redis

from app.database import engine
from app import models
from app.auth import router as auth_router
from app.users import router as users_router
from app.pets import router as pets_router
from app.reports import router as reports_router
from app.core import configure_logging, get_settings

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("lostpets")


async def init_rate_limiter():
    """
    Initialize the rate limiter with the Redis backend.

    Falls back to an in-process FakeRedis when the server is
    unavailable (e.g. during local development).
    """
    redis_client = redis.from_url(
        settings.REDIS_URL, encoding="utf-8", decode_responses=True
    )
    try:
        await FastAPILimiter.init(redis_client)
    except Exception:
        logger.warning("Redis unavailable at %s, using in-process limiter", settings.REDIS_URL)
        await FastAPILimiter.init(FakeAsyncRedis(decode_responses=True))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables (for development only)
    models.Base.metadata.create_all(bind=engine)
    if settings.RATE_LIMIT_ENABLED:
        await init_rate_limiter()
    yield
    if settings.RATE_LIMIT_ENABLED:
        await FastAPILimiter.close()


# Initialize FastAPI application
app = FastAPI(title="Lost Pets API", lifespan=lifespan)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed input as ``400 invalid_argument``."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "invalid_argument", "errors": jsonable_encoder(exc.errors())},
    )


# Include routers for application areas
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(pets_router)
app.include_router(reports_router)


@app.get("/health")
def health():
    """Liveness check."""
    return {"ok": True}


@app.get("/")
def root():
    """
    Root endpoint for the API.

    Returns a simple JSON message directing users to the Swagger UI.
    """
    return {"msg": "Lost Pets API. Visit /docs for Swagger UI"}
