"""StayEngine — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from stayengine.api.v1.availability import router as availability_router
from stayengine.api.v1.blocks import router as blocks_router
from stayengine.api.v1.bookings import router as bookings_router
from stayengine.api.v1.quotes import router as quotes_router
from stayengine.config import settings
from stayengine.errors import StayEngineError

# Configure root logger so all stayengine.* loggers output to stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    yield
    # Shutdown: dispose engine connections
    from stayengine.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Availability reconciliation and fee-inclusive pricing for short-term rental units.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Middleware, added in reverse execution order (last added runs first on request).
# SessionMiddleware is added BEFORE CORS so that CORS headers are always present.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key)


@app.exception_handler(StayEngineError)
async def stayengine_error_handler(request: Request, exc: StayEngineError) -> JSONResponse:
    """Render domain errors as ``{"detail": ..., "code": ...}``."""
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# Routers
app.include_router(availability_router)
app.include_router(blocks_router)
app.include_router(quotes_router)
app.include_router(bookings_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
