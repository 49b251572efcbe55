"""Campsite Admin — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campsite_admin.api.v1.bookings import router as bookings_router
from campsite_admin.config import settings
from campsite_admin.database import async_session_factory, engine
from campsite_admin.tasks.expiry import BookingExpirySweeper

# Configure root logger so all campsite_admin.* loggers output to stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the expiry sweeper on startup; stop it and dispose the pool on shutdown."""
    sweeper = BookingExpirySweeper(async_session_factory, settings)
    app.state.expiry_sweeper = sweeper
    if settings.sweeper_enabled:
        sweeper.start()
    yield
    await sweeper.stop()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Admin backend for campsite bookings and PayU payments.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

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


def run() -> None:
    """Serve the application with uvicorn (``campsite-admin`` console script)."""
    uvicorn.run(app, host="0.0.0.0", port=8000)
