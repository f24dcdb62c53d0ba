"""
FastAPI Application - LegalLens Backend
Main application entry point with logging, CORS and router configuration.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from legallens.config import get_settings
from legallens.database import create_tables
from legallens.routers import auth, contracts, uploads, chat, compare, recent


settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    create_tables()
    yield


app = FastAPI(
    title="LegalLens API",
    description="Contract upload, AI risk analysis, comparison and chat",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(contracts.router, prefix="/api/contracts", tags=["Contracts"])
app.include_router(uploads.router, prefix="/api/uploads", tags=["Uploads"])
app.include_router(chat.router, prefix="/api/chat", tags=["Assistant Chat"])
app.include_router(compare.router, prefix="/api/compare", tags=["Comparison"])
app.include_router(recent.router, prefix="/api/recent", tags=["Recent Analyses"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "LegalLens API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
