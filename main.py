#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main application entry point - Kay AI study tools API
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from kabyar.ai_api import router as ai_router
from kabyar.config import settings
from kabyar.errors import register_exception_handlers
from kabyar.helpers import info_log
from kabyar.providers.router import provider_router
from kabyar.services.network_manager import network_manager
from kabyar.services.thesys_service import thesys_service
from kabyar.user_api import router as user_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    info_log("[STARTUP] Kay AI API ready", default_provider=settings.DEFAULT_PROVIDER, port=settings.LISTEN_PORT)
    yield
    await provider_router.aclose()
    await thesys_service.adapter.aclose()
    await network_manager.cleanup_clients()


# Create FastAPI app
app = FastAPI(
    title="Kay AI API",
    description="Study tools backed by OpenAI, Claude, Gemini and Grok",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id"],
)

register_exception_handlers(app)

# Include API routers
app.include_router(ai_router)
app.include_router(user_router)


@app.options("/")
async def handle_options():
    """Handle OPTIONS requests"""
    return Response(status_code=200)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Kay AI API",
        "version": "1.0.0",
        "description": "Essay writer, AI detector, humanizer, study guides, presentations and tutor chat",
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import os

    import uvicorn

    # Threads, credits and profiles live in process memory, so one worker
    # unless explicitly overridden
    workers = int(os.getenv("UVICORN_WORKERS", "1"))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.LISTEN_PORT,
        workers=workers,
        http="httptools",
        reload=False,
        log_level="info",
    )
