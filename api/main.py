#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for stepdoc.

Thin orchestration shell: app creation, middleware, router includes and
exception handlers.

Usage:
    uvicorn api.main:app --host 127.0.0.1 --port 8000
"""

from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from config.logging_config import get_logger, setup_logging
from config.settings import settings

setup_logging(settings.log_level)
logger = get_logger(__name__)

from api.rate_limiter import limiter, rate_limit_exceeded_handler
from api.routes.export import router as export_router
from api.routes.health import router as health_router
from stepdoc import __version__
from stepdoc.exceptions import StepDocError

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="stepdoc API",
    description="Render annotated step-by-step documents to PDF, interactive HTML and training bundles",
    version=__version__,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(StepDocError)
async def stepdoc_exception_handler(request: Request, exc: StepDocError):
    """Anything a route didn't map explicitly is a server-side failure"""
    logger.error(f"Unhandled stepdoc error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": type(exc).__name__, "message": exc.message, "context": exc.context},
    )


# CORS middleware - origins from settings (env var) or dev defaults
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(export_router)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {settings.app_name} API on {settings.api_host}:{settings.api_port}")
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
