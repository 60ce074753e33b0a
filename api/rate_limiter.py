#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Rate limiting for the stepdoc API

Export renders are CPU bound (every screenshot is decoded, composited and
re-encoded), so they get a tight per-client budget. Preview is cheap and
called on every editor interaction.

Usage:
    from api.rate_limiter import limiter, rate_limit_config

    @router.post("/api/export")
    @limiter.limit(rate_limit_config.get_limit("export"))
    async def export(request: Request, ...):
        ...

Environment:
    RATE_LIMIT_EXPORT=20/minute   per-category override
    RATE_LIMIT=100/minute         fallback for categories without a default
    RATE_LIMIT_ENABLED=false      switch limiting off (tests, trusted deployments)
"""

import os
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config.logging_config import get_logger
from config.settings import settings

logger = get_logger(__name__)

PERIOD_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}


def parse_limit(limit_str: str) -> Tuple[int, int]:
    """
    Split "count/period" into (count, period_seconds).

    Unknown periods count as a minute. Raises ValueError for anything that
    is not "<int>/<word>".
    """
    parts = limit_str.split("/")
    if len(parts) != 2:
        raise ValueError(f"Invalid limit format: {limit_str}")

    count = int(parts[0])
    period = parts[1].strip().lower().rstrip("s")
    return count, PERIOD_SECONDS.get(period, 60)


@dataclass
class RateLimitConfig:
    """Per-category limits as "count/period" strings, e.g. "10/minute"."""

    defaults: Dict[str, str] = field(default_factory=lambda: {
        "export": settings.export_rate_limit,
        "preview": settings.preview_rate_limit,
        "default": "60/minute",
    })

    env_overrides: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        for key in self.defaults:
            if env_value := os.getenv(f"RATE_LIMIT_{key.upper()}"):
                self.env_overrides[key] = env_value

        if global_limit := os.getenv("RATE_LIMIT"):
            self.env_overrides["default"] = global_limit

        for value in self.get_all_limits().values():
            parse_limit(value)

    def get_limit(self, endpoint: str) -> str:
        """
        Limit for an endpoint category.

        Env override first, then the category default, then the global default.
        """
        if endpoint in self.env_overrides:
            return self.env_overrides[endpoint]
        if endpoint in self.defaults:
            return self.defaults[endpoint]
        return self.env_overrides.get("default", self.defaults["default"])

    def get_all_limits(self) -> Dict[str, str]:
        result = self.defaults.copy()
        result.update(self.env_overrides)
        return result


rate_limit_config = RateLimitConfig()


def get_client_identifier(request: Request) -> str:
    """API key prefix when the caller sends one, otherwise the remote address."""
    if api_key := request.headers.get("X-API-Key"):
        return f"api:{api_key[:8]}"
    return get_remote_address(request)


def create_limiter(key_func: Optional[Callable] = None, enabled: Optional[bool] = None) -> Limiter:
    """
    Build the slowapi limiter.

    Counters live in memory unless ``settings.rate_limit_storage_uri`` points
    at a shared backend.
    """
    limiter_kwargs = {
        "key_func": key_func or get_client_identifier,
        "default_limits": [rate_limit_config.get_limit("default")],
        "enabled": settings.rate_limit_enabled if enabled is None else enabled,
    }
    if settings.rate_limit_storage_uri:
        limiter_kwargs["storage_uri"] = settings.rate_limit_storage_uri

    logger.debug(f"Rate limits: {rate_limit_config.get_all_limits()} (enabled={limiter_kwargs['enabled']})")
    return Limiter(**limiter_kwargs)


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """JSON 429 with a Retry-After matching the exceeded limit's period."""
    limit_value = str(exc.detail) if hasattr(exc, "detail") else "Rate limit exceeded"

    retry_after = 60
    if getattr(exc, "limit", None) is not None:
        limit_item = exc.limit.limit
        retry_after = limit_item.get_expiry()

    logger.warning(f"Rate limit exceeded for {get_client_identifier(request)} on {request.url.path}: {limit_value}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "detail": limit_value,
            "retry_after_seconds": retry_after,
            "timestamp": time.time(),
        },
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": limit_value,
        },
    )
