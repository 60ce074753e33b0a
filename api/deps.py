"""
Shared state and dependency getters for API route modules.
"""

import time

from config.settings import Settings, settings
from stepdoc.progress import CancellationToken

# --- Singletons ---

start_time = time.time()


def get_settings() -> Settings:
    return settings


def get_cancel_token() -> CancellationToken:
    """One token per request; cancelled if the client disconnects mid-export."""
    return CancellationToken()
