"""
Export progress reporting and cooperative cancellation.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .exceptions import ExportCancelledError

logger = logging.getLogger(__name__)


# (current, total, message)
ProgressCallback = Callable[[int, int, str], None]


class CancellationToken:
    """
    Cancellation flag threaded through an export.

    Renderers call ``raise_if_cancelled`` between steps, images and bundle
    stages; cancelling from another thread stops the export at the next
    check and no partial output is returned.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: str = ""

    def cancel(self, reason: str = "") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            logger.info(f"Export cancelled at stage '{stage}' {self.reason}".rstrip())
            raise ExportCancelledError(stage)


@dataclass
class ExportProgress:
    """Bundles the token and callback passed down through the renderers."""
    cancel_token: Optional[CancellationToken] = None
    callback: Optional[ProgressCallback] = None

    def check(self, stage: str) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(stage)

    def report(self, current: int, total: int, message: str) -> None:
        if self.callback is None:
            return
        try:
            self.callback(current, total, message)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
