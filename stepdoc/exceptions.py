"""
stepdoc custom exceptions

Input malformation isolated to one image or step is logged and skipped by
the renderers; these exceptions cover the failures that reach the caller.
"""

from typing import Any, Dict, Optional


class StepDocError(Exception):
    """Base exception for stepdoc"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


class InvalidDocumentError(StepDocError):
    """Document payload is missing required fields or is structurally wrong"""
    pass


class InvalidOptionsError(StepDocError):
    """Export options carry an unsupported value"""
    pass


class ImageDecodeError(StepDocError):
    """A data URI could not be decoded into a raster"""
    pass


class CalloutRenderError(StepDocError):
    """A single callout failed to draw"""

    def __init__(self, callout_id: str, shape: str, reason: str):
        self.callout_id = callout_id
        self.shape = shape
        super().__init__(
            f"Callout draw failed: {reason}",
            {"callout": callout_id, "shape": shape},
        )


class PdfGenerationError(StepDocError):
    """The PDF could not be produced"""
    pass


class HtmlExportError(StepDocError):
    """The HTML module could not be produced"""
    pass


class BundleError(StepDocError):
    """Bundle assembly failed; no partial bundle is returned"""
    pass


class ExportCancelledError(StepDocError):
    """Export was cancelled through its cancellation token"""

    def __init__(self, stage: str = ""):
        self.stage = stage
        super().__init__("Export cancelled", {"stage": stage} if stage else None)
