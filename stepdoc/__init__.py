"""
stepdoc - step-by-step documentation renderer

Turns an annotated screenshot document (steps, screenshots, callouts) into
a paginated PDF manual, an interactive HTML training module, or a training
bundle ZIP containing both plus resources.

Usage:
    from stepdoc import render
    from stepdoc.models import Document, ExportOptions

    document = Document.from_dict(payload)
    result = render(document, ExportOptions(format="pdf", theme="modern"))
    Path(result.filename).write_bytes(result.content)
"""

__version__ = "1.0.0"

from .exceptions import (
    StepDocError,
    InvalidDocumentError,
    InvalidOptionsError,
    ImageDecodeError,
    CalloutRenderError,
    PdfGenerationError,
    HtmlExportError,
    BundleError,
    ExportCancelledError,
)
from .progress import CancellationToken, ExportProgress
from .pipeline import ExportResult, render, render_preview

__all__ = [
    "__version__",
    "StepDocError",
    "InvalidDocumentError",
    "InvalidOptionsError",
    "ImageDecodeError",
    "CalloutRenderError",
    "PdfGenerationError",
    "HtmlExportError",
    "BundleError",
    "ExportCancelledError",
    "CancellationToken",
    "ExportProgress",
    "ExportResult",
    "render",
    "render_preview",
]
