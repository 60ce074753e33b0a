"""
Export pipeline - one call from a Document to a finished export.

    from stepdoc import render
    from stepdoc.models import Document, ExportOptions

    result = render(Document.from_dict(payload), ExportOptions(format="bundle"))
    Path(result.filename).write_bytes(result.content)

No state is kept between calls. Defaults (image padding, company fallback,
footer disclaimer, thumbnail width) come from ``config.settings``.
"""

import base64
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .bundle.orchestrator import BundleOrchestrator, bundle_filename
from .exceptions import ImageDecodeError, InvalidOptionsError
from .html.exporter import HtmlExporter
from .imaging.codec import encode_image
from .imaging.processor import ImageProcessor
from .models.document import Document, Screenshot
from .models.options import ExportFormat, ExportOptions, HtmlMode
from .pdf.renderer import PdfRenderer
from .pdf.themes import THEMES
from .progress import CancellationToken, ExportProgress, ProgressCallback

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "html": "text/html; charset=utf-8",
    "zip": "application/zip",
}


@dataclass(frozen=True)
class ExportResult:
    """A finished export"""
    format: ExportFormat
    filename: str
    media_type: str
    content: bytes
    text: Optional[str] = None  # standalone HTML only

    @property
    def size(self) -> int:
        return len(self.content)

    def to_data_uri(self) -> str:
        mime = self.media_type.split(";", 1)[0]
        return f"data:{mime};base64,{base64.b64encode(self.content).decode('ascii')}"


def _date_suffix(document: Document) -> str:
    digits = re.sub(r"\D", "", document.date or "")
    return f"-{digits}" if digits else ""


def pdf_filename(document: Document) -> str:
    return f"{document.slug}-sop{_date_suffix(document)}.pdf"


def html_filename(document: Document, mode: HtmlMode = HtmlMode.STANDALONE) -> str:
    if mode is HtmlMode.ZIP:
        return f"{document.slug}{_date_suffix(document)}.zip"
    return f"{document.slug}.html"


def _processor() -> ImageProcessor:
    from config.settings import settings
    return ImageProcessor(padding=settings.image_padding, corner_radius=settings.image_corner_radius)


def render(
    document: Document,
    options: Optional[ExportOptions] = None,
    cancel_token: Optional[CancellationToken] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ExportResult:
    """
    Export ``document`` in the format named by ``options.format``.

    Raises:
        InvalidOptionsError: unknown theme
        PdfGenerationError / HtmlExportError / BundleError: terminal export failure
        ExportCancelledError: ``cancel_token`` was cancelled
    """
    from config.settings import settings

    if options is None:
        options = ExportOptions(theme=settings.default_theme, quality=settings.default_quality)
    if options.theme not in THEMES:
        raise InvalidOptionsError(
            f"Unknown theme '{options.theme}' (expected one of: {', '.join(sorted(THEMES))})"
        )

    progress = ExportProgress(cancel_token=cancel_token, callback=progress_callback)
    processor = _processor()
    fmt = options.format
    logger.info(f"Export started: document={document.id} format={fmt.value} steps={len(document.steps)}")

    if fmt is ExportFormat.PDF:
        renderer = PdfRenderer(
            theme=options.theme,
            processor=processor,
            company_fallback=settings.company_fallback,
            disclaimer=settings.pdf_disclaimer,
        )
        content = renderer.render(document, options, progress)
        return ExportResult(fmt, pdf_filename(document), MEDIA_TYPES["pdf"], content)

    if fmt is ExportFormat.HTML:
        exporter = HtmlExporter(processor=processor)
        if options.html.mode is HtmlMode.ZIP:
            content = exporter.export_zip(document, options, progress)
            return ExportResult(fmt, html_filename(document, HtmlMode.ZIP), MEDIA_TYPES["zip"], content)
        html = exporter.export_standalone(document, options, progress)
        return ExportResult(fmt, html_filename(document), MEDIA_TYPES["html"], html.encode("utf-8"), text=html)

    orchestrator = BundleOrchestrator(
        processor=processor,
        thumbnail_width=settings.thumbnail_width,
        company_fallback=settings.company_fallback,
        disclaimer=settings.pdf_disclaimer,
    )
    content = orchestrator.build(document, options, progress)
    return ExportResult(fmt, bundle_filename(document), MEDIA_TYPES["zip"], content)


def render_preview(screenshot: Screenshot, framed: bool = False) -> str:
    """
    Composited PNG data URI for the editor's live preview.

    Returns the screenshot's own data URL when it can't be decoded.
    """
    processor = _processor()
    try:
        image = processor.prepare_for_export(screenshot.data_url, screenshot.callouts, framed=framed)
    except (ImageDecodeError, OSError, ValueError) as e:
        logger.warning(f"Preview for screenshot {screenshot.id} fell back to the raw image: {e}")
        return screenshot.data_url
    return encode_image(image, fmt="PNG")
