"""
Training bundle - PDF manual, interactive module and resources in one ZIP.

Archive layout:
    manual/training-manual.pdf
    interactive/training-module.html
    resources/company-logo.png            (if the document has a logo)
    resources/background-image.png        (if it has a background image)
    resources/style-guide.css
    resources/quick-reference.txt
    resources/thumbnails/step-{n}.jpg     (one per step with a screenshot)
    README.txt
    package-info.json

The manual and the module are required: if either fails the whole bundle
fails. Every resource is optional and is logged and skipped on failure.
"""

import logging
import zipfile
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

from ..exceptions import BundleError, ExportCancelledError, ImageDecodeError, StepDocError
from ..html.exporter import HtmlExporter, write_zip
from ..imaging.codec import decode_image, image_to_bytes
from ..imaging.processor import ImageProcessor
from ..models.document import Document
from ..models.options import ExportOptions, HtmlMode
from ..pdf.renderer import DEFAULT_DISCLAIMER, PdfRenderer
from ..pdf.themes import get_theme
from ..progress import ExportProgress
from . import resources

logger = logging.getLogger(__name__)


def bundle_filename(document: Document) -> str:
    return f"{document.slug}-training-bundle.zip"


class BundleOrchestrator:
    """
    Builds the training bundle for a document.

    Args:
        processor: Image processor shared by the PDF, HTML and thumbnail stages
        thumbnail_width: Width in pixels of the per-step thumbnails
        company_fallback: Company name used in PDF footers when the document has none
        disclaimer: PDF footer disclaimer
        clock: Returns the ``created`` timestamp written to package-info.json

    Example:
        >>> archive = BundleOrchestrator().build(document, ExportOptions(format="bundle"))
    """

    def __init__(
        self,
        processor: Optional[ImageProcessor] = None,
        thumbnail_width: int = 320,
        company_fallback: str = "stepdoc",
        disclaimer: str = DEFAULT_DISCLAIMER,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.processor = processor or ImageProcessor()
        self.thumbnail_width = thumbnail_width
        self.company_fallback = company_fallback
        self.disclaimer = disclaimer
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.html_exporter = HtmlExporter(processor=self.processor)

    # ------------------------------------------------------------------
    # Required parts
    # ------------------------------------------------------------------

    def _render_pdf(self, document: Document, options: ExportOptions, progress: ExportProgress) -> bytes:
        try:
            renderer = PdfRenderer(
                theme=options.theme,
                processor=self.processor,
                company_fallback=self.company_fallback,
                disclaimer=self.disclaimer,
            )
            return renderer.render(document, options, progress)
        except ExportCancelledError:
            raise
        except (StepDocError, ValueError, OSError) as e:
            raise BundleError(f"PDF manual failed: {e}", {"part": resources.PDF_PATH})

    def _render_html(self, document: Document, options: ExportOptions, progress: ExportProgress) -> str:
        standalone = replace(options, html=replace(options.html, mode=HtmlMode.STANDALONE))
        try:
            return self.html_exporter.export_standalone(document, standalone, progress)
        except ExportCancelledError:
            raise
        except (StepDocError, ValueError, OSError) as e:
            raise BundleError(f"Interactive module failed: {e}", {"part": resources.HTML_PATH})

    # ------------------------------------------------------------------
    # Optional resources
    # ------------------------------------------------------------------

    @staticmethod
    def _as_png(data_url: str) -> bytes:
        return image_to_bytes(decode_image(data_url), "PNG")

    def _add_branding(self, document: Document, files: Dict[str, Union[str, bytes]]) -> None:
        for path, data_url in (
            (resources.LOGO_PATH, document.logo),
            (resources.BACKGROUND_PATH, document.background_image),
        ):
            if not data_url:
                continue
            try:
                files[path] = self._as_png(data_url)
            except (ImageDecodeError, OSError, ValueError) as e:
                logger.warning(f"Bundle resource {path} skipped: {e}")

    def _add_thumbnails(self, document: Document, files: Dict[str, Union[str, bytes]], progress: ExportProgress) -> None:
        for index, step in enumerate(document.steps):
            shot = step.primary_screenshot
            if shot is None:
                continue
            progress.check("bundle:thumbnail")
            path = resources.thumbnail_path(index + 1)
            try:
                files[path] = self.processor.thumbnail(shot.data_url, width=self.thumbnail_width)
            except (ImageDecodeError, OSError, ValueError) as e:
                logger.warning(f"Step {index + 1}: thumbnail {path} skipped: {e}")

    def _add_text_resources(self, document: Document, options: ExportOptions, files: Dict[str, Union[str, bytes]]) -> None:
        if options.bundle.include_style_guide:
            try:
                files[resources.STYLE_GUIDE_PATH] = resources.build_style_guide(document, get_theme(options.theme))
            except ValueError as e:
                logger.warning(f"Bundle resource {resources.STYLE_GUIDE_PATH} skipped: {e}")
        if options.bundle.include_quick_reference:
            files[resources.QUICK_REFERENCE_PATH] = resources.build_quick_reference(document)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def build(
        self,
        document: Document,
        options: Optional[ExportOptions] = None,
        progress: Optional[ExportProgress] = None,
        created: Optional[datetime] = None,
    ) -> bytes:
        """
        Build the bundle ZIP.

        Raises:
            BundleError: if the PDF, the HTML or the archive itself fails
            ExportCancelledError: if the cancellation token fires
        """
        options = options or ExportOptions()
        progress = progress or ExportProgress()
        created = created or self.clock()
        stages = 5

        files: Dict[str, Union[str, bytes]] = {}

        progress.check("bundle:pdf")
        progress.report(0, stages, "Generating PDF manual")
        files[resources.PDF_PATH] = self._render_pdf(document, options, progress)

        progress.check("bundle:html")
        progress.report(1, stages, "Generating interactive module")
        files[resources.HTML_PATH] = self._render_html(document, options, progress)

        progress.check("bundle:resources")
        progress.report(2, stages, "Adding resources")
        self._add_branding(document, files)
        self._add_text_resources(document, options, files)
        if options.bundle.include_thumbnails:
            self._add_thumbnails(document, files, progress)

        progress.check("bundle:readme")
        progress.report(3, stages, "Writing package information")
        listed: List[str] = list(files)
        if options.bundle.include_readme:
            listed.append(resources.README_PATH)
            files[resources.README_PATH] = resources.build_readme(document, listed, created)
        info = resources.build_package_info(document, options, listed, created)
        files[resources.PACKAGE_INFO_PATH] = resources.dump_package_info(info)

        progress.check("bundle:zip")
        progress.report(4, stages, "Creating archive")
        try:
            archive = write_zip(files)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            raise BundleError(f"Failed to write bundle archive: {e}", {"document": document.id})

        progress.report(stages, stages, "Bundle ready")
        logger.info(f"Bundle built: {len(files)} files, {len(archive)} bytes")
        return archive
