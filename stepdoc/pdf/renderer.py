"""
PDF layout engine using ReportLab.

Renders a Document as: cover page, optional table of contents, then content
pages planned by ``layout.plan_pages``. Footers are drawn in a final pass
over every page once the total page count is known.
"""

import io
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image
from reportlab.lib.colors import HexColor, white
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as rl_canvas

from ..exceptions import ImageDecodeError, PdfGenerationError
from ..imaging.codec import decode_image, flatten
from ..imaging.processor import ImageProcessor
from ..models.document import Document, Step
from ..models.options import ExportOptions
from ..progress import ExportProgress
from .fonts import FontManager
from .layout import (
    ImageSlotInput,
    ItemKind,
    LayoutMetrics,
    PlacedItem,
    PlannedPage,
    StepBlock,
    plan_pages,
    step_pages,
)
from .text import text_width, truncate_to_width, wrap_text
from .themes import PageSpec, PdfTheme, get_theme

logger = logging.getLogger(__name__)


DEFAULT_SUBTITLE = "STANDARD OPERATING PROCEDURE"
DEFAULT_DISCLAIMER = "Confidential - for internal training use only. Verify steps against current systems."

LOGO_BOX = (60 * mm, 30 * mm)
TOC_ROW_HEIGHT = 20
TOC_HEADER_HEIGHT = 70


class FooterCanvas(rl_canvas.Canvas):
    """
    Canvas that defers page output until ``save``.

    Each finished page's state is kept, and on ``save`` the footer callback
    runs over every page with the final page count.
    """

    def __init__(self, *args, footer: Optional[Callable[["FooterCanvas", int, int], None]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: List[dict] = []
        self._footer = footer

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            if self._footer is not None:
                self._footer(self, self._pageNumber, total)
            super().showPage()
        super().save()


def fit_within(width: float, height: float, max_width: float, max_height: float) -> Tuple[float, float]:
    """Scale (width, height) to fit the box, preserving aspect ratio"""
    if width <= 0 or height <= 0:
        return (0.0, 0.0)
    scale = min(max_width / width, max_height / height)
    return (width * scale, height * scale)


@dataclass
class _PreparedStep:
    block: StepBlock
    images: Dict[str, Image.Image]


class PdfRenderer:
    """
    Paginated PDF output for a Document.

    Example:
        >>> renderer = PdfRenderer(theme="modern")
        >>> pdf_bytes = renderer.render(document, options)
    """

    def __init__(
        self,
        theme: str = "professional",
        processor: Optional[ImageProcessor] = None,
        page: Optional[PageSpec] = None,
        company_fallback: str = "stepdoc",
        disclaimer: str = DEFAULT_DISCLAIMER,
        font_manager: Optional[FontManager] = None,
    ):
        self.theme: PdfTheme = get_theme(theme)
        self.processor = processor or ImageProcessor()
        self.page = page or PageSpec.a4()
        self.company_fallback = company_fallback
        self.disclaimer = disclaimer
        self.fonts = font_manager or FontManager()
        self.metrics = LayoutMetrics(text_font=self.fonts.regular)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def render(
        self,
        document: Document,
        options: Optional[ExportOptions] = None,
        progress: Optional[ExportProgress] = None,
    ) -> bytes:
        """
        Render the document to PDF bytes.

        Raises:
            PdfGenerationError: if ReportLab fails to produce the file
            ExportCancelledError: if the cancellation token fires
        """
        options = options or ExportOptions()
        progress = progress or ExportProgress()

        prepared = self._prepare_steps(document, options, progress)
        blocks = [p.block for p in prepared]
        images: Dict[str, Image.Image] = {}
        for p in prepared:
            images.update(p.images)

        include_toc = options.include_table_of_contents and bool(document.steps)
        toc_pages = self._toc_page_count(len(document.steps)) if include_toc else 0
        first_content_page = 2 + toc_pages

        pages = plan_pages(
            blocks,
            self.page,
            self.metrics,
            first_page_number=first_content_page,
            heading=self._heading_lines(document, options),
        )

        progress.check("pdf:draw")
        buffer = io.BytesIO()
        try:
            c = FooterCanvas(
                buffer,
                pagesize=self.page.size,
                invariant=1,
                footer=lambda cv, n, total: self._draw_footer(cv, n, total, document, options),
            )
            c.setTitle(document.title)
            c.setAuthor(document.company_name or self.company_fallback)
            c.setSubject(document.topic or DEFAULT_SUBTITLE.title())

            self._draw_cover(c, document)
            c.showPage()

            if include_toc:
                self._draw_toc(c, document, step_pages(pages), toc_pages)

            for page in pages:
                progress.check("pdf:page")
                self._draw_page(c, page, document, images, options)
                c.showPage()

            c.save()
        except (OSError, ValueError) as e:
            raise PdfGenerationError(f"PDF generation failed: {e}", {"document": document.id})

        logger.info(f"PDF rendered: {len(pages) + 1 + toc_pages} pages, {len(document.steps)} steps")
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    @staticmethod
    def _step_body(step: Step) -> str:
        parts = []
        if step.title and step.description:
            parts.append(step.description)
        if step.detailed_instructions:
            parts.append(step.detailed_instructions)
        if step.notes:
            parts.append(f"Note: {step.notes}")
        if step.key_takeaway:
            parts.append(f"Key takeaway: {step.key_takeaway}")
        return "\n".join(parts)

    def _prepare_image(
        self,
        key: str,
        data_url: str,
        callouts,
        options: ExportOptions,
        step_index: int,
        images: Dict[str, Image.Image],
    ) -> Optional[float]:
        try:
            image = self.processor.prepare_for_export(data_url, callouts, quality=options.quality)
        except (ImageDecodeError, OSError, ValueError) as e:
            logger.warning(f"Step {step_index + 1}: image {key} skipped: {e}")
            return None
        images[key] = flatten(image)
        return image.width / image.height

    def _prepare_steps(self, document: Document, options: ExportOptions, progress: ExportProgress) -> List[_PreparedStep]:
        prepared = []
        total = len(document.steps)
        for index, step in enumerate(document.steps):
            progress.check("pdf:prepare")
            progress.report(index, total, f"Preparing step {index + 1}")

            images: Dict[str, Image.Image] = {}
            primary, secondary = [], []
            for k, shot in enumerate(step.screenshots):
                key = f"step-{index + 1}-{k + 1}"
                aspect = self._prepare_image(key, shot.data_url, shot.callouts, options, index, images)
                primary.append(ImageSlotInput(key=key, aspect=aspect))
                if shot.secondary is not None:
                    sec_key = f"{key}-secondary"
                    sec_aspect = self._prepare_image(
                        sec_key, shot.secondary.data_url, shot.secondary.callouts, options, index, images
                    )
                    secondary.append(ImageSlotInput(
                        key=sec_key,
                        aspect=sec_aspect,
                        secondary=True,
                        caption=f"Step {index + 1}: {shot.title or 'after'}",
                    ))

            block = StepBlock(
                index=index,
                heading=step.heading,
                body=self._step_body(step),
                images=primary,
                secondary=secondary,
            )
            prepared.append(_PreparedStep(block=block, images=images))
        progress.report(total, total, "Steps prepared")
        return prepared

    def _heading_lines(self, document: Document, options: ExportOptions) -> List[str]:
        lines = ["Procedure"]
        if options.include_progress_info:
            summary = f"{len(document.steps)} steps • {document.screenshot_count} screenshots"
            if document.estimated_minutes:
                summary += f" • ~{document.estimated_minutes} min"
            lines.append(summary)
        return lines

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------

    def _y(self, top: float, height: float = 0) -> float:
        """Top-down layout y to ReportLab's bottom-up y"""
        return self.page.height - top - height

    # ------------------------------------------------------------------
    # Cover
    # ------------------------------------------------------------------

    def _draw_cover(self, c: rl_canvas.Canvas, document: Document) -> None:
        page = self.page
        center_x = page.width / 2
        primary = self.theme.color("primary")

        c.setFillColor(self.theme.color("background"))
        c.rect(0, 0, page.width, page.height, stroke=0, fill=1)

        logo_offset = 0.0
        y = page.height / 2 - 60  # top-down cursor
        if document.logo:
            logo = self._load_logo(document.logo)
            if logo is not None:
                w, h = fit_within(logo.width, logo.height, *LOGO_BOX)
                c.drawImage(ImageReader(logo), center_x - w / 2, self._y(y - h - 20, h), w, h)
                logo_offset = 10

        title_font = self.fonts.bold
        title_lines = wrap_text(document.title, title_font, 36, page.content_width)[:3]
        y += logo_offset + 10
        c.setFillColor(primary)
        c.setFont(title_font, 36)
        for line in title_lines:
            c.drawCentredString(center_x, self._y(y), line)
            y += 42

        subtitle = (document.topic or DEFAULT_SUBTITLE).upper()
        c.setFillColor(self.theme.color("text_light"))
        c.setFont(self.fonts.regular, 16)
        c.drawCentredString(center_x, self._y(y), truncate_to_width(subtitle, self.fonts.regular, 16, page.content_width))
        y += 18

        line_w = min(120, page.content_width * 0.3)
        c.setStrokeColor(primary)
        c.setLineWidth(1.5)
        c.line(center_x - line_w / 2, self._y(y), center_x + line_w / 2, self._y(y))
        c.setFillColor(primary)
        for dx in (-line_w / 2 - 6, line_w / 2 + 6):
            c.circle(center_x + dx, self._y(y), 2, stroke=0, fill=1)

        y += 35
        if document.date:
            c.setFillColor(self.theme.color("text_light"))
            c.setFont(self.fonts.regular, 12)
            c.drawCentredString(center_x, self._y(y), document.date)
            y += 15

        if document.company_name:
            c.setFillColor(self.theme.color("secondary"))
            c.setFont(self.fonts.bold, 11)
            c.drawCentredString(center_x, self._y(y), document.company_name.upper())

    def _load_logo(self, data_url: str) -> Optional[Image.Image]:
        try:
            return flatten(decode_image(data_url))
        except ImageDecodeError as e:
            logger.warning(f"Logo skipped: {e}")
            return None

    # ------------------------------------------------------------------
    # Table of contents
    # ------------------------------------------------------------------

    def _toc_rows_per_page(self) -> int:
        usable = self.page.content_bottom - self.page.content_top - TOC_HEADER_HEIGHT
        return max(1, int(usable // TOC_ROW_HEIGHT))

    def _toc_page_count(self, step_count: int) -> int:
        return max(1, math.ceil(step_count / self._toc_rows_per_page()))

    def _draw_toc(self, c: rl_canvas.Canvas, document: Document, pages_by_step: Dict[int, int], toc_pages: int) -> None:
        rows = self._toc_rows_per_page()
        left = self.page.left_margin
        right = self.page.width - self.page.right_margin
        primary = self.theme.color("primary")

        for page_index in range(toc_pages):
            y = self.page.content_top
            c.setFillColor(self.theme.color("secondary"))
            c.setFont(self.fonts.bold, 28)
            c.drawString(left, self._y(y + 24), "Table of Contents")
            c.setFillColor(self.theme.color("text_light"))
            c.setFont(self.fonts.regular, 11)
            subtitle = f"{len(document.steps)} Steps"
            if document.topic:
                subtitle += f" • {document.topic}"
            c.drawString(left, self._y(y + 44), subtitle)
            y += TOC_HEADER_HEIGHT

            start = page_index * rows
            for index in range(start, min(start + rows, len(document.steps))):
                step = document.steps[index]
                baseline = self._y(y + 14)

                c.setFillColor(primary)
                c.circle(left + 8, baseline + 3.5, 8, stroke=0, fill=1)
                c.setFillColor(white)
                c.setFont(self.fonts.bold, 8)
                c.drawCentredString(left + 8, baseline + 0.5, str(index + 1))

                page_label = str(pages_by_step.get(index, ""))
                c.setFont(self.fonts.regular, 10)
                label_w = text_width(page_label, self.fonts.regular, 10)
                c.setFillColor(self.theme.color("text_light"))
                c.drawRightString(right, baseline, page_label)

                c.setFillColor(self.theme.color("text"))
                title = truncate_to_width(step.heading, self.fonts.regular, 10, right - left - 28 - label_w - 12)
                c.drawString(left + 24, baseline, title)

                c.setStrokeColor(self.theme.color("border"))
                c.setLineWidth(0.5)
                c.line(left + 24, baseline - 5, right, baseline - 5)
                y += TOC_ROW_HEIGHT
            c.showPage()

    # ------------------------------------------------------------------
    # Content pages
    # ------------------------------------------------------------------

    def _draw_page(self, c, page: PlannedPage, document: Document, images: Dict[str, Image.Image], options: ExportOptions) -> None:
        for item in page.items:
            if item.kind is ItemKind.HEADING:
                self._draw_heading(c, item)
            elif item.kind is ItemKind.HEADER:
                self._draw_pill(c, item, options.include_progress_info)
            elif item.kind is ItemKind.TEXT:
                self._draw_text(c, item)
            elif item.kind is ItemKind.CAPTION:
                self._draw_caption(c, item)
            elif item.kind is ItemKind.IMAGE:
                self._draw_image(c, item, images.get(item.key))

    def _draw_heading(self, c, item: PlacedItem) -> None:
        r = item.rect
        c.setFillColor(self.theme.color("secondary"))
        c.setFont(self.fonts.bold, 20)
        c.drawString(r.x, self._y(r.y + 18), item.lines[0])
        if len(item.lines) > 1:
            c.setFillColor(self.theme.color("text_light"))
            c.setFont(self.fonts.regular, 9)
            c.drawString(r.x, self._y(r.y + 30), item.lines[1])

    def _draw_pill(self, c, item: PlacedItem, with_checkbox: bool) -> None:
        """Two-tone step header: coloured number segment, white description"""
        r = item.rect
        radius = r.height / 2
        bottom = self._y(r.y, r.height)
        number = str(item.step_index + 1)
        number_w = max(r.height + 4, text_width(number, self.fonts.bold, 11) + 20)

        c.setStrokeColor(self.theme.color("primary"))
        c.setLineWidth(1)
        c.setFillColor(white)
        c.roundRect(r.x, bottom, r.width, r.height, radius, stroke=1, fill=1)

        c.setFillColor(self.theme.color("primary"))
        c.roundRect(r.x, bottom, number_w, r.height, radius, stroke=0, fill=1)
        c.rect(r.x + number_w - radius, bottom, radius, r.height, stroke=0, fill=1)

        c.setFillColor(white)
        c.setFont(self.fonts.bold, 11)
        c.drawCentredString(r.x + number_w / 2, bottom + r.height / 2 - 4, number)

        checkbox = 9 if with_checkbox else 0
        available = r.width - number_w - 16 - (checkbox + 8 if checkbox else 0)
        label = truncate_to_width(item.label, self.fonts.regular, 11, available)
        c.setFillColor(self.theme.color("text"))
        c.setFont(self.fonts.regular, 11)
        c.drawString(r.x + number_w + 8, bottom + r.height / 2 - 4, label)

        if checkbox:
            c.setStrokeColor(self.theme.color("text_light"))
            c.rect(r.right - checkbox - 10, bottom + (r.height - checkbox) / 2, checkbox, checkbox, stroke=1, fill=0)

    def _draw_text(self, c, item: PlacedItem) -> None:
        c.setFillColor(self.theme.color("text"))
        c.setFont(self.metrics.text_font, self.metrics.text_size)
        y = item.rect.y
        for line in item.lines:
            y += self.metrics.leading
            c.drawString(item.rect.x, self._y(y - 3), line)

    def _draw_caption(self, c, item: PlacedItem) -> None:
        c.setFillColor(self.theme.color("text_light"))
        c.setFont(self.fonts.bold, 11)
        c.drawString(item.rect.x, self._y(item.rect.y + 12), item.label)

    def _draw_image(self, c, item: PlacedItem, image: Optional[Image.Image]) -> None:
        if image is None:
            logger.warning(f"Planned image {item.key} missing at draw time")
            return
        r = item.rect
        c.drawImage(ImageReader(image), r.x, self._y(r.y, r.height), r.width, r.height)

    # ------------------------------------------------------------------
    # Footer pass
    # ------------------------------------------------------------------

    @staticmethod
    def _year(document: Document) -> int:
        match = re.search(r"\b(19|20)\d{2}\b", document.date or "")
        return int(match.group(0)) if match else datetime.now().year

    def _draw_footer(self, c, page_number: int, total: int, document: Document, options: ExportOptions) -> None:
        page = self.page
        left = page.left_margin
        right = page.width - page.right_margin
        base = page.bottom_margin - 12 * mm

        c.saveState()
        c.setStrokeColor(self.theme.color("border"))
        c.setLineWidth(0.5)
        c.line(left, base + 12, right, base + 12)

        company = document.company_name or self.company_fallback
        c.setFont(self.fonts.regular, 8)
        c.setFillColor(self.theme.color("text_light"))
        c.drawString(left, base, f"© {self._year(document)} {company}")

        if page_number > 1:
            title = truncate_to_width(document.title, self.fonts.regular, 8, page.content_width * 0.4)
            c.drawCentredString(page.width / 2, base, title)

        c.setFillColor(self.theme.color("primary"))
        c.setFont(self.fonts.bold, 8)
        c.drawRightString(right, base, f"Page {page_number} of {total}")

        if page_number > 1:
            disclaimer = options.custom_footer or self.disclaimer
            c.setFillColor(HexColor("#9CA3AF"))
            c.setFont(self.fonts.regular, 7)
            c.drawCentredString(
                page.width / 2,
                base - 11,
                truncate_to_width(disclaimer, self.fonts.regular, 7, page.content_width),
            )
        c.restoreState()
