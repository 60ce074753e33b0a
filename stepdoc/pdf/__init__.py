"""
stepdoc PDF engine

Cover page, table of contents and paginated step content rendered with
ReportLab.

Usage:
    from stepdoc.pdf import PdfRenderer

    pdf_bytes = PdfRenderer(theme="professional").render(document, options)
"""

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
from .renderer import PdfRenderer, FooterCanvas, fit_within
from .text import truncate_to_width, wrap_text
from .themes import PageSpec, PdfTheme, THEMES, get_theme

__all__ = [
    "ImageSlotInput",
    "ItemKind",
    "LayoutMetrics",
    "PlacedItem",
    "PlannedPage",
    "StepBlock",
    "plan_pages",
    "step_pages",
    "PdfRenderer",
    "FooterCanvas",
    "fit_within",
    "truncate_to_width",
    "wrap_text",
    "PageSpec",
    "PdfTheme",
    "THEMES",
    "get_theme",
]
