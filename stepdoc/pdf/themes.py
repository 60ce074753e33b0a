"""
Page geometry and colour themes for the PDF layout engine.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm


@dataclass
class PageSpec:
    """Page layout specification (points)"""
    width: float
    height: float
    top_margin: float
    right_margin: float
    bottom_margin: float
    left_margin: float

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    @property
    def content_width(self) -> float:
        return self.width - self.left_margin - self.right_margin

    @property
    def content_top(self) -> float:
        return self.top_margin

    @property
    def content_bottom(self) -> float:
        return self.height - self.bottom_margin

    @classmethod
    def a4(cls) -> "PageSpec":
        """A4 portrait, 28 mm top/bottom and 22 mm side margins"""
        return cls(
            width=A4[0], height=A4[1],
            top_margin=28 * mm, right_margin=22 * mm,
            bottom_margin=28 * mm, left_margin=22 * mm,
        )


@dataclass
class PdfTheme:
    """Colours and corner radius used across cover, TOC and content pages"""
    name: str
    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    text_light: str
    border: str
    border_radius: float = 8

    def color(self, key: str) -> Color:
        return HexColor(getattr(self, key))


THEMES: Dict[str, PdfTheme] = {
    "professional": PdfTheme(
        name="Professional",
        primary="#007AFF", secondary="#1E1E1E", accent="#4CAF50",
        background="#FAFAFA", text="#2D2D2D", text_light="#6B7280", border="#E5E5E5",
        border_radius=8,
    ),
    "modern": PdfTheme(
        name="Modern",
        primary="#6366F1", secondary="#0F172A", accent="#10B981",
        background="#F8FAFC", text="#1E293B", text_light="#64748B", border="#CBD5E1",
        border_radius=12,
    ),
    "corporate": PdfTheme(
        name="Corporate",
        primary="#1F2937", secondary="#374151", accent="#DC2626",
        background="#FFFFFF", text="#111827", text_light="#6B7280", border="#D1D5DB",
        border_radius=6,
    ),
    "minimal": PdfTheme(
        name="Minimal",
        primary="#111111", secondary="#444444", accent="#888888",
        background="#FFFFFF", text="#222222", text_light="#777777", border="#EEEEEE",
        border_radius=4,
    ),
}


def get_theme(name: str) -> PdfTheme:
    """
    Look up a theme by name.

    Raises:
        ValueError: for unknown theme names
    """
    theme = THEMES.get((name or "").lower())
    if theme is None:
        raise ValueError(f"Unknown PDF theme: {name}. Available: {list(THEMES.keys())}")
    return theme
