"""
Measured text helpers.

All fitting is done with the font's real glyph widths, never with
character counts.
"""

from typing import List

from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

ELLIPSIS = "..."


def text_width(text: str, font: str, size: float) -> float:
    return stringWidth(text, font, size)


def truncate_to_width(text: str, font: str, size: float, max_width: float) -> str:
    """
    Shorten ``text`` with a trailing ellipsis so it fits ``max_width``.

    Returns the text unchanged when it already fits, and an empty string
    when not even the ellipsis fits.
    """
    text = " ".join((text or "").split())
    if stringWidth(text, font, size) <= max_width:
        return text
    if stringWidth(ELLIPSIS, font, size) > max_width:
        return ""

    # Binary search on the longest prefix that fits with the ellipsis
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if stringWidth(text[:mid].rstrip() + ELLIPSIS, font, size) <= max_width:
            lo = mid
        else:
            hi = mid - 1
    return text[:lo].rstrip() + ELLIPSIS


def wrap_text(text: str, font: str, size: float, max_width: float) -> List[str]:
    """Word-wrap paragraphs to ``max_width``; blank lines are kept"""
    lines: List[str] = []
    for paragraph in (text or "").splitlines():
        if not paragraph.strip():
            lines.append("")
            continue
        lines.extend(simpleSplit(paragraph.strip(), font, size, max_width))
    while lines and not lines[-1]:
        lines.pop()
    return lines
