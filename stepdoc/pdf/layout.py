"""
Content page planner.

Turns the step list into positioned items on pages before anything is drawn.
Coordinates are top-down points within the page; the renderer flips them for
ReportLab. Planning first lets the table of contents show real page numbers
and keeps pagination testable without parsing PDF output.

Pagination rules:
- two consecutive steps with exactly one usable image each (and no secondary
  raster) share a page side by side when both texts and a minimum image
  height fit on one page; a pair always starts on a page that has no images
  yet
- a single image followed by a step without screenshots gets a page break
  after it
- a content page never holds more than two images
- a secondary raster always gets a page of its own
- an image that failed to prepare leaves a fixed gap
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from reportlab.lib.units import mm

from ..geometry import PixelRect
from .text import wrap_text

logger = logging.getLogger(__name__)


class ItemKind(Enum):
    HEADING = "heading"
    HEADER = "header"
    TEXT = "text"
    IMAGE = "image"
    GAP = "gap"
    CAPTION = "caption"


@dataclass
class ImageSlotInput:
    """One image the planner has to place"""
    key: str
    aspect: Optional[float]  # width / height; None when preparation failed
    secondary: bool = False
    caption: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.aspect is not None and self.aspect > 0


@dataclass
class StepBlock:
    index: int
    heading: str
    body: str = ""
    images: List[ImageSlotInput] = field(default_factory=list)
    secondary: List[ImageSlotInput] = field(default_factory=list)

    @property
    def number(self) -> int:
        return self.index + 1

    @property
    def has_screenshot(self) -> bool:
        return bool(self.images or self.secondary)

    @property
    def pairable(self) -> bool:
        return len(self.images) == 1 and self.images[0].usable and not self.secondary


@dataclass
class LayoutMetrics:
    header_height: float = 24
    header_gap: float = 8
    text_font: str = "Helvetica"
    text_size: float = 10
    leading: float = 14
    step_gap: float = 14
    image_gap: float = 12
    pair_gutter: float = 5 * mm
    single_width_ratio: float = 0.8
    min_image_height: float = 72
    failure_gap: float = 10 * mm
    heading_height: float = 34
    caption_height: float = 18


@dataclass
class PlacedItem:
    kind: ItemKind
    rect: PixelRect
    step_index: Optional[int] = None
    key: Optional[str] = None
    lines: List[str] = field(default_factory=list)
    label: str = ""


@dataclass
class PlannedPage:
    number: int
    items: List[PlacedItem] = field(default_factory=list)
    dedicated: bool = False

    def of_kind(self, kind: ItemKind) -> List[PlacedItem]:
        return [item for item in self.items if item.kind is kind]

    @property
    def image_count(self) -> int:
        return len(self.of_kind(ItemKind.IMAGE))

    @property
    def headers(self) -> List[PlacedItem]:
        return self.of_kind(ItemKind.HEADER)


class LayoutPlanner:
    """
    Stateful walk over the steps; use ``plan_pages`` rather than calling this
    directly.
    """

    MAX_IMAGES_PER_PAGE = 2

    def __init__(self, page, metrics: LayoutMetrics, first_page_number: int = 1):
        self.page = page
        self.m = metrics
        self.first_page_number = first_page_number
        self.pages: List[PlannedPage] = []
        self.y = 0.0
        self.force_break = False

    # ------------------------------------------------------------------
    # Page cursor
    # ------------------------------------------------------------------

    @property
    def current(self) -> PlannedPage:
        return self.pages[-1]

    @property
    def left(self) -> float:
        return self.page.left_margin

    @property
    def width(self) -> float:
        return self.page.content_width

    @property
    def bottom(self) -> float:
        return self.page.content_bottom

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    def new_page(self) -> PlannedPage:
        self.pages.append(PlannedPage(number=self.first_page_number + len(self.pages)))
        self.y = self.page.content_top
        self.force_break = False
        return self.current

    def _page_is_blank(self) -> bool:
        return not self.current.items

    def ensure(self, height: float) -> None:
        """Start a new page if ``height`` doesn't fit or a break is pending"""
        if self.force_break or (height > self.remaining and not self._page_is_blank()):
            self.new_page()

    def add(self, item: PlacedItem) -> PlacedItem:
        self.current.items.append(item)
        return item

    # ------------------------------------------------------------------
    # Measurement
    # ------------------------------------------------------------------

    def _wrap(self, text: str, width: float) -> List[str]:
        return wrap_text(text, self.m.text_font, self.m.text_size, width)

    def _text_height(self, lines: List[str]) -> float:
        return len(lines) * self.m.leading + (self.m.header_gap if lines else 0)

    def _fit(self, aspect: float, max_width: float, max_height: float) -> Tuple[float, float]:
        width = max_width
        height = width / aspect
        if height > max_height:
            height = max(1.0, max_height)
            width = height * aspect
        return width, height

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_heading(self, lines: List[str]) -> None:
        self.add(PlacedItem(
            kind=ItemKind.HEADING,
            rect=PixelRect(self.left, self.y, self.width, self.m.heading_height),
            lines=lines,
        ))
        self.y += self.m.heading_height

    def _place_header(self, block: StepBlock, x: float, width: float) -> None:
        self.add(PlacedItem(
            kind=ItemKind.HEADER,
            rect=PixelRect(x, self.y, width, self.m.header_height),
            step_index=block.index,
            label=block.heading,
        ))

    def _place_text(self, block: StepBlock, lines: List[str], x: float, width: float, y: float) -> float:
        """Place lines at ``y`` without breaking; returns the y below them"""
        if not lines:
            return y
        height = len(lines) * self.m.leading
        self.add(PlacedItem(
            kind=ItemKind.TEXT,
            rect=PixelRect(x, y, width, height),
            step_index=block.index,
            lines=lines,
        ))
        return y + height + self.m.header_gap

    def _place_flowing_text(self, block: StepBlock, lines: List[str]) -> None:
        """Place lines, continuing on new pages when they run out of room"""
        while lines:
            fits = int(self.remaining // self.m.leading)
            if fits <= 0:
                self.new_page()
                continue
            chunk, lines = lines[:fits], lines[fits:]
            self.y = self._place_text(block, chunk, self.left, self.width, self.y)
            if lines:
                self.new_page()

    def _place_gap(self, block: StepBlock, slot: ImageSlotInput) -> None:
        logger.debug(f"Step {block.number}: no image for {slot.key}, leaving a gap")
        self.add(PlacedItem(
            kind=ItemKind.GAP,
            rect=PixelRect(self.left, self.y, self.width, self.m.failure_gap),
            step_index=block.index,
            key=slot.key,
        ))
        self.y += self.m.failure_gap

    def _place_single_image(self, block: StepBlock, slot: ImageSlotInput) -> None:
        if self.current.image_count >= self.MAX_IMAGES_PER_PAGE:
            self.new_page()
        if not slot.usable:
            self._place_gap(block, slot)
            return

        max_width = self.width * self.m.single_width_ratio
        natural_height = max_width / slot.aspect
        if min(natural_height, self.m.min_image_height) > self.remaining and not self._page_is_blank():
            self.new_page()

        width, height = self._fit(slot.aspect, max_width, self.remaining)
        self.add(PlacedItem(
            kind=ItemKind.IMAGE,
            rect=PixelRect(self.left + (self.width - width) / 2, self.y, width, height),
            step_index=block.index,
            key=slot.key,
        ))
        self.y += height + self.m.image_gap

    def _place_secondary(self, block: StepBlock, slot: ImageSlotInput) -> None:
        page = self.new_page()
        page.dedicated = True
        self.add(PlacedItem(
            kind=ItemKind.CAPTION,
            rect=PixelRect(self.left, self.y, self.width, self.m.caption_height),
            step_index=block.index,
            label=slot.caption or f"Step {block.number} (continued)",
        ))
        self.y += self.m.caption_height
        if slot.usable:
            width, height = self._fit(slot.aspect, self.width * self.m.single_width_ratio, self.remaining)
            self.add(PlacedItem(
                kind=ItemKind.IMAGE,
                rect=PixelRect(self.left + (self.width - width) / 2, self.y, width, height),
                step_index=block.index,
                key=slot.key,
            ))
            self.y += height
        else:
            self._place_gap(block, slot)
        self.force_break = True

    def place_step(self, block: StepBlock) -> None:
        lines = self._wrap(block.body, self.width)
        head = self.m.header_height + self.m.header_gap

        if block.images and self.current.image_count >= self.MAX_IMAGES_PER_PAGE:
            self.force_break = True

        # Keep the header with the start of its text or first image
        first = self.m.leading * min(len(lines), 3)
        if block.images:
            first = self._text_height(lines) + self.m.min_image_height
        self.ensure(head + first)

        self._place_header(block, self.left, self.width)
        self.y += head
        self._place_flowing_text(block, lines)

        for slot in block.images:
            self._place_single_image(block, slot)
        for slot in block.secondary:
            self._place_secondary(block, slot)

        self.y += self.m.step_gap

    def _pair_columns(self, first: StepBlock, second: StepBlock) -> Tuple[float, List[List[str]], float]:
        """Column width, wrapped column texts and the taller text height"""
        col_w = (self.width - self.m.pair_gutter) / 2
        texts = [self._wrap(b.body, col_w) for b in (first, second)]
        return col_w, texts, max(self._text_height(t) for t in texts)

    def pair_fits(self, first: StepBlock, second: StepBlock) -> bool:
        """Column text never breaks, so a pair needs headers, text and a minimum image on one page"""
        _, _, text_h = self._pair_columns(first, second)
        head = self.m.header_height + self.m.header_gap
        usable = self.bottom - self.page.content_top
        return head + text_h + self.m.min_image_height <= usable

    def place_pair(self, first: StepBlock, second: StepBlock) -> None:
        col_w, texts, text_h = self._pair_columns(first, second)
        xs = (self.left, self.left + col_w + self.m.pair_gutter)
        head = self.m.header_height + self.m.header_gap

        natural = [col_w / b.images[0].aspect for b in (first, second)]
        if self.current.image_count > 0:
            self.force_break = True
        self.ensure(head + text_h + max(natural))

        top = self.y
        for block, x, lines in zip((first, second), xs, texts):
            self.y = top
            self._place_header(block, x, col_w)
            self._place_text(block, lines, x, col_w, top + head)

        # Second image's origin aligns with the first
        image_y = top + head + text_h
        max_height = max(self.bottom - image_y, self.m.min_image_height)
        tallest = 0.0
        for block, x in zip((first, second), xs):
            slot = block.images[0]
            width, height = self._fit(slot.aspect, col_w, max_height)
            self.add(PlacedItem(
                kind=ItemKind.IMAGE,
                rect=PixelRect(x + (col_w - width) / 2, image_y, width, height),
                step_index=block.index,
                key=slot.key,
            ))
            tallest = max(tallest, height)

        self.y = image_y + tallest + self.m.image_gap + self.m.step_gap

    def plan(self, blocks: List[StepBlock], heading: Optional[List[str]] = None) -> List[PlannedPage]:
        self.new_page()
        if heading:
            self.place_heading(heading)

        i = 0
        while i < len(blocks):
            block = blocks[i]
            following = blocks[i + 1] if i + 1 < len(blocks) else None

            if (
                block.pairable
                and following is not None
                and following.pairable
                and self.pair_fits(block, following)
            ):
                self.place_pair(block, following)
                i += 2
                continue

            self.place_step(block)
            if block.pairable and following is not None and not following.has_screenshot:
                self.force_break = True
            i += 1

        return self.pages


def plan_pages(
    blocks: List[StepBlock],
    page,
    metrics: Optional[LayoutMetrics] = None,
    first_page_number: int = 1,
    heading: Optional[List[str]] = None,
) -> List[PlannedPage]:
    """
    Lay out steps into content pages.

    Args:
        blocks: One block per step, in document order
        page: PageSpec giving page size and margins
        metrics: Spacing and font metrics
        first_page_number: Absolute number of the first content page
        heading: Optional heading lines for the first content page

    Returns:
        Planned pages in order
    """
    planner = LayoutPlanner(page, metrics or LayoutMetrics(), first_page_number)
    return planner.plan(blocks, heading)


def step_pages(pages: List[PlannedPage]) -> dict:
    """Map step index -> page number of its header"""
    result = {}
    for page in pages:
        for item in page.headers:
            result.setdefault(item.step_index, page.number)
    return result
