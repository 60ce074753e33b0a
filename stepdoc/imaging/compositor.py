"""
Callout compositor.

Burns callouts into a raster. Every call works on its own RGBA copy of the
input, so concurrent exports never share a drawing surface. Callouts are
drawn in list order: later callouts paint over earlier ones.
"""

import logging
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont

from ..exceptions import CalloutRenderError
from ..geometry import PixelRect, arrow_points, freehand_points, polygon_points, resolve
from ..models.callouts import Callout, CalloutShape

logger = logging.getLogger(__name__)


DEFAULT_STYLES = {
    "circle_fill_alpha": 51,        # 20%
    "rect_fill_alpha": 64,          # 0x40, matches the overlay's "40" suffix
    "stroke_ratio": 1 / 200,        # stroke width relative to the short image side
    "min_stroke": 2,
    "number_text_color": (255, 255, 255, 255),
    "reveal_badge_color": "#8B5CF6",
    "reveal_badge_ratio": 0.35,
    "font_name": "DejaVuSans-Bold.ttf",
}

Renderer = Callable[[Image.Image, Callout, PixelRect, int], Image.Image]


@lru_cache(maxsize=64)
def _load_font(size: int, name: str = DEFAULT_STYLES["font_name"]):
    size = max(6, int(size))
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


def _rgba(color: str, alpha: int = 255) -> Tuple[int, int, int, int]:
    """Parse a CSS-style color. Raises ValueError on garbage."""
    rgb = ImageColor.getrgb(color)
    return (rgb[0], rgb[1], rgb[2], alpha)


def _draw_centered_text(draw: ImageDraw.ImageDraw, center, text: str, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = center[0] - (right - left) / 2 - left
    y = center[1] - (bottom - top) / 2 - top
    draw.text((x, y), text, fill=fill, font=font)


class CalloutCompositor:
    """
    Draws callouts onto images.

    Example:
        >>> compositor = CalloutCompositor()
        >>> annotated = compositor.composite(image, screenshot.callouts)
    """

    def __init__(self, styles: Optional[Dict] = None):
        self.styles = {**DEFAULT_STYLES, **(styles or {})}
        self._renderers: Dict[CalloutShape, Renderer] = {
            CalloutShape.CIRCLE: self._draw_circle,
            CalloutShape.NUMBER: self._draw_number,
            CalloutShape.RECTANGLE: self._draw_rectangle,
            CalloutShape.ARROW: self._draw_arrow,
            CalloutShape.BLUR: self._draw_blur,
            CalloutShape.MAGNIFIER: self._draw_magnifier,
            CalloutShape.OVAL: self._draw_oval,
            CalloutShape.POLYGON: self._draw_polygon,
            CalloutShape.FREEHAND: self._draw_freehand,
        }

    def renderer_for(self, callout: Callout) -> Renderer:
        """Draw routine for a callout; shapes without one use the circle rule"""
        if callout.shape is None or callout.shape not in self._renderers:
            return self._draw_circle
        return self._renderers[callout.shape]

    def composite(
        self,
        image: Image.Image,
        callouts: Sequence[Callout],
        padding: int = 0,
        errors: Optional[List[CalloutRenderError]] = None,
    ) -> Image.Image:
        """
        Draw ``callouts`` over ``image``.

        Args:
            image: Source raster (not modified)
            callouts: Callouts in z-order
            padding: Offset of the screenshot inside ``image`` when ``image``
                is a padded frame; percentages resolve against the inner area
            errors: Optional list that collects per-callout failures

        Returns:
            New RGBA image
        """
        canvas = image.convert("RGBA")
        content_w = canvas.width - 2 * padding
        content_h = canvas.height - 2 * padding
        if content_w <= 0 or content_h <= 0:
            raise ValueError(f"Padding {padding} leaves no drawable area")

        stroke = max(
            self.styles["min_stroke"],
            int(round(min(content_w, content_h) * self.styles["stroke_ratio"])),
        )

        for index, callout in enumerate(callouts):
            rect = resolve(callout, content_w, content_h, offset=padding)
            try:
                canvas = self.renderer_for(callout)(canvas, callout, rect, stroke)
            except Exception as e:
                error = CalloutRenderError(callout.id, callout.shape_name, str(e))
                logger.warning(f"Skipping callout #{index}: {error}")
                if errors is not None:
                    errors.append(error)
        return canvas

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _overlay(self, canvas: Image.Image, paint: Callable[[ImageDraw.ImageDraw], None]) -> Image.Image:
        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        paint(ImageDraw.Draw(layer))
        return Image.alpha_composite(canvas, layer)

    @staticmethod
    def _clip(canvas: Image.Image, rect: PixelRect) -> Optional[Tuple[int, int, int, int]]:
        left, top, right, bottom = rect.box
        left, top = max(0, left), max(0, top)
        right, bottom = min(canvas.width, right), min(canvas.height, bottom)
        if right <= left or bottom <= top:
            return None
        return (left, top, right, bottom)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def _draw_circle(self, canvas, callout, rect, stroke):
        line = _rgba(callout.color)
        fill = _rgba(callout.color, self.styles["circle_fill_alpha"])
        cx, cy = rect.center
        r = rect.radius
        number = getattr(callout, "number", None)

        def paint(draw):
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=fill, outline=line, width=stroke)
            if number is not None:
                _draw_centered_text(draw, (cx, cy), str(number), _load_font(int(r * 1.1)), line)

        return self._overlay(canvas, paint)

    def _draw_number(self, canvas, callout, rect, stroke):
        color = _rgba(callout.color)
        cx, cy = rect.center
        r = rect.radius

        def paint(draw):
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=color)
            _draw_centered_text(
                draw, (cx, cy), str(callout.number), _load_font(int(r * 1.1)),
                self.styles["number_text_color"],
            )
            if callout.has_reveal:
                br = max(3.0, r * self.styles["reveal_badge_ratio"])
                bx, by = cx + r * 0.75, cy - r * 0.75
                draw.ellipse(
                    (bx - br, by - br, bx + br, by + br),
                    fill=_rgba(self.styles["reveal_badge_color"]),
                    outline=(255, 255, 255, 255),
                    width=max(1, stroke // 2),
                )

        return self._overlay(canvas, paint)

    def _draw_rectangle(self, canvas, callout, rect, stroke):
        line = _rgba(callout.color)
        fill = _rgba(callout.color, self.styles["rect_fill_alpha"])

        def paint(draw):
            draw.rectangle(rect.box, fill=fill, outline=line, width=stroke)
            if callout.text:
                font = _load_font(int(max(10, rect.height * 0.35)))
                _draw_centered_text(draw, rect.center, callout.text, font, line)

        return self._overlay(canvas, paint)

    def _draw_arrow(self, canvas, callout, rect, stroke):
        color = _rgba(callout.color)
        points = arrow_points(rect)
        return self._overlay(canvas, lambda draw: draw.polygon(points, fill=color))

    def _draw_blur(self, canvas, callout, rect, stroke):
        box = self._clip(canvas, rect)
        if box is None:
            return canvas
        region = canvas.crop(box)
        intensity = max(0.0, float(callout.intensity))
        if callout.blur_type == "pixelate":
            block = max(1, int(intensity * 2))
            small = region.resize(
                (max(1, region.width // block), max(1, region.height // block)),
                Image.BILINEAR,
            )
            region = small.resize(region.size, Image.NEAREST)
        else:
            region = region.filter(ImageFilter.GaussianBlur(intensity))
        canvas.paste(region, box[:2])
        return canvas

    def _draw_magnifier(self, canvas, callout, rect, stroke):
        box = self._clip(canvas, rect)
        if box is None:
            return canvas
        zoom = max(1.0, float(callout.zoom_level))
        cx, cy = rect.center
        half_w = (box[2] - box[0]) / zoom / 2
        half_h = (box[3] - box[1]) / zoom / 2
        source = canvas.crop((
            int(round(cx - half_w)), int(round(cy - half_h)),
            int(round(cx + half_w)), int(round(cy + half_h)),
        ))
        size = (box[2] - box[0], box[3] - box[1])
        zoomed = source.resize(size, Image.LANCZOS)

        mask = Image.new("L", size, 0)
        ImageDraw.Draw(mask).ellipse((0, 0, size[0] - 1, size[1] - 1), fill=255)
        canvas.paste(zoomed, box[:2], mask)

        if callout.show_border:
            color = _rgba(callout.color)
            canvas = self._overlay(
                canvas, lambda draw: draw.ellipse(box, outline=color, width=stroke)
            )
        return canvas

    def _draw_oval(self, canvas, callout, rect, stroke):
        line = _rgba(callout.color)
        fill = _rgba(callout.color, self.styles["circle_fill_alpha"])
        return self._overlay(
            canvas, lambda draw: draw.ellipse(rect.box, fill=fill, outline=line, width=stroke)
        )

    def _draw_polygon(self, canvas, callout, rect, stroke):
        line = _rgba(callout.color)
        fill = _rgba(callout.color, self.styles["circle_fill_alpha"])
        points = polygon_points(rect, callout.sides)
        return self._overlay(
            canvas, lambda draw: draw.polygon(points, fill=fill, outline=line, width=stroke)
        )

    def _draw_freehand(self, canvas, callout, rect, stroke):
        color = _rgba(callout.color)
        subpaths = freehand_points(callout, rect)
        width = max(1, int(round(callout.stroke_width * stroke / self.styles["min_stroke"])))

        def paint(draw):
            for points in subpaths:
                if len(points) > 1:
                    draw.line(points, fill=color, width=width, joint="curve")

        return self._overlay(canvas, paint)


_default_compositor = CalloutCompositor()


def composite_callouts(
    image: Image.Image,
    callouts: Sequence[Callout],
    padding: int = 0,
    errors: Optional[List[CalloutRenderError]] = None,
) -> Image.Image:
    """Module-level shortcut using default styles"""
    return _default_compositor.composite(image, callouts, padding=padding, errors=errors)
