"""
Image Processor - stepdoc

Crop, compress and frame screenshots before and after compositing.

Public helpers never raise on undecodable input: they log and return the
original value, so one bad screenshot degrades instead of aborting an export.
``prepare_for_export`` is the exception; the renderers call it and pick
their own fallback.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter

from ..exceptions import CalloutRenderError, ImageDecodeError
from ..models.callouts import Callout
from ..models.document import Screenshot
from ..models.options import Quality
from .codec import decode_image, encode_image, image_to_bytes
from .compositor import CalloutCompositor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualityPreset:
    max_width: int
    jpeg_quality: int


QUALITY_PRESETS: Dict[Quality, QualityPreset] = {
    Quality.LOW: QualityPreset(max_width=800, jpeg_quality=60),
    Quality.MEDIUM: QualityPreset(max_width=1200, jpeg_quality=80),
    Quality.HIGH: QualityPreset(max_width=1600, jpeg_quality=92),
}


@dataclass(frozen=True)
class CropArea:
    """Crop rectangle in source pixels"""
    x: int
    y: int
    width: int
    height: int

    def clamped(self, image_width: int, image_height: int) -> "CropArea":
        x = min(max(0, int(self.x)), max(0, image_width - 1))
        y = min(max(0, int(self.y)), max(0, image_height - 1))
        return CropArea(
            x=x,
            y=y,
            width=max(1, min(int(self.width), image_width - x)),
            height=max(1, min(int(self.height), image_height - y)),
        )

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def lock_aspect(area: CropArea, aspect: float, bounds: Tuple[int, int]) -> CropArea:
    """
    Force ``width / height == aspect``, shrinking to stay inside ``bounds``.

    Args:
        area: Crop rect as dragged by the user
        aspect: Target width / height ratio
        bounds: (image_width, image_height)
    """
    if aspect <= 0:
        raise ValueError("Aspect ratio must be positive")
    img_w, img_h = bounds
    width = min(area.width, img_w - area.x)
    height = int(round(width / aspect))
    if area.y + height > img_h:
        height = img_h - area.y
        width = int(round(height * aspect))
    return CropArea(area.x, area.y, max(1, width), max(1, height))


class ImageProcessor:
    """
    Screenshot preparation for the editor and for export.

    Args:
        padding: Frame padding in pixels around exported screenshots
        corner_radius: Rounded-corner radius of the framed screenshot
        shadow_alpha: Drop shadow opacity (0-1)
        shadow_blur: Drop shadow blur radius
        shadow_offset: Drop shadow vertical offset
    """

    def __init__(
        self,
        padding: int = 10,
        corner_radius: int = 8,
        shadow_alpha: float = 0.08,
        shadow_blur: float = 6,
        shadow_offset: int = 1,
        compositor: Optional[CalloutCompositor] = None,
    ):
        self.padding = padding
        self.corner_radius = corner_radius
        self.shadow_alpha = shadow_alpha
        self.shadow_blur = shadow_blur
        self.shadow_offset = shadow_offset
        self.compositor = compositor or CalloutCompositor()

    # ------------------------------------------------------------------
    # Crop
    # ------------------------------------------------------------------

    def crop(self, data_url: str, area: CropArea) -> str:
        """Crop to ``area`` and return a PNG data URI at the crop's size"""
        try:
            image = decode_image(data_url)
        except ImageDecodeError as e:
            logger.warning(f"Crop skipped, source not decodable: {e}")
            return data_url
        area = area.clamped(image.width, image.height)
        return encode_image(image.crop(area.box), fmt="PNG")

    def apply_crop(self, screenshot: Screenshot, area: CropArea) -> Screenshot:
        """
        Crop a screenshot, keeping the pre-crop raster for undo.

        ``original_data_url`` is only snapshotted if it isn't already set, so
        undo always returns to the uploaded image.
        """
        cropped = self.crop(screenshot.data_url, area)
        if cropped is screenshot.data_url:
            return screenshot
        return replace(
            screenshot,
            data_url=cropped,
            original_data_url=screenshot.original_data_url or screenshot.data_url,
            is_cropped=True,
        )

    @staticmethod
    def undo_crop(screenshot: Screenshot) -> Screenshot:
        if not screenshot.is_cropped or not screenshot.original_data_url:
            return screenshot
        return replace(screenshot, data_url=screenshot.original_data_url, is_cropped=False)

    # ------------------------------------------------------------------
    # Compress
    # ------------------------------------------------------------------

    @staticmethod
    def _downscale(image: Image.Image, max_width: int) -> Image.Image:
        if image.width <= max_width:
            return image
        height = max(1, int(round(image.height * max_width / image.width)))
        return image.resize((max_width, height), Image.LANCZOS)

    def compress(self, data_url: str, max_width: int = 1600, quality: int = 92) -> str:
        """
        Downscale to ``max_width`` (aspect preserved) and re-encode as JPEG.

        Images already narrower than ``max_width`` keep their dimensions.
        """
        try:
            image = decode_image(data_url)
        except ImageDecodeError as e:
            logger.warning(f"Compression skipped, source not decodable: {e}")
            return data_url
        return encode_image(self._downscale(image, max_width), fmt="JPEG", quality=quality)

    # ------------------------------------------------------------------
    # Framing
    # ------------------------------------------------------------------

    def frame(self, image: Image.Image) -> Image.Image:
        """White padded canvas, rounded corners and a soft drop shadow"""
        p = self.padding
        w, h = image.size
        size = (w + 2 * p, h + 2 * p)

        framed = Image.new("RGBA", size, (255, 255, 255, 255))

        shadow = Image.new("RGBA", size, (0, 0, 0, 0))
        ImageDraw.Draw(shadow).rounded_rectangle(
            (p, p + self.shadow_offset, p + w - 1, p + h - 1 + self.shadow_offset),
            radius=self.corner_radius,
            fill=(0, 0, 0, int(round(255 * self.shadow_alpha))),
        )
        framed = Image.alpha_composite(framed, shadow.filter(ImageFilter.GaussianBlur(self.shadow_blur)))

        mask = Image.new("L", (w, h), 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, w - 1, h - 1), radius=self.corner_radius, fill=255)
        framed.paste(image.convert("RGBA"), (p, p), mask)
        return framed

    # ------------------------------------------------------------------
    # Export pipeline
    # ------------------------------------------------------------------

    def prepare_for_export(
        self,
        data_url: str,
        callouts: Sequence[Callout],
        quality: Quality = Quality.HIGH,
        framed: bool = True,
        errors: Optional[List[CalloutRenderError]] = None,
    ) -> Image.Image:
        """
        Compress, frame and composite one screenshot.

        Raises:
            ImageDecodeError: if the screenshot can't be decoded
        """
        preset = QUALITY_PRESETS[quality]
        image = self._downscale(decode_image(data_url), preset.max_width)
        if framed:
            return self.compositor.composite(self.frame(image), callouts, padding=self.padding, errors=errors)
        return self.compositor.composite(image, callouts, errors=errors)

    def thumbnail(self, data_url: str, width: int = 320, quality: int = 80) -> bytes:
        """
        JPEG thumbnail bytes.

        Raises:
            ImageDecodeError: if the source can't be decoded
        """
        image = decode_image(data_url)
        image.thumbnail((width, width * 4), Image.LANCZOS)
        return image_to_bytes(image, "JPEG", quality)
