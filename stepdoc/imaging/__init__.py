"""
stepdoc imaging

Decoding, cropping, compression, framing and callout compositing.

Usage:
    from stepdoc.imaging import ImageProcessor, CropArea

    processor = ImageProcessor()
    shot = processor.apply_crop(shot, CropArea(0, 0, 640, 360))
    image = processor.prepare_for_export(shot.data_url, shot.callouts)
"""

from .codec import decode_data_uri, decode_image, encode_image, image_to_bytes, extension_for
from .compositor import CalloutCompositor, composite_callouts
from .processor import (
    CropArea,
    ImageProcessor,
    QualityPreset,
    QUALITY_PRESETS,
    lock_aspect,
)

__all__ = [
    "decode_data_uri",
    "decode_image",
    "encode_image",
    "image_to_bytes",
    "extension_for",
    "CalloutCompositor",
    "composite_callouts",
    "CropArea",
    "ImageProcessor",
    "QualityPreset",
    "QUALITY_PRESETS",
    "lock_aspect",
]
