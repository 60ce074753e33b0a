"""
Callout Models - stepdoc

Callouts are a tagged union keyed by ``shape``: each variant carries only the
payload its shape needs. Position and size are percentages of the owning
image (0-100), never pixels.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type

logger = logging.getLogger(__name__)


class CalloutShape(Enum):
    """Shapes the compositor knows how to draw"""
    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    ARROW = "arrow"
    NUMBER = "number"
    BLUR = "blur"
    MAGNIFIER = "magnifier"
    OVAL = "oval"
    POLYGON = "polygon"
    FREEHAND = "freehand"

    @classmethod
    def parse(cls, value: str) -> Optional["CalloutShape"]:
        """Return the matching shape, or None for shapes we don't know"""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


def _round2(value: float) -> float:
    return round(float(value), 2)


def _as_float(data: Dict[str, Any], key: str, default: float = 0.0) -> float:
    value = data.get(key, default)
    if value is None:
        return default
    return float(value)


@dataclass(frozen=True)
class Callout:
    """Base callout: identity, color and percentage geometry"""
    id: str
    color: str
    x: float
    y: float
    width: float
    height: float

    shape: ClassVar[Optional[CalloutShape]] = None

    @property
    def shape_name(self) -> str:
        return self.shape.value if self.shape else "unknown"

    def moved_to(self, x: float, y: float) -> "Callout":
        return replace(self, x=x, y=y)

    def resized(self, width: float, height: float) -> "Callout":
        return replace(self, width=width, height=height)

    def recolored(self, color: str) -> "Callout":
        return replace(self, color=color)

    def _payload(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "shape": self.shape_name,
            "color": self.color,
            "x": _round2(self.x),
            "y": _round2(self.y),
            "width": _round2(self.width),
            "height": _round2(self.height),
        }
        data.update(self._payload())
        return data

    @classmethod
    def _from_payload(cls, base: Dict[str, Any], data: Dict[str, Any]) -> "Callout":
        return cls(**base)


@dataclass(frozen=True)
class CircleCallout(Callout):
    number: Optional[int] = None

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.CIRCLE

    def _payload(self) -> Dict[str, Any]:
        return {"number": self.number} if self.number is not None else {}

    @classmethod
    def _from_payload(cls, base, data):
        number = data.get("number")
        return cls(**base, number=int(number) if number is not None else None)


@dataclass(frozen=True)
class NumberCallout(Callout):
    number: int = 1
    reveal_text: Optional[str] = None

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.NUMBER

    @property
    def has_reveal(self) -> bool:
        return bool(self.reveal_text and self.reveal_text.strip())

    def _payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"number": self.number}
        if self.reveal_text:
            data["revealText"] = self.reveal_text
        return data

    @classmethod
    def _from_payload(cls, base, data):
        return cls(
            **base,
            number=int(data.get("number") or 1),
            reveal_text=data.get("revealText") or data.get("reveal_text") or None,
        )


@dataclass(frozen=True)
class RectangleCallout(Callout):
    text: Optional[str] = None

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.RECTANGLE

    def _payload(self) -> Dict[str, Any]:
        return {"text": self.text} if self.text else {}

    @classmethod
    def _from_payload(cls, base, data):
        return cls(**base, text=data.get("text") or None)


@dataclass(frozen=True)
class ArrowCallout(Callout):
    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.ARROW


@dataclass(frozen=True)
class BlurCallout(Callout):
    blur_type: str = "blur"  # blur | pixelate
    intensity: float = 5

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.BLUR

    def _payload(self) -> Dict[str, Any]:
        return {"blurData": {"type": self.blur_type, "intensity": self.intensity}}

    @classmethod
    def _from_payload(cls, base, data):
        blur = data.get("blurData") or {}
        blur_type = blur.get("type", data.get("blur_type", "blur"))
        if blur_type not in ("blur", "pixelate"):
            logger.debug(f"Unknown blur type '{blur_type}', using 'blur'")
            blur_type = "blur"
        return cls(
            **base,
            blur_type=blur_type,
            intensity=float(blur.get("intensity", data.get("intensity", 5))),
        )


@dataclass(frozen=True)
class MagnifierCallout(Callout):
    zoom_level: float = 2
    show_border: bool = True

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.MAGNIFIER

    def _payload(self) -> Dict[str, Any]:
        return {"magnifierData": {"zoomLevel": self.zoom_level, "showBorder": self.show_border}}

    @classmethod
    def _from_payload(cls, base, data):
        mag = data.get("magnifierData") or {}
        return cls(
            **base,
            zoom_level=float(mag.get("zoomLevel", data.get("zoom_level", 2))),
            show_border=bool(mag.get("showBorder", data.get("show_border", True))),
        )


@dataclass(frozen=True)
class OvalCallout(Callout):
    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.OVAL


@dataclass(frozen=True)
class PolygonCallout(Callout):
    sides: int = 6

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.POLYGON

    def _payload(self) -> Dict[str, Any]:
        return {"polygonData": {"sides": self.sides}}

    @classmethod
    def _from_payload(cls, base, data):
        poly = data.get("polygonData") or {}
        return cls(**base, sides=max(3, int(poly.get("sides", data.get("sides", 6)))))


@dataclass(frozen=True)
class FreehandCallout(Callout):
    # SVG path data in callout-local percentage units
    path: str = ""
    stroke_width: float = 3

    shape: ClassVar[Optional[CalloutShape]] = CalloutShape.FREEHAND

    def _payload(self) -> Dict[str, Any]:
        return {"freehandData": {"path": self.path, "strokeWidth": self.stroke_width}}

    @classmethod
    def _from_payload(cls, base, data):
        free = data.get("freehandData") or {}
        return cls(
            **base,
            path=str(free.get("path", data.get("path", ""))),
            stroke_width=float(free.get("strokeWidth", data.get("stroke_width", 3))),
        )


@dataclass(frozen=True)
class UnknownCallout(Callout):
    """A shape this version doesn't know. Kept as-is and drawn as a circle."""
    raw_shape: str = ""
    number: Optional[int] = None

    @property
    def shape_name(self) -> str:
        return self.raw_shape or "unknown"

    def _payload(self) -> Dict[str, Any]:
        return {"number": self.number} if self.number is not None else {}


CALLOUT_TYPES: Dict[CalloutShape, Type[Callout]] = {
    CalloutShape.CIRCLE: CircleCallout,
    CalloutShape.RECTANGLE: RectangleCallout,
    CalloutShape.ARROW: ArrowCallout,
    CalloutShape.NUMBER: NumberCallout,
    CalloutShape.BLUR: BlurCallout,
    CalloutShape.MAGNIFIER: MagnifierCallout,
    CalloutShape.OVAL: OvalCallout,
    CalloutShape.POLYGON: PolygonCallout,
    CalloutShape.FREEHAND: FreehandCallout,
}


def callout_from_dict(data: Dict[str, Any]) -> Callout:
    """
    Build the callout variant matching ``data["shape"]``.

    Raises:
        KeyError / ValueError / TypeError: on missing or non-numeric fields
    """
    base = {
        "id": str(data["id"]),
        "color": str(data.get("color") or "#FF6B6B"),
        "x": _as_float(data, "x"),
        "y": _as_float(data, "y"),
        "width": _as_float(data, "width"),
        "height": _as_float(data, "height"),
    }
    raw_shape = str(data.get("shape", ""))
    shape = CalloutShape.parse(raw_shape)

    if shape is None:
        number = data.get("number")
        return UnknownCallout(
            **base,
            raw_shape=raw_shape,
            number=int(number) if number is not None else None,
        )

    if data.get("revealText") and shape is not CalloutShape.NUMBER:
        logger.debug(f"Dropping revealText on non-number callout {base['id']}")

    return CALLOUT_TYPES[shape]._from_payload(base, data)
