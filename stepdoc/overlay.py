"""
Live annotation overlay.

Controller behind the editor's callout layer. It never mutates the
screenshot it is given: every change is emitted as an add/update/delete
request for the owning state layer to apply, and the state layer hands the
result back through ``sync`` so numbering and edits see the latest callouts.
Shapes are described as CSS percentage boxes built from the same geometry
the compositor uses.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .geometry import clamp_position, clamp_size, css_box
from .models.callouts import (
    CALLOUT_TYPES,
    Callout,
    CalloutShape,
    NumberCallout,
    RectangleCallout,
)
from .models.document import Screenshot

logger = logging.getLogger(__name__)


CALLOUT_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA726",
    "#66BB6A", "#AB47BC", "#FFEB3B", "#FF5722",
]

# Default (width, height) in percent for a freshly placed callout
DEFAULT_SIZES: Dict[CalloutShape, Tuple[float, float]] = {
    CalloutShape.CIRCLE: (5, 5),
    CalloutShape.NUMBER: (5, 5),
    CalloutShape.RECTANGLE: (15, 10),
    CalloutShape.BLUR: (15, 10),
    CalloutShape.ARROW: (8, 8),
    CalloutShape.MAGNIFIER: (12, 12),
    CalloutShape.OVAL: (12, 8),
    CalloutShape.POLYGON: (10, 10),
    CalloutShape.FREEHAND: (15, 15),
}

REVEAL_GRADIENT = ("#3B82F6", "#8B5CF6")


@dataclass(frozen=True)
class PendingCalloutAction:
    """
    A placed-but-unconfirmed callout.

    Returned by ``CalloutOverlay.click`` and handed straight to
    ``CalloutOverlay.confirm``; discarding it cancels the placement.
    """
    screenshot_id: str
    shape: CalloutShape
    color: str
    x: float
    y: float
    width: float
    height: float

    @property
    def needs_text(self) -> bool:
        return self.shape in (CalloutShape.NUMBER, CalloutShape.RECTANGLE)


class CalloutOverlay:
    """
    Overlay state for one screenshot.

    Example:
        >>> overlay = CalloutOverlay(shot, on_add=store.add, on_update=store.update,
        ...                          on_delete=store.delete)
        >>> overlay.select_tool(CalloutShape.NUMBER, "#FF6B6B")
        >>> pending = overlay.click(120, 80, display_width=800, display_height=600)
        >>> overlay.confirm(pending, reveal_text="Click Save")
        >>> overlay.sync(store.screenshot(shot.id))
    """

    def __init__(
        self,
        screenshot: Screenshot,
        on_add: Callable[[str, Callout], None],
        on_update: Callable[[str, Callout], None],
        on_delete: Callable[[str, str], None],
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.screenshot = screenshot
        self.on_add = on_add
        self.on_update = on_update
        self.on_delete = on_delete
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

        self.shape = CalloutShape.CIRCLE
        self.color = CALLOUT_COLORS[0]

    def sync(self, screenshot: Screenshot) -> None:
        """
        Adopt the screenshot as stored after the state layer applied a request.

        Raises:
            ValueError: if ``screenshot`` is a different screenshot
        """
        if screenshot.id != self.screenshot.id:
            raise ValueError(f"Overlay for {self.screenshot.id} cannot sync to {screenshot.id}")
        self.screenshot = screenshot

    def select_tool(self, shape: CalloutShape, color: Optional[str] = None) -> None:
        self.shape = shape
        if color:
            self.color = color

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def click(
        self,
        px: float,
        py: float,
        display_width: float,
        display_height: float,
    ) -> PendingCalloutAction:
        """
        Turn a click in display pixels into a pending callout.

        The click point becomes the callout's top-left corner, clamped so the
        default-sized shape stays inside the image.
        """
        if display_width <= 0 or display_height <= 0:
            raise ValueError("Display size must be positive")

        width, height = DEFAULT_SIZES.get(self.shape, (5, 5))
        x, y = clamp_position(
            px / display_width * 100.0,
            py / display_height * 100.0,
            width,
            height,
        )
        return PendingCalloutAction(
            screenshot_id=self.screenshot.id,
            shape=self.shape,
            color=self.color,
            x=round(x, 2),
            y=round(y, 2),
            width=width,
            height=height,
        )

    def confirm(
        self,
        pending: PendingCalloutAction,
        reveal_text: Optional[str] = None,
        text: Optional[str] = None,
    ) -> Callout:
        """Build the callout for ``pending`` and emit it through ``on_add``"""
        base = dict(
            id=self.id_factory(),
            color=pending.color,
            x=pending.x,
            y=pending.y,
            width=pending.width,
            height=pending.height,
        )
        if pending.shape is CalloutShape.NUMBER:
            callout: Callout = NumberCallout(
                **base,
                number=len(self.screenshot.callouts) + 1,
                reveal_text=(reveal_text or "").strip() or None,
            )
        elif pending.shape is CalloutShape.RECTANGLE:
            callout = RectangleCallout(**base, text=(text or "").strip() or None)
        else:
            callout = CALLOUT_TYPES[pending.shape](**base)

        logger.debug(f"Adding {callout.shape_name} callout {callout.id} to {pending.screenshot_id}")
        self.on_add(pending.screenshot_id, callout)
        return callout

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _find(self, callout_id: str) -> Callout:
        for callout in self.screenshot.callouts:
            if callout.id == callout_id:
                return callout
        raise KeyError(f"Callout {callout_id} not found on screenshot {self.screenshot.id}")

    def move(self, callout_id: str, x: float, y: float) -> Callout:
        callout = self._find(callout_id)
        x, y = clamp_position(x, y, callout.width, callout.height)
        updated = callout.moved_to(round(x, 2), round(y, 2))
        self.on_update(self.screenshot.id, updated)
        return updated

    def resize(self, callout_id: str, width: float, height: float) -> Callout:
        callout = self._find(callout_id)
        width, height = clamp_size(width, height)
        x, y = clamp_position(callout.x, callout.y, width, height)
        updated = callout.resized(round(width, 2), round(height, 2)).moved_to(round(x, 2), round(y, 2))
        self.on_update(self.screenshot.id, updated)
        return updated

    def recolor(self, callout_id: str, color: str) -> Callout:
        updated = self._find(callout_id).recolored(color)
        self.on_update(self.screenshot.id, updated)
        return updated

    def delete(self, callout_id: str) -> None:
        self._find(callout_id)
        self.on_delete(self.screenshot.id, callout_id)

    # ------------------------------------------------------------------
    # Rendering description
    # ------------------------------------------------------------------

    def styles(self) -> List[Dict[str, object]]:
        """Positioned element descriptions for every callout, in z-order"""
        elements = []
        for callout in self.screenshot.callouts:
            reveal = isinstance(callout, NumberCallout) and callout.has_reveal
            style: Dict[str, object] = dict(css_box(callout))
            style["border-color"] = callout.color
            if reveal:
                style["background"] = (
                    f"linear-gradient(135deg, {REVEAL_GRADIENT[0]}, {REVEAL_GRADIENT[1]})"
                )
            else:
                style["background-color"] = f"{callout.color}40"
            elements.append({
                "id": callout.id,
                "shape": callout.shape_name,
                "style": style,
                "reveal": reveal,
            })
        return elements
