"""
Unit tests for stepdoc/imaging/compositor.py.
"""
import pytest
from PIL import Image

from stepdoc.exceptions import CalloutRenderError
from stepdoc.imaging.compositor import CalloutCompositor, composite_callouts
from stepdoc.models import (
    ArrowCallout,
    BlurCallout,
    CircleCallout,
    FreehandCallout,
    MagnifierCallout,
    NumberCallout,
    OvalCallout,
    PolygonCallout,
    RectangleCallout,
    UnknownCallout,
)


def _white(width=200, height=100):
    return Image.new("RGB", (width, height), (255, 255, 255))


def _checker(width=200, height=100):
    img = Image.new("RGB", (width, height), (255, 255, 255))
    for x in range(0, width, 4):
        for y in range(0, height, 4):
            if (x // 4 + y // 4) % 2:
                img.paste((0, 0, 0), (x, y, x + 4, y + 4))
    return img


@pytest.fixture
def compositor():
    return CalloutCompositor()


class TestComposite:
    """Test the compositing loop."""

    def test_returns_new_rgba_image(self, compositor):
        source = _white()
        callout = CircleCallout(id="c", color="#FF0000", x=40, y=20, width=20, height=40)
        result = compositor.composite(source, [callout])
        assert result.mode == "RGBA"
        assert result.size == source.size
        assert source.getpixel((100, 40)) == (255, 255, 255)

    def test_number_fills_its_circle(self, compositor):
        callout = NumberCallout(id="n", color="#0000FF", x=40, y=20, width=20, height=40, number=7)
        result = compositor.composite(_white(), [callout])
        # Near the left edge of the disc, clear of the digit
        r, g, b, _ = result.getpixel((84, 40))
        assert b > 200 and r < 50

    def test_empty_callouts_is_identity(self, compositor):
        source = _white()
        result = compositor.composite(source, [])
        assert result.convert("RGB").tobytes() == source.tobytes()

    def test_padding_offsets_percentages(self, compositor):
        framed = _white(220, 120)
        callout = RectangleCallout(id="r", color="#00FF00", x=0, y=0, width=10, height=10)
        result = compositor.composite(framed, [callout], padding=10)
        # Outline starts at the padding, not at the frame corner
        assert result.getpixel((10, 10))[:3] == (0, 255, 0)
        assert result.getpixel((2, 2))[:3] == (255, 255, 255)

    def test_padding_larger_than_image(self, compositor):
        with pytest.raises(ValueError):
            compositor.composite(_white(10, 10), [], padding=10)

    def test_later_callouts_paint_over_earlier(self, compositor):
        box = dict(x=10, y=10, width=50, height=50)
        first = NumberCallout(id="a", color="#FF0000", **box)
        second = NumberCallout(id="b", color="#0000FF", **box)
        result = compositor.composite(_white(100, 100), [first, second])
        assert result.getpixel((20, 35))[:3] == (0, 0, 255)


class TestErrors:
    """Test per-callout failure isolation."""

    def test_bad_color_is_skipped_and_reported(self, compositor):
        bad = CircleCallout(id="bad", color="not-a-color", x=0, y=0, width=10, height=10)
        good = RectangleCallout(id="good", color="#00FF00", x=50, y=50, width=10, height=10)
        errors = []
        result = compositor.composite(_white(), [bad, good], errors=errors)

        assert len(errors) == 1
        assert isinstance(errors[0], CalloutRenderError)
        assert errors[0].callout_id == "bad"
        assert result.getpixel((100, 50))[:3] == (0, 255, 0)

    def test_labelled_shapes_draw_without_errors(self, compositor):
        callouts = [
            NumberCallout(id="n", color="#FF6B6B", x=5, y=5, width=20, height=40, number=7),
            RectangleCallout(id="r", color="#4ECDC4", x=40, y=10, width=40, height=50, text="Save"),
        ]
        errors = []
        compositor.composite(_white(), callouts, errors=errors)
        assert errors == []

    def test_errors_list_optional(self, compositor):
        bad = CircleCallout(id="bad", color="???", x=0, y=0, width=10, height=10)
        compositor.composite(_white(), [bad])

    def test_unknown_shape_uses_circle_rule(self, compositor):
        unknown = UnknownCallout(id="u", color="#FF0000", x=40, y=20, width=20, height=40, raw_shape="star")
        circle = CircleCallout(id="u", color="#FF0000", x=40, y=20, width=20, height=40)
        a = compositor.composite(_white(), [unknown])
        b = compositor.composite(_white(), [circle])
        assert a.tobytes() == b.tobytes()


class TestShapes:
    """Test that each shape leaves a mark."""

    @pytest.mark.parametrize("callout", [
        ArrowCallout(id="a", color="#FF0000", x=10, y=10, width=50, height=50),
        OvalCallout(id="o", color="#FF0000", x=10, y=10, width=50, height=50),
        PolygonCallout(id="p", color="#FF0000", x=10, y=10, width=50, height=50, sides=6),
        FreehandCallout(id="f", color="#FF0000", x=10, y=10, width=50, height=50, path="M0 0 L100 100"),
        RectangleCallout(id="r", color="#FF0000", x=10, y=10, width=50, height=50, text="Here"),
    ])
    def test_shape_changes_pixels(self, compositor, callout):
        source = _white()
        result = compositor.composite(source, [callout])
        assert result.convert("RGB").tobytes() != source.tobytes()

    def test_blur_smooths_region(self, compositor):
        source = _checker()
        callout = BlurCallout(id="b", color="#000", x=0, y=0, width=50, height=100, intensity=4)
        result = compositor.composite(source, [callout]).convert("RGB")
        left = result.crop((10, 10, 40, 40)).getextrema()
        right = result.crop((160, 10, 190, 40)).getextrema()
        # Blurred half loses the pure black/white extremes
        assert left[0][0] > 0 or left[0][1] < 255
        assert right[0] == (0, 255)

    def test_pixelate(self, compositor):
        callout = BlurCallout(id="b", color="#000", x=0, y=0, width=50, height=100,
                              blur_type="pixelate", intensity=8)
        result = compositor.composite(_checker(), [callout])
        assert result.size == (200, 100)

    def test_magnifier_without_border(self, compositor):
        callout = MagnifierCallout(id="m", color="#FF0000", x=25, y=25, width=50, height=50,
                                   zoom_level=2, show_border=False)
        result = compositor.composite(_white(), [callout]).convert("RGB")
        # Magnifying a white image without a border leaves it white
        assert result.getextrema() == ((255, 255), (255, 255), (255, 255))

    def test_off_canvas_blur_is_noop(self, compositor):
        callout = BlurCallout(id="b", color="#000", x=150, y=150, width=10, height=10)
        source = _white()
        assert compositor.composite(source, [callout]).convert("RGB").tobytes() == source.tobytes()


def test_module_shortcut():
    callout = CircleCallout(id="c", color="#FF0000", x=0, y=0, width=10, height=10)
    assert composite_callouts(_white(), [callout]).mode == "RGBA"
