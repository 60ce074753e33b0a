"""
Shared test fixtures.

Screenshots are generated with Pillow and passed around as data URIs, the
same shape the editor sends.
"""

import base64
import io
import struct
import zlib

import pytest
from PIL import Image, ImageDraw

from stepdoc.models import Document


# ============================================================
# Helper Functions
# ============================================================

def make_png(width: int = 400, height: int = 300, color: tuple = (30, 60, 114)) -> Image.Image:
    """Test raster with a few shapes so compression has something to chew on."""
    img = Image.new("RGB", (width, height), color=color)
    draw = ImageDraw.Draw(img)
    draw.rectangle([width // 10, height // 10, width // 2, height // 3], fill=(240, 240, 240))
    draw.ellipse([width // 2, height // 2, width - 10, height - 10], outline=(255, 200, 0), width=3)
    return img


def to_data_url(img: Image.Image, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(buf.getvalue()).decode('ascii')}"


def png_data_url(width: int = 400, height: int = 300, color: tuple = (30, 60, 114)) -> str:
    return to_data_url(make_png(width, height, color))


BROKEN_DATA_URL = "data:image/png;base64,bm90IGFuIGltYWdl"  # "not an image"


def oversized_png_data_url(width: int = 20000, height: int = 20000) -> str:
    """PNG header declaring ``width`` x ``height`` with no real pixel data behind it"""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    raw = b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", zlib.compress(b"\x00")) + chunk(b"IEND", b"")
    return f"data:image/png;base64,{base64.b64encode(raw).decode('ascii')}"


def number_callout(callout_id: str = "c1", number: int = 1, reveal_text: str = None, **geometry) -> dict:
    data = {
        "id": callout_id,
        "shape": "number",
        "color": "#FF6B6B",
        "x": geometry.get("x", 10),
        "y": geometry.get("y", 10),
        "width": geometry.get("width", 10),
        "height": geometry.get("height", 10),
        "number": number,
    }
    if reveal_text:
        data["revealText"] = reveal_text
    return data


def three_step_payload() -> dict:
    """
    Step 1: one screenshot with a numbered reveal callout
    Step 2: text only
    Step 3: one screenshot plus a secondary ("after") raster
    """
    return {
        "id": "doc-1",
        "title": "Reset A Password",
        "topic": "Account administration",
        "date": "2024-03-15",
        "companyName": "Acme Corp",
        "steps": [
            {
                "id": "s1",
                "title": "Open the admin console",
                "description": "Sign in and open the console.",
                "tags": ["admin", "login"],
                "estimatedTime": 2,
                "screenshots": [{
                    "id": "shot-1",
                    "dataUrl": png_data_url(400, 300),
                    "callouts": [number_callout("c1", 1, "Click the gear icon")],
                }],
                "quizQuestions": [{
                    "question": "Where is the console?",
                    "type": "multiple-choice",
                    "options": ["Top bar", "Sidebar"],
                    "correctAnswer": "Sidebar",
                }],
            },
            {
                "id": "s2",
                "description": "Confirm the user's identity by phone.",
                "tags": ["admin"],
                "estimatedTime": 3,
            },
            {
                "id": "s3",
                "title": "Reset the password",
                "description": "Choose reset and send the link.",
                "screenshots": [{
                    "id": "shot-3",
                    "dataUrl": png_data_url(400, 300, (100, 20, 20)),
                    "secondaryDataUrl": png_data_url(400, 300, (20, 100, 20)),
                    "callouts": [{"id": "c3", "shape": "rectangle", "color": "#4ECDC4",
                                  "x": 20, "y": 20, "width": 30, "height": 15, "text": "Reset"}],
                }],
            },
        ],
    }


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def sample_png():
    return make_png()


@pytest.fixture
def sample_data_url():
    return png_data_url()


@pytest.fixture
def three_step_dict():
    return three_step_payload()


@pytest.fixture
def three_step_document():
    return Document.from_dict(three_step_payload())


@pytest.fixture
def single_step_document():
    return Document.from_dict({
        "id": "single",
        "title": "Single",
        "steps": [{
            "id": "only",
            "description": "Only step",
            "screenshots": [{"id": "a", "dataUrl": png_data_url(200, 100)}],
        }],
    })


def single_image_steps(count: int, width: int = 400, height: int = 300) -> Document:
    """``count`` steps with one screenshot each"""
    url = png_data_url(width, height)
    return Document.from_dict({
        "id": "many",
        "title": "Many Steps",
        "steps": [
            {"id": f"s{i}", "description": f"Step number {i}", "screenshots": [{"id": f"img{i}", "dataUrl": url}]}
            for i in range(1, count + 1)
        ],
    })
