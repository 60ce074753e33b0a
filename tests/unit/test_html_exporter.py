"""
Unit tests for stepdoc/html/exporter.py — standalone and zip modules.
"""
import hashlib
import io
import json
import re
import zipfile

import pytest

from conftest import BROKEN_DATA_URL, oversized_png_data_url, three_step_payload
from stepdoc.exceptions import ExportCancelledError, HtmlExportError
from stepdoc.html import HtmlExporter, ZIP_TIMESTAMP, write_zip
from stepdoc.models import Document, ExportOptions, HtmlMode
from stepdoc.models.options import HtmlOptions
from stepdoc.progress import CancellationToken, ExportProgress

CONFIG_RE = re.compile(r'<script type="application/json" id="stepdoc-config">(.*?)</script>', re.S)


@pytest.fixture
def exporter():
    return HtmlExporter()


def _options(**html):
    return ExportOptions(format="html", html=HtmlOptions(**html))


def _config(html: str) -> dict:
    return json.loads(CONFIG_RE.search(html).group(1))


def _zip_names(data: bytes):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.namelist()


class TestStandalone:
    """Test the single-file module."""

    def test_basic_structure(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options())
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Reset A Password</title>" in html
        for n in (1, 2, 3):
            assert f'id="step-{n}"' in html

    def test_images_are_inlined(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options())
        # Two primaries and one secondary
        assert html.count('src="data:image/jpeg;base64,') == 3
        assert "assets/" not in html

    def test_reveal_hotspot(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options())
        assert html.count('class="callout-hotspot"') == 1
        assert 'data-reveal-text="Click the gear icon"' in html
        assert 'data-callout="c1"' in html
        assert 'id="reveal-popover"' in html

    def test_hotspot_style_matches_callout_box(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options())
        assert 'style="left: 10%; top: 10%; width: 10%; height: 10%"' in html

    def test_reveal_text_is_escaped(self, exporter):
        payload = three_step_payload()
        payload["steps"][0]["screenshots"][0]["callouts"][0]["revealText"] = '<b>"Save"</b>'
        html = exporter.export_standalone(Document.from_dict(payload), _options())
        assert "<b>" not in html.split('id="reveal-popover"')[0].split("<main")[1]
        assert "&lt;b&gt;" in html

    def test_config(self, exporter, three_step_document):
        config = _config(exporter.export_standalone(three_step_document, _options(enable_bookmarks=True)))
        assert config["storageKey"] == "stepdoc-progress-reset-a-password"
        assert config["totalSteps"] == 3
        assert config["bookmarks"] is True
        assert config["notes"] is False
        assert config["passwordHash"] is None
        assert config["defaultTheme"] == "light"

    def test_feature_toggles(self, exporter, three_step_document):
        html = exporter.export_standalone(
            three_step_document,
            _options(enable_progress=False, enable_quizzes=False, enable_notes=True),
        )
        assert 'id="progress-fill"' not in html
        assert 'class="quiz"' not in html
        assert 'class="step-notes"' in html

    def test_quiz_first_question(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options())
        assert 'data-answer="Sidebar"' in html
        assert "Where is the console?" in html

    def test_tags_indexed(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options())
        assert 'data-tags="admin|login"' in html
        assert 'data-tag="login"' in html

    def test_password_stores_only_hash(self, exporter, three_step_document):
        html = exporter.export_standalone(three_step_document, _options(password="s3cret"))
        assert 'id="password-gate"' in html
        assert "s3cret" not in html
        assert _config(html)["passwordHash"] == hashlib.sha256(b"s3cret").hexdigest()

    def test_dark_mode_default(self, exporter):
        payload = three_step_payload()
        payload["darkMode"] = True
        html = exporter.export_standalone(Document.from_dict(payload), _options())
        assert '<html lang="en" data-theme="dark">' in html

    def test_broken_image_falls_back_to_raw(self, exporter):
        document = Document.from_dict({
            "id": "d", "title": "Broken",
            "steps": [{"id": "a", "description": "x", "screenshots": [{"id": "1", "dataUrl": BROKEN_DATA_URL}]}],
        })
        html = exporter.export_standalone(document, _options())
        assert f'src="{BROKEN_DATA_URL}"' in html

    def test_oversized_image_falls_back_to_raw(self, exporter):
        huge = oversized_png_data_url()
        document = Document.from_dict({
            "id": "d", "title": "Huge",
            "steps": [{"id": "a", "description": "x", "screenshots": [{"id": "1", "dataUrl": huge}]}],
        })
        assert f'src="{huge}"' in exporter.export_standalone(document, _options())

    def test_deterministic(self, exporter, three_step_document):
        first = exporter.export_standalone(three_step_document, _options(password="x"))
        second = exporter.export_standalone(three_step_document, _options(password="x"))
        assert first == second

    def test_export_dispatches_on_mode(self, exporter, three_step_document):
        assert isinstance(exporter.export(three_step_document, _options()), str)
        assert isinstance(exporter.export(three_step_document, _options(mode=HtmlMode.ZIP)), bytes)


class TestZip:
    """Test the archive mode."""

    def test_layout(self, exporter, three_step_document):
        data = exporter.export_zip(three_step_document, _options(mode="zip"))
        assert _zip_names(data) == [
            "index.html",
            "assets/step-1-1.jpg",
            "assets/step-3-1-secondary.jpg",
            "assets/step-3-1.jpg",
        ]

    def test_index_references_assets(self, exporter, three_step_document):
        data = exporter.export_zip(three_step_document, _options(mode="zip"))
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            html = zf.read("index.html").decode("utf-8")
            assert 'src="assets/step-1-1.jpg"' in html
            assert "data:image/jpeg" not in html
            assert zf.getinfo("index.html").date_time == ZIP_TIMESTAMP

    def test_byte_identical_across_runs(self, exporter, three_step_document):
        options = _options(mode="zip")
        assert exporter.export_zip(three_step_document, options) == exporter.export_zip(three_step_document, options)

    def test_logo_externalized(self, exporter, sample_data_url):
        payload = three_step_payload()
        payload["logo"] = sample_data_url
        data = exporter.export_zip(Document.from_dict(payload), _options(mode="zip"))
        assert "assets/logo.png" in _zip_names(data)

    def test_broken_image_copied_raw(self, exporter):
        document = Document.from_dict({
            "id": "d", "title": "Broken",
            "steps": [{"id": "a", "description": "x", "screenshots": [{"id": "1", "dataUrl": BROKEN_DATA_URL}]}],
        })
        data = exporter.export_zip(document, _options(mode="zip"))
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.read("assets/step-1-1.png") == b"not an image"


class TestFailures:
    """Test error propagation."""

    def test_template_error_wrapped(self, tmp_path, three_step_document):
        (tmp_path / "module.html.j2").write_text("{{ broken ")
        with pytest.raises(HtmlExportError):
            HtmlExporter(templates_dir=tmp_path).export_standalone(three_step_document)

    def test_missing_template_wrapped(self, tmp_path, three_step_document):
        with pytest.raises(HtmlExportError):
            HtmlExporter(templates_dir=tmp_path).export_standalone(three_step_document)

    def test_cancelled(self, exporter, three_step_document):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ExportCancelledError):
            exporter.export(three_step_document, _options(), ExportProgress(cancel_token=token))


def test_write_zip_keeps_order():
    data = write_zip({"b.txt": "b", "a.bin": b"\x00"})
    assert _zip_names(data) == ["b.txt", "a.bin"]
