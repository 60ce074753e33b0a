"""
Unit tests for stepdoc/bundle — orchestrator and generated resources.
"""
import io
import json
import zipfile
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from PIL import Image

from conftest import BROKEN_DATA_URL, png_data_url, three_step_payload
from stepdoc.bundle import (
    BundleOrchestrator,
    build_package_info,
    build_quick_reference,
    build_readme,
    build_style_guide,
    bundle_filename,
    thumbnail_path,
)
from stepdoc.exceptions import BundleError, ExportCancelledError, PdfGenerationError
from stepdoc.models import Document, ExportOptions
from stepdoc.models.options import BundleOptions
from stepdoc.pdf.themes import get_theme
from stepdoc.progress import CancellationToken, ExportProgress

CREATED = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def orchestrator():
    return BundleOrchestrator(clock=lambda: CREATED)


def _open(data: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(data))


class TestLayout:
    """Test the archive contents."""

    def test_three_step_bundle(self, orchestrator, three_step_document):
        with _open(orchestrator.build(three_step_document, ExportOptions(format="bundle"))) as zf:
            assert zf.namelist() == [
                "manual/training-manual.pdf",
                "interactive/training-module.html",
                "resources/style-guide.css",
                "resources/quick-reference.txt",
                "resources/thumbnails/step-1.jpg",
                "resources/thumbnails/step-3.jpg",
                "README.txt",
                "package-info.json",
            ]
            assert zf.read("manual/training-manual.pdf").startswith(b"%PDF")
            assert zf.read("interactive/training-module.html").startswith(b"<!DOCTYPE html>")

    def test_html_is_always_standalone(self, orchestrator, three_step_document):
        options = ExportOptions.from_dict({"format": "bundle", "html": {"mode": "zip"}})
        with _open(orchestrator.build(three_step_document, options)) as zf:
            html = zf.read("interactive/training-module.html").decode("utf-8")
        assert "data:image/jpeg;base64," in html
        assert "assets/" not in html

    def test_thumbnails_are_small_jpegs(self, three_step_document):
        orchestrator = BundleOrchestrator(thumbnail_width=100, clock=lambda: CREATED)
        with _open(orchestrator.build(three_step_document)) as zf:
            thumb = Image.open(io.BytesIO(zf.read("resources/thumbnails/step-1.jpg")))
        assert thumb.format == "JPEG"
        assert thumb.size == (100, 75)

    def test_branding_converted_to_png(self, orchestrator):
        payload = three_step_payload()
        payload["logo"] = png_data_url(60, 20)
        payload["backgroundImage"] = png_data_url(80, 40)
        with _open(orchestrator.build(Document.from_dict(payload))) as zf:
            logo = Image.open(io.BytesIO(zf.read("resources/company-logo.png")))
            assert logo.format == "PNG"
            assert "resources/background-image.png" in zf.namelist()

    def test_bad_logo_is_skipped(self, orchestrator):
        payload = three_step_payload()
        payload["logo"] = BROKEN_DATA_URL
        with _open(orchestrator.build(Document.from_dict(payload))) as zf:
            assert "resources/company-logo.png" not in zf.namelist()
            assert "manual/training-manual.pdf" in zf.namelist()

    def test_optional_resources_can_be_disabled(self, orchestrator, three_step_document):
        options = ExportOptions(bundle=BundleOptions(
            include_style_guide=False,
            include_quick_reference=False,
            include_thumbnails=False,
            include_readme=False,
        ))
        with _open(orchestrator.build(three_step_document, options)) as zf:
            assert zf.namelist() == [
                "manual/training-manual.pdf",
                "interactive/training-module.html",
                "package-info.json",
            ]

    def test_deterministic_with_fixed_clock(self, orchestrator, three_step_document):
        assert orchestrator.build(three_step_document) == orchestrator.build(three_step_document)

    def test_filename(self, three_step_document):
        assert bundle_filename(three_step_document) == "reset-a-password-training-bundle.zip"
        assert thumbnail_path(4) == "resources/thumbnails/step-4.jpg"


class TestPackageInfo:
    """Test package-info.json."""

    def test_shape(self, orchestrator, three_step_document):
        with _open(orchestrator.build(three_step_document)) as zf:
            info = json.loads(zf.read("package-info.json"))

        assert info["package"] == {
            "name": "Reset A Password",
            "version": "1.0.0",
            "created": CREATED.isoformat(),
            "generator": "stepdoc",
        }
        assert info["content"]["stepCount"] == 3
        assert info["content"]["screenshotCount"] == 3
        assert info["content"]["company"] == "Acme Corp"
        assert info["content"]["hasLogo"] is False
        assert info["options"]["format"] == "pdf"

        paths = [entry["path"] for entry in info["files"]]
        assert "package-info.json" not in paths
        assert paths[-1] == "README.txt"
        thumbs = [e for e in info["files"] if e["path"].startswith("resources/thumbnails/")]
        assert {e["type"] for e in thumbs} == {"Thumbnail"}

    def test_no_password_in_options(self, three_step_document):
        options = ExportOptions.from_dict({"html": {"password": "hunter2"}})
        info = build_package_info(three_step_document, options, [], CREATED, version="2.0.0")
        assert info["package"]["version"] == "2.0.0"
        assert "hunter2" not in json.dumps(info)


class TestResources:
    """Test the generated text resources."""

    def test_style_guide(self, three_step_document):
        css = build_style_guide(three_step_document, get_theme("modern"))
        assert "--primary-color: #6366F1;" in css
        assert "Branding: Acme Corp" in css

    def test_quick_reference(self, three_step_document):
        text = build_quick_reference(three_step_document)
        lines = text.splitlines()
        assert lines[0] == "RESET A PASSWORD"
        assert "  1. Open the admin console  [~2 min | admin, login]" in lines
        assert "  3. Reset the password" in lines
        assert lines[-1] == "3 steps, about 5 minutes"

    def test_readme_lists_files(self, three_step_document):
        files = ["manual/training-manual.pdf", "resources/thumbnails/step-1.jpg", "README.txt"]
        readme = build_readme(three_step_document, files, CREATED)
        assert "- manual/training-manual.pdf: Printable training manual" in readme
        assert "1 step thumbnails" in readme
        assert "Created: 2024-03-15" in readme
        assert "Organization: Acme Corp" in readme


class TestFailures:
    """Test required-part failures and cancellation."""

    def test_pdf_failure_aborts_bundle(self, orchestrator, three_step_document):
        with patch("stepdoc.bundle.orchestrator.PdfRenderer.render", side_effect=PdfGenerationError("boom")):
            with pytest.raises(BundleError) as exc_info:
                orchestrator.build(three_step_document)
        assert exc_info.value.context["part"] == "manual/training-manual.pdf"

    def test_html_failure_aborts_bundle(self, orchestrator, three_step_document):
        with patch.object(orchestrator.html_exporter, "export_standalone", side_effect=OSError("disk")):
            with pytest.raises(BundleError) as exc_info:
                orchestrator.build(three_step_document)
        assert exc_info.value.context["part"] == "interactive/training-module.html"

    def test_unknown_theme(self, orchestrator, three_step_document):
        with pytest.raises(BundleError):
            orchestrator.build(three_step_document, ExportOptions(theme="neon"))

    def test_cancellation_not_wrapped(self, orchestrator, three_step_document):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ExportCancelledError) as exc_info:
            orchestrator.build(three_step_document, progress=ExportProgress(cancel_token=token))
        assert exc_info.value.stage == "bundle:pdf"

    def test_cancellation_during_pdf(self, orchestrator, three_step_document):
        token = CancellationToken()

        def cancel_on_first_step(current, total, message):
            if message.startswith("Preparing step"):
                token.cancel()

        progress = ExportProgress(cancel_token=token, callback=cancel_on_first_step)
        with pytest.raises(ExportCancelledError):
            orchestrator.build(three_step_document, progress=progress)

    def test_progress_reported(self, orchestrator, three_step_document):
        messages = []
        orchestrator.build(three_step_document, progress=ExportProgress(callback=lambda c, t, m: messages.append(m)))
        assert messages[0] == "Generating PDF manual"
        assert messages[-1] == "Bundle ready"
