"""
End-to-end export tests: editor payload in, finished files out.
"""
import io
import json
import zipfile
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import png_data_url, three_step_payload
from api.main import app
from api.rate_limiter import limiter
from stepdoc import render
from stepdoc.bundle import BundleOrchestrator
from stepdoc.imaging import CropArea, ImageProcessor
from stepdoc.models import CalloutShape, Document, ExportOptions
from stepdoc.overlay import CalloutOverlay


@pytest.fixture
def client():
    enabled = limiter.enabled
    limiter.enabled = False
    yield TestClient(app)
    limiter.enabled = enabled


class TestThreeStepBundle:
    """A three-step document exported as a training bundle."""

    def test_bundle_contents(self, client):
        payload = three_step_payload()
        payload["logo"] = png_data_url(90, 30)
        resp = client.post("/api/export", json={"document": payload, "options": {"format": "bundle", "theme": "corporate"}})
        assert resp.status_code == 200
        assert resp.headers["content-disposition"].endswith('"reset-a-password-training-bundle.zip"')

        with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
            names = zf.namelist()
            assert names[:2] == ["manual/training-manual.pdf", "interactive/training-module.html"]
            assert "resources/company-logo.png" in names
            assert "resources/thumbnails/step-1.jpg" in names
            assert "resources/thumbnails/step-2.jpg" not in names
            assert "resources/thumbnails/step-3.jpg" in names

            html = zf.read("interactive/training-module.html").decode("utf-8")
            assert 'data-reveal-text="Click the gear icon"' in html

            info = json.loads(zf.read("package-info.json"))
            assert info["options"]["theme"] == "corporate"
            assert info["content"]["hasLogo"] is True
            assert [f["path"] for f in info["files"]] == names[:-1]

            style = zf.read("resources/style-guide.css").decode("utf-8")
            assert "--primary-color: #1F2937;" in style

    def test_bundle_is_reproducible(self):
        document = Document.from_dict(three_step_payload())
        created = datetime(2024, 3, 15, tzinfo=timezone.utc)
        orchestrator = BundleOrchestrator()
        first = orchestrator.build(document, ExportOptions(format="bundle"), created=created)
        second = orchestrator.build(document, ExportOptions(format="bundle"), created=created)
        assert first == second


class TestEditorToExport:
    """Annotate and crop in the editor model, then export."""

    def test_annotate_crop_and_render(self):
        document = Document.from_dict(three_step_payload())
        shot = document.steps[2].screenshots[0]
        store = {}

        overlay = CalloutOverlay(
            shot,
            on_add=lambda sid, callout: store.setdefault(sid, []).append(callout),
            on_update=lambda sid, callout: None,
            on_delete=lambda sid, cid: None,
            id_factory=lambda: "added",
        )
        overlay.select_tool(CalloutShape.NUMBER)
        overlay.confirm(overlay.click(40, 30, 400, 300), reveal_text="Then press Send")

        updated = shot
        for callout in store[shot.id]:
            updated = updated.with_callout_added(callout)
        updated = ImageProcessor().apply_crop(updated, CropArea(0, 0, 300, 200))
        assert [c.id for c in updated.callouts] == ["c3", "added"]

        result = render(Document.from_dict({
            "id": "edited",
            "title": "Edited",
            "steps": [{"id": "x", "description": "Send it", "screenshots": [updated.to_dict()]}],
        }), ExportOptions(format="html"))
        assert 'data-reveal-text="Then press Send"' in result.text
        assert 'data-callout="added"' in result.text

    def test_html_standalone_byte_identical(self):
        document = Document.from_dict(three_step_payload())
        options = ExportOptions.from_dict({"format": "html", "trainingOptions": {"enableBookmarks": True}})
        assert render(document, options).content == render(document, options).content
