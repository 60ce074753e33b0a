"""
HTML Exporter - stepdoc

Interactive training module rendered with Jinja2.

Two modes:
- standalone: one HTML file, every screenshot inlined as a data URI
- zip: ``index.html`` plus ``assets/`` with the screenshots as files

Screenshots are composited before embedding, so callouts are part of the
pixels. Numbered callouts with reveal text also get a transparent hotspot
button at the same percentage position, wired to the embedded script.

Output is deterministic: same document and options give the same bytes.
"""

import hashlib
import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from jinja2 import Environment, FileSystemLoader, TemplateError

from ..exceptions import HtmlExportError, ImageDecodeError
from ..geometry import css_box
from ..imaging.codec import decode_data_uri, encode_image, extension_for, image_to_bytes
from ..imaging.processor import QUALITY_PRESETS, ImageProcessor
from ..models.callouts import Callout, NumberCallout
from ..models.document import Document, Step
from ..models.options import ExportOptions, HtmlMode
from ..progress import ExportProgress

logger = logging.getLogger(__name__)

# Fixed entry timestamp so archives are byte-identical across runs
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


@dataclass
class _AssetSink:
    """Collects externalized images in zip mode"""
    files: Dict[str, bytes] = field(default_factory=dict)

    def add(self, name: str, data: bytes) -> str:
        path = f"assets/{name}"
        self.files[path] = data
        return path


def write_zip(files: Dict[str, Union[str, bytes]]) -> bytes:
    """Write ``files`` (path -> content) to an in-memory ZIP in the given order"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for path, content in files.items():
            info = zipfile.ZipInfo(path, date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, content.encode("utf-8") if isinstance(content, str) else content)
    return buffer.getvalue()


def _pct(value: float) -> str:
    return f"{round(value, 4):g}%"


class HtmlExporter:
    """
    Renders the interactive HTML module.

    Example:
        >>> exporter = HtmlExporter()
        >>> html = exporter.export(document, ExportOptions(format="html"))
    """

    def __init__(self, processor: Optional[ImageProcessor] = None, templates_dir: Optional[Path] = None):
        self.processor = processor or ImageProcessor()
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=True,
            keep_trailing_newline=True,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def export(
        self,
        document: Document,
        options: Optional[ExportOptions] = None,
        progress: Optional[ExportProgress] = None,
    ) -> Union[str, bytes]:
        """
        Export in the mode selected by ``options.html.mode``.

        Returns:
            HTML string (standalone) or ZIP bytes (zip)

        Raises:
            HtmlExportError: if the template fails to render
            ExportCancelledError: if the cancellation token fires
        """
        options = options or ExportOptions()
        if options.html.mode is HtmlMode.ZIP:
            return self.export_zip(document, options, progress)
        return self.export_standalone(document, options, progress)

    def export_standalone(
        self,
        document: Document,
        options: Optional[ExportOptions] = None,
        progress: Optional[ExportProgress] = None,
    ) -> str:
        return self._render(document, options or ExportOptions(), progress or ExportProgress(), None)

    def export_zip(
        self,
        document: Document,
        options: Optional[ExportOptions] = None,
        progress: Optional[ExportProgress] = None,
    ) -> bytes:
        sink = _AssetSink()
        html = self._render(document, options or ExportOptions(), progress or ExportProgress(), sink)
        files: Dict[str, Union[str, bytes]] = {"index.html": html}
        files.update(sorted(sink.files.items()))
        try:
            return write_zip(files)
        except (OSError, zipfile.BadZipFile) as e:
            raise HtmlExportError(f"Failed to write HTML archive: {e}", {"document": document.id})

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _hotspots(self, callouts: Tuple[Callout, ...]) -> List[Dict[str, Any]]:
        hotspots = []
        for callout in callouts:
            if isinstance(callout, NumberCallout) and callout.has_reveal:
                hotspots.append({
                    "id": callout.id,
                    "number": callout.number,
                    "reveal_text": callout.reveal_text,
                    "style": "; ".join(f"{k}: {v}" for k, v in css_box(callout).items()),
                })
        return hotspots

    def _image_context(
        self,
        name: str,
        data_url: str,
        callouts: Tuple[Callout, ...],
        alt: str,
        options: ExportOptions,
        sink: Optional[_AssetSink],
        step_number: int,
    ) -> Dict[str, Any]:
        quality = QUALITY_PRESETS[options.quality].jpeg_quality
        inset = ("0%", "0%")
        try:
            image = self.processor.prepare_for_export(data_url, callouts, quality=options.quality)
            pad = self.processor.padding
            inset = (_pct(pad / image.width * 100), _pct(pad / image.height * 100))
            if sink is not None:
                src = sink.add(f"{name}.jpg", image_to_bytes(image, "JPEG", quality))
            else:
                src = encode_image(image, "JPEG", quality)
        except (ImageDecodeError, OSError, ValueError) as e:
            logger.warning(f"Step {step_number}: compositing {name} failed, using raw image: {e}")
            src = self._raw_source(name, data_url, sink, step_number)

        return {
            "src": src,
            "alt": alt,
            "inset_x": inset[0],
            "inset_y": inset[1],
            "hotspots": self._hotspots(callouts),
        }

    def _raw_source(self, name: str, data_url: str, sink: Optional[_AssetSink], step_number: int) -> str:
        if sink is None:
            return data_url
        try:
            _, raw = decode_data_uri(data_url)
        except ImageDecodeError as e:
            logger.warning(f"Step {step_number}: raw image {name} not decodable, inlining as-is: {e}")
            return data_url
        return sink.add(f"{name}.{extension_for(data_url)}", raw)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def _step_context(self, index: int, step: Step, options: ExportOptions, sink: Optional[_AssetSink]) -> Dict[str, Any]:
        number = index + 1
        images = []
        for k, shot in enumerate(step.screenshots, start=1):
            name = f"step-{number}-{k}"
            alt = shot.title or f"Step {number} screenshot {k}"
            images.append(self._image_context(name, shot.data_url, shot.callouts, alt, options, sink, number))
            if shot.secondary is not None:
                images.append(self._image_context(
                    f"{name}-secondary", shot.secondary.data_url, shot.secondary.callouts,
                    f"{alt} (after)", options, sink, number,
                ))

        quiz = None
        if options.html.enable_quizzes and step.quiz_questions:
            q = step.quiz_questions[0]
            quiz = {
                "question": q.question,
                "type": q.type,
                "options": list(q.options),
                "answer": q.correct_answer,
                "explanation": q.explanation,
            }

        return {
            "number": number,
            "anchor": f"step-{number}",
            "id": step.id or f"step-{number}",
            "title": step.title,
            "description": step.description,
            "heading": step.heading,
            "detailed_instructions": step.detailed_instructions,
            "notes": step.notes,
            "key_takeaway": step.key_takeaway,
            "estimated_time": step.estimated_time,
            "tags": list(step.tags),
            "tags_attr": "|".join(step.tags),
            "resources": [r.to_dict() for r in step.resources],
            "images": images,
            "quiz": quiz,
        }

    def _logo(self, document: Document, sink: Optional[_AssetSink]) -> Optional[str]:
        if not document.logo:
            return None
        if sink is None:
            return document.logo
        try:
            _, raw = decode_data_uri(document.logo)
        except ImageDecodeError as e:
            logger.warning(f"Logo not decodable, inlining as-is: {e}")
            return document.logo
        return sink.add(f"logo.{extension_for(document.logo)}", raw)

    def build_context(
        self,
        document: Document,
        options: ExportOptions,
        progress: Optional[ExportProgress] = None,
        sink: Optional[_AssetSink] = None,
    ) -> Dict[str, Any]:
        progress = progress or ExportProgress()
        steps = []
        total = len(document.steps)
        for index, step in enumerate(document.steps):
            progress.check("html:step")
            progress.report(index, total, f"Rendering step {index + 1}")
            steps.append(self._step_context(index, step, options, sink))
        progress.report(total, total, "Steps rendered")

        html_opts = options.html
        password_hash = (
            hashlib.sha256(html_opts.password.encode("utf-8")).hexdigest()
            if html_opts.password else None
        )
        config = {
            "storageKey": f"stepdoc-progress-{document.slug}",
            "themeKey": "stepdoc-theme",
            "totalSteps": total,
            "progress": html_opts.enable_progress,
            "quizzes": html_opts.enable_quizzes,
            "bookmarks": html_opts.enable_bookmarks,
            "notes": html_opts.enable_notes,
            "passwordHash": password_hash,
            "defaultTheme": "dark" if document.dark_mode else "light",
        }

        return {
            "document": {
                "title": document.title,
                "topic": document.topic,
                "date": document.date,
                "description": document.description,
                "company": document.company_name,
                "logo": self._logo(document, sink),
                "tags": document.all_tags,
                "estimated_minutes": document.estimated_minutes,
            },
            "steps": steps,
            "features": html_opts,
            "primary_color": html_opts.primary_color,
            "secondary_color": html_opts.secondary_color,
            "default_theme": config["defaultTheme"],
            "config": config,
            "footer": options.custom_footer,
        }

    def _render(
        self,
        document: Document,
        options: ExportOptions,
        progress: ExportProgress,
        sink: Optional[_AssetSink],
    ) -> str:
        context = self.build_context(document, options, progress, sink)
        try:
            template = self.jinja_env.get_template("module.html.j2")
            html = template.render(**context)
        except TemplateError as e:
            raise HtmlExportError(f"HTML template failed: {e}", {"document": document.id})
        logger.info(f"HTML module rendered: {len(context['steps'])} steps, {len(html)} chars")
        return html
