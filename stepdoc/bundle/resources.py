"""
Bundle resources - text assets packed next to the manual and the module.

Standalone builders, no rendering imports:
- style guide CSS from a PDF theme
- quick-reference card (plain text, one line per step)
- README
- package-info.json payload
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.document import Document
from ..models.options import ExportOptions
from ..pdf.themes import PdfTheme

GENERATOR = "stepdoc"
PACKAGE_VERSION = "1.0.0"

PDF_PATH = "manual/training-manual.pdf"
HTML_PATH = "interactive/training-module.html"
LOGO_PATH = "resources/company-logo.png"
BACKGROUND_PATH = "resources/background-image.png"
STYLE_GUIDE_PATH = "resources/style-guide.css"
QUICK_REFERENCE_PATH = "resources/quick-reference.txt"
README_PATH = "README.txt"
PACKAGE_INFO_PATH = "package-info.json"


def thumbnail_path(step_number: int) -> str:
    return f"resources/thumbnails/step-{step_number}.jpg"


# Human-readable description of every file the bundle may contain
FILE_DESCRIPTIONS: Dict[str, Dict[str, str]] = {
    PDF_PATH: {"type": "PDF Manual", "description": "Printable training manual"},
    HTML_PATH: {"type": "Interactive Module", "description": "Self-contained interactive training module"},
    LOGO_PATH: {"type": "Branding", "description": "Company logo"},
    BACKGROUND_PATH: {"type": "Branding", "description": "Background image"},
    STYLE_GUIDE_PATH: {"type": "Style Guide", "description": "Colour and typography reference"},
    QUICK_REFERENCE_PATH: {"type": "Quick Reference", "description": "One-line summary of every step"},
    README_PATH: {"type": "Documentation", "description": "Package overview and instructions"},
}


# ---------------------------------------------------------------------------
# Style guide
# ---------------------------------------------------------------------------

STYLE_GUIDE_CSS = """\
/* {title} - style guide ({theme} theme) */

:root {{
  --primary-color: {primary};
  --secondary-color: {secondary};
  --accent-color: {accent};
  --background-color: {background};
  --text-color: {text};
  --text-light: {text_light};
  --border-color: {border};
  --border-radius: {radius}px;
}}

/* Typography */
.heading-primary {{ font-size: 2rem; font-weight: 700; color: var(--text-color); }}
.heading-secondary {{ font-size: 1.5rem; font-weight: 600; color: var(--text-color); }}
.text-body {{ font-size: 1rem; font-weight: 400; color: var(--text-color); }}
.text-caption {{ font-size: 0.875rem; font-weight: 400; color: var(--text-light); }}

/* Components */
.step-card {{
  border: 1px solid var(--border-color);
  border-radius: var(--border-radius);
  padding: 20px;
  margin-bottom: 20px;
}}

.step-number {{
  background-color: var(--primary-color);
  color: #FFFFFF;
  border-radius: 50%;
  width: 32px;
  height: 32px;
  display: flex;
  align-items: center;
  justify-content: center;
  font-weight: 700;
}}

.screenshot-container {{
  border: 1px solid var(--border-color);
  border-radius: 4px;
  padding: 10px;
  margin: 15px 0;
}}
"""

COMPANY_BRANDING_CSS = """
/* Branding: {company} */
.company-branding {{
  font-family: inherit;
  color: var(--primary-color);
  font-weight: 600;
}}
"""


def build_style_guide(document: Document, theme: PdfTheme) -> str:
    css = STYLE_GUIDE_CSS.format(
        title=document.title,
        theme=theme.name,
        primary=theme.primary,
        secondary=theme.secondary,
        accent=theme.accent,
        background=theme.background,
        text=theme.text,
        text_light=theme.text_light,
        border=theme.border,
        radius=f"{theme.border_radius:g}",
    )
    if document.company_name:
        css += COMPANY_BRANDING_CSS.format(company=document.company_name)
    return css


# ---------------------------------------------------------------------------
# Quick reference
# ---------------------------------------------------------------------------

def build_quick_reference(document: Document) -> str:
    """One numbered line per step, with tags and time when present"""
    lines = [document.title.upper(), "=" * len(document.title), ""]
    if document.topic:
        lines += [f"Topic: {document.topic}", ""]

    for number, step in enumerate(document.steps, start=1):
        line = f"{number:>3}. {step.heading}"
        extras = []
        if step.estimated_time:
            extras.append(f"~{step.estimated_time} min")
        if step.tags:
            extras.append(", ".join(step.tags))
        if extras:
            line += f"  [{' | '.join(extras)}]"
        lines.append(line)
        if step.key_takeaway:
            lines.append(f"     Key takeaway: {step.key_takeaway}")

    lines.append("")
    summary = f"{len(document.steps)} steps"
    if document.estimated_minutes:
        summary += f", about {document.estimated_minutes} minutes"
    lines.append(summary)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# README
# ---------------------------------------------------------------------------

README_TEMPLATE = """\
Training Package: {title}
{underline}

This package contains the learning materials for "{title}".

Package Contents
----------------

{contents}

Getting Started
---------------

1. Interactive learning: open {html_path} in a web browser.
2. Reference: print or read {pdf_path}.
3. Branding and summaries: see the resources/ folder.

No internet connection is required; all content is self-contained.

Created: {created}
{organization}Generated by {generator}
"""


def build_readme(document: Document, files: List[str], created: datetime) -> str:
    contents = "\n".join(
        f"- {path}: {FILE_DESCRIPTIONS[path]['description']}"
        for path in files
        if path in FILE_DESCRIPTIONS
    )
    thumbnails = [p for p in files if p.startswith("resources/thumbnails/")]
    if thumbnails:
        contents += f"\n- resources/thumbnails/: {len(thumbnails)} step thumbnails"

    title = document.title
    return README_TEMPLATE.format(
        title=title,
        underline="=" * (len("Training Package: ") + len(title)),
        contents=contents,
        html_path=HTML_PATH,
        pdf_path=PDF_PATH,
        created=document.date or created.date().isoformat(),
        organization=f"Organization: {document.company_name}\n" if document.company_name else "",
        generator=GENERATOR,
    )


# ---------------------------------------------------------------------------
# package-info.json
# ---------------------------------------------------------------------------

def build_package_info(
    document: Document,
    options: ExportOptions,
    files: List[str],
    created: datetime,
    version: Optional[str] = None,
) -> Dict[str, Any]:
    file_entries = []
    for path in files:
        meta = FILE_DESCRIPTIONS.get(path, {"type": "Thumbnail", "description": "Step thumbnail"})
        file_entries.append({"path": path, **meta})

    return {
        "package": {
            "name": document.title,
            "version": version or PACKAGE_VERSION,
            "created": created.isoformat(),
            "generator": GENERATOR,
        },
        "content": {
            "title": document.title,
            "topic": document.topic,
            "description": document.description,
            "company": document.company_name,
            "stepCount": len(document.steps),
            "screenshotCount": document.screenshot_count,
            "hasLogo": bool(document.logo),
            "hasBackgroundImage": bool(document.background_image),
        },
        "options": options.to_dict(),
        "files": file_entries,
    }


def dump_package_info(info: Dict[str, Any]) -> str:
    return json.dumps(info, indent=2, ensure_ascii=False)
