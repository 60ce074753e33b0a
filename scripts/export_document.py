#!/usr/bin/env python3
"""
CLI entry point for exporting a document.

The input file is either a document JSON, or ``{"document": ..., "options": ...}``
as sent to the API. Command-line flags override the file's options.

Usage:
    python -m scripts.export_document doc.json                            # PDF into settings.output_dir
    python -m scripts.export_document doc.json --format bundle --out dist/
    python -m scripts.export_document doc.json --format html --html-mode zip --theme modern
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def load_payload(path: Path) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Read ``path`` and split it into (document, options)"""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("document"), dict):
        return data["document"], dict(data.get("options") or {})
    return data, {}


def apply_overrides(options: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Merge command-line flags into the options payload"""
    options = dict(options)
    if args.format:
        options["format"] = args.format
    if args.theme:
        options["theme"] = args.theme
    if args.quality:
        options["quality"] = args.quality
    if args.no_toc:
        options["includeTableOfContents"] = False
    if args.progress_info:
        options["includeProgressInfo"] = True
    if args.footer:
        options["customFooter"] = args.footer

    html = dict(options.get("html") or options.get("trainingOptions") or {})
    if args.html_mode:
        html["mode"] = args.html_mode
    if args.password:
        html["password"] = args.password
    if html:
        options["html"] = html
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="stepdoc - export a document to PDF, HTML or a training bundle")
    parser.add_argument("input", type=Path, help="Document JSON file")
    parser.add_argument("--format", choices=["pdf", "html", "bundle"], help="Output format (default: pdf)")
    parser.add_argument("--theme", help="PDF theme: professional, modern, corporate, minimal")
    parser.add_argument("--quality", choices=["low", "medium", "high"], help="Image quality preset")
    parser.add_argument("--html-mode", choices=["standalone", "zip"], help="HTML packaging")
    parser.add_argument("--password", help="Password-protect the HTML module")
    parser.add_argument("--footer", help="Custom footer text (replaces the PDF disclaimer)")
    parser.add_argument("--no-toc", action="store_true", help="Skip the PDF table of contents")
    parser.add_argument("--progress-info", action="store_true", help="Add time estimates and checkboxes to the PDF")
    parser.add_argument("--out", type=Path, help="Output directory (default: settings.output_dir)")
    parser.add_argument("--log-level", help="Log level (default: settings.log_level)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    from config.logging_config import setup_logging
    from config.settings import settings
    from stepdoc import render
    from stepdoc.exceptions import InvalidDocumentError, InvalidOptionsError, StepDocError
    from stepdoc.models import Document, ExportOptions

    setup_logging(args.log_level or settings.log_level)

    try:
        document_data, options_data = load_payload(args.input)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read {args.input}: {e}", file=sys.stderr)
        return EXIT_INVALID

    options_data = apply_overrides(options_data, args)
    options_data.setdefault("theme", settings.default_theme)
    options_data.setdefault("quality", settings.default_quality)

    try:
        document = Document.from_dict(document_data)
        options = ExportOptions.from_dict(options_data)
    except (InvalidDocumentError, InvalidOptionsError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_INVALID

    def on_progress(current: int, total: int, message: str) -> None:
        logger.info(f"[{current}/{total}] {message}")

    try:
        result = render(document, options, progress_callback=on_progress)
    except InvalidOptionsError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_INVALID
    except StepDocError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return EXIT_FAILED

    out_dir = args.out or settings.output_dir
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / result.filename
    out_path.write_bytes(result.content)

    print(f"Exported: {out_path} ({result.size:,} bytes)")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
