"""
stepdoc HTML export

Usage:
    from stepdoc.html import HtmlExporter

    html = HtmlExporter().export_standalone(document, options)
    archive = HtmlExporter().export_zip(document, options)
"""

from .exporter import HtmlExporter, write_zip, ZIP_TIMESTAMP

__all__ = [
    "HtmlExporter",
    "write_zip",
    "ZIP_TIMESTAMP",
]
