"""
stepdoc training bundle

Usage:
    from stepdoc.bundle import BundleOrchestrator, bundle_filename

    archive = BundleOrchestrator().build(document, options)
    Path(bundle_filename(document)).write_bytes(archive)
"""

from .orchestrator import BundleOrchestrator, bundle_filename
from .resources import (
    build_package_info,
    build_quick_reference,
    build_readme,
    build_style_guide,
    thumbnail_path,
)

__all__ = [
    "BundleOrchestrator",
    "bundle_filename",
    "build_package_info",
    "build_quick_reference",
    "build_readme",
    "build_style_guide",
    "thumbnail_path",
]
