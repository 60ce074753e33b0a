"""
stepdoc models

Usage:
    from stepdoc.models import Document, ExportOptions

    document = Document.from_dict(payload)
    for step in document.steps:
        for shot in step.screenshots:
            print(shot.id, [c.shape_name for c in shot.callouts])
"""

from .callouts import (
    CalloutShape,
    Callout,
    CircleCallout,
    NumberCallout,
    RectangleCallout,
    ArrowCallout,
    BlurCallout,
    MagnifierCallout,
    OvalCallout,
    PolygonCallout,
    FreehandCallout,
    UnknownCallout,
    CALLOUT_TYPES,
    callout_from_dict,
)
from .document import (
    Document,
    Step,
    Screenshot,
    SecondaryImage,
    Resource,
    QuizQuestion,
    slugify,
)
from .options import (
    ExportFormat,
    ExportOptions,
    HtmlMode,
    HtmlOptions,
    BundleOptions,
    Quality,
)

__all__ = [
    "CalloutShape",
    "Callout",
    "CircleCallout",
    "NumberCallout",
    "RectangleCallout",
    "ArrowCallout",
    "BlurCallout",
    "MagnifierCallout",
    "OvalCallout",
    "PolygonCallout",
    "FreehandCallout",
    "UnknownCallout",
    "CALLOUT_TYPES",
    "callout_from_dict",
    "Document",
    "Step",
    "Screenshot",
    "SecondaryImage",
    "Resource",
    "QuizQuestion",
    "slugify",
    "ExportFormat",
    "ExportOptions",
    "HtmlMode",
    "HtmlOptions",
    "BundleOptions",
    "Quality",
]
