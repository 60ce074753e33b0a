"""
Export options.

Mirrors the option payload the editor sends with an export request; every
enum-like field is validated on construction.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import InvalidOptionsError


class ExportFormat(Enum):
    PDF = "pdf"
    HTML = "html"
    BUNDLE = "bundle"


class HtmlMode(Enum):
    STANDALONE = "standalone"
    ZIP = "zip"


class Quality(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_value(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise InvalidOptionsError(f"Invalid {name} '{value}' (expected one of: {allowed})")


@dataclass
class HtmlOptions:
    """Interactive module features"""
    mode: HtmlMode = HtmlMode.STANDALONE
    enable_progress: bool = True
    enable_quizzes: bool = True
    enable_bookmarks: bool = False
    enable_notes: bool = False
    password: Optional[str] = None
    primary_color: str = "#007AFF"
    secondary_color: str = "#5856D6"

    def __post_init__(self):
        self.mode = _enum_value(HtmlMode, self.mode, "html mode")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "enableProgress": self.enable_progress,
            "enableQuizzes": self.enable_quizzes,
            "enableBookmarks": self.enable_bookmarks,
            "enableNotes": self.enable_notes,
            "passwordProtection": bool(self.password),
            "primaryColor": self.primary_color,
            "secondaryColor": self.secondary_color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HtmlOptions":
        return cls(
            mode=data.get("mode", "standalone"),
            enable_progress=bool(data.get("enableProgress", True)),
            enable_quizzes=bool(data.get("enableQuizzes", True)),
            enable_bookmarks=bool(data.get("enableBookmarks", False)),
            enable_notes=bool(data.get("enableNotes", False)),
            password=data.get("password") or None,
            primary_color=data.get("primaryColor", "#007AFF"),
            secondary_color=data.get("secondaryColor", "#5856D6"),
        )


@dataclass
class BundleOptions:
    """Auxiliary resources packed next to the PDF and HTML"""
    include_style_guide: bool = True
    include_quick_reference: bool = True
    include_thumbnails: bool = True
    include_readme: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "includeStyleGuide": self.include_style_guide,
            "includeQuickReference": self.include_quick_reference,
            "includeThumbnails": self.include_thumbnails,
            "includeReadme": self.include_readme,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BundleOptions":
        return cls(
            include_style_guide=bool(data.get("includeStyleGuide", True)),
            include_quick_reference=bool(data.get("includeQuickReference", True)),
            include_thumbnails=bool(data.get("includeThumbnails", True)),
            include_readme=bool(data.get("includeReadme", True)),
        )


@dataclass
class ExportOptions:
    """What to produce and how"""
    format: ExportFormat = ExportFormat.PDF
    theme: str = "professional"
    quality: Quality = Quality.HIGH
    include_table_of_contents: bool = True
    include_progress_info: bool = False
    custom_footer: Optional[str] = None
    html: HtmlOptions = field(default_factory=HtmlOptions)
    bundle: BundleOptions = field(default_factory=BundleOptions)

    def __post_init__(self):
        self.format = _enum_value(ExportFormat, self.format, "format")
        self.quality = _enum_value(Quality, self.quality, "quality")
        self.theme = (self.theme or "professional").lower()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "format": self.format.value,
            "theme": self.theme,
            "quality": self.quality.value,
            "includeTableOfContents": self.include_table_of_contents,
            "includeProgressInfo": self.include_progress_info,
            "html": self.html.to_dict(),
            "bundle": self.bundle.to_dict(),
        }
        if self.custom_footer:
            data["customFooter"] = self.custom_footer
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExportOptions":
        data = data or {}
        html = data.get("html") or data.get("trainingOptions") or {}
        if "mode" in data and "mode" not in html:
            html = dict(html, mode=data["mode"])
        return cls(
            format=data.get("format", "pdf"),
            theme=data.get("theme", "professional"),
            quality=data.get("quality", "high"),
            include_table_of_contents=bool(data.get("includeTableOfContents", True)),
            include_progress_info=bool(data.get("includeProgressInfo", False)),
            custom_footer=data.get("customFooter") or None,
            html=HtmlOptions.from_dict(html),
            bundle=BundleOptions.from_dict(data.get("bundle") or {}),
        )
