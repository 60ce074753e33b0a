"""
Font registration for the PDF engine.

DejaVu Sans is used when it can be found on the system (wide Unicode
coverage); otherwise the built-in Helvetica faces are used.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError

logger = logging.getLogger(__name__)


class FontManager:
    """
    Resolves the regular and bold faces used by the renderer.

    Registration happens once per process; ReportLab's font registry is
    global.
    """

    DEFAULT_SEARCH_PATHS = [
        '/usr/share/fonts/truetype/dejavu/',
        '/usr/share/fonts/TTF/',
        '/usr/share/fonts/dejavu/',
        '/usr/local/share/fonts/',
        os.path.expanduser('~/.fonts/'),
        os.path.expanduser('~/.local/share/fonts/'),
        '/Library/Fonts/',
        os.path.expanduser('~/Library/Fonts/'),
        str(Path(__file__).parent / 'fonts'),
    ]

    FACES = {
        'regular': ('DejaVuSans', 'DejaVuSans.ttf', 'Helvetica'),
        'bold': ('DejaVuSans-Bold', 'DejaVuSans-Bold.ttf', 'Helvetica-Bold'),
    }

    _registered: Dict[str, str] = {}

    def __init__(self, additional_paths: Optional[List[str]] = None, use_system_fonts: bool = True):
        self.search_paths = list(self.DEFAULT_SEARCH_PATHS)
        if additional_paths:
            self.search_paths.extend(additional_paths)
        self.use_system_fonts = use_system_fonts
        self._faces: Dict[str, str] = {}

    def find_font_file(self, filename: str) -> Optional[str]:
        for search_path in self.search_paths:
            path = Path(search_path) / filename
            if path.exists():
                return str(path)
        return None

    def _register(self, font_name: str, font_file: str) -> bool:
        if font_name in self._registered:
            return True
        font_path = self.find_font_file(font_file)
        if not font_path:
            return False
        try:
            pdfmetrics.registerFont(TTFont(font_name, font_path))
        except (TTFError, OSError) as e:
            logger.error(f"Failed to register font {font_name}: {e}")
            return False
        FontManager._registered[font_name] = font_path
        logger.debug(f"Registered font: {font_name} from {font_path}")
        return True

    def face(self, variant: str) -> str:
        """ReportLab font name for 'regular' or 'bold'"""
        if variant not in self._faces:
            name, filename, fallback = self.FACES[variant]
            if self.use_system_fonts and self._register(name, filename):
                self._faces[variant] = name
            else:
                self._faces[variant] = fallback
        return self._faces[variant]

    @property
    def regular(self) -> str:
        return self.face('regular')

    @property
    def bold(self) -> str:
        return self.face('bold')
