"""
Font loading and text measurement backed by Pillow.
"""

import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont
from loguru import logger

from memorial_preview.config import AppConfig, get_config
from memorial_preview.errors import MeasurementUnavailableError
from memorial_preview.typeset import (
    FACE_BODY, FACE_DATES, FACE_FAMILY, FACE_LABEL, FACE_NAME, FACE_NICKNAME
)


class FontBook:
    """
    Resolves the renderer's font faces and measures text.

    Measurement is unavailable until `load()` has run, which lets the renderer
    defer text panels while fonts are still being preloaded.
    """

    def __init__(self, config: AppConfig = None):
        self.config = config or get_config()
        self._paths: Dict[str, Optional[str]] = {}
        self._cache: Dict[Tuple[str, int], ImageFont.FreeTypeFont] = {}
        self._lock = threading.Lock()
        self.ready = False

    def _face_files(self) -> Dict[str, str]:
        cfg = self.config
        return {
            FACE_NAME: cfg.FONT_SERIF_MEDIUM,
            FACE_BODY: cfg.FONT_SERIF_LIGHT,
            FACE_DATES: cfg.FONT_SERIF_LIGHT,
            FACE_NICKNAME: cfg.FONT_SERIF_ITALIC_REGULAR,
            FACE_FAMILY: cfg.FONT_SERIF_ITALIC,
            FACE_LABEL: cfg.FONT_SANS,
        }

    def _find(self, filename: str) -> Optional[str]:
        for directory in self.config.FONT_DIRS:
            candidate = Path(directory) / filename
            if candidate.exists():
                return str(candidate)
        try:
            # Pillow also searches the system font directories by name
            ImageFont.truetype(filename, 12)
            return filename
        except OSError:
            return None

    def load(self) -> 'FontBook':
        """Resolve every face; missing files fall back to Pillow's default font."""
        paths = {}
        missing: List[str] = []
        for face, filename in self._face_files().items():
            path = self._find(filename)
            paths[face] = path
            if path is None:
                missing.append(filename)

        with self._lock:
            self._paths = paths
            self._cache.clear()
            self.ready = True

        if missing:
            logger.warning(f"Fonts not found, using default font for: {', '.join(sorted(set(missing)))}")
        logger.info(f"Font book ready ({len(paths) - len(missing)}/{len(paths)} faces resolved)")
        return self

    def font(self, face: str, size_px: int) -> ImageFont.FreeTypeFont:
        if not self.ready:
            raise MeasurementUnavailableError(face)

        size_px = max(1, int(size_px))
        key = (face, size_px)
        with self._lock:
            font = self._cache.get(key)
            if font is None:
                path = self._paths.get(face)
                if path:
                    font = ImageFont.truetype(path, size_px)
                else:
                    font = ImageFont.load_default(size=size_px)
                self._cache[key] = font
        return font

    def measure(self, text: str, font_px: int, face: str) -> float:
        """Width of `text` in pixels; matches the MeasureFn signature."""
        return self.font(face, font_px).getlength(text)
