"""
Utility functions for the memorial preview renderer
"""

import math
import re
from typing import Optional, Tuple, Union

from PIL import ImageColor


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (browser Math.round)"""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def parse_aspect_ratio(ratio: str) -> Tuple[float, float]:
    """Parse an aspect ratio string like '5/3.2' into (width, height)"""
    parts = ratio.split('/')
    if len(parts) != 2:
        raise ValueError(f"Invalid aspect ratio: {ratio!r}")
    w, h = float(parts[0]), float(parts[1])
    if w <= 0 or h <= 0:
        raise ValueError(f"Aspect ratio must be positive: {ratio!r}")
    return w, h


def parse_frame_sku(sku: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Parse a framed product SKU into physical print dimensions.

    'framed-11x14' -> (11.0, 14.0); anything else -> None
    """
    if not sku:
        return None
    match = re.search(r'framed-(\d+(?:\.\d+)?)x(\d+(?:\.\d+)?)', sku)
    if not match:
        return None
    return float(match.group(1)), float(match.group(2))


def parse_focal_hint(hint: Union[str, Tuple[float, float], None]) -> Optional[Tuple[float, float]]:
    """
    Normalize a focal hint to fractional (x, y).

    Accepts a tuple of fractions or a CSS object-position string such as
    '30% 60%' (what the image processor returns).
    """
    if hint is None:
        return None

    if isinstance(hint, str):
        tokens = hint.split()
        if len(tokens) != 2 or not all(t.endswith('%') for t in tokens):
            return None
        try:
            x, y = (float(t[:-1]) / 100.0 for t in tokens)
        except ValueError:
            return None
    else:
        x, y = float(hint[0]), float(hint[1])

    return clamp(x, 0.0, 1.0), clamp(y, 0.0, 1.0)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """Convert any CSS color Pillow understands to an RGB tuple"""
    return ImageColor.getrgb(color)[:3]
