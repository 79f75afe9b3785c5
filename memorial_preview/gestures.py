"""
Crop gestures for photo regions: drag to pan, wheel to zoom, pinch to zoom.

Gestures only compute new crop values; every write goes through the
renderer's `set_photo_crop`, which clamps zoom and pan.
"""

import math
from typing import Callable, Optional, Tuple

from memorial_preview.photo import PhotoCrop

PAN_SENSITIVITY = 1.5
WHEEL_STEP = 0.1

Point = Tuple[float, float]


class CropGesture:
    """Pointer state machine for one photo region."""

    def __init__(self, region_id: str,
                 get_crop: Callable[[str], Optional[PhotoCrop]],
                 set_crop: Callable[[str, float, float, float], None],
                 get_display_size: Callable[[str], Optional[Tuple[float, float]]]):
        self.region_id = region_id
        self._get_crop = get_crop
        self._set_crop = set_crop
        self._get_display_size = get_display_size
        self._drag_origin: Optional[Point] = None
        self._pan_origin: Tuple[float, float] = (0.5, 0.5)
        self._pinch_distance = 0.0
        self._pinch_zoom = 1.0

    def _crop(self) -> PhotoCrop:
        return self._get_crop(self.region_id) or PhotoCrop()

    @property
    def dragging(self) -> bool:
        return self._drag_origin is not None

    def press(self, point: Point) -> None:
        crop = self._crop()
        self._drag_origin = point
        self._pan_origin = (crop.pan_x, crop.pan_y)

    def drag(self, point: Point) -> None:
        """Pan opposite to the pointer; slower when zoomed in."""
        if self._drag_origin is None:
            return
        size = self._get_display_size(self.region_id)
        if not size or size[0] <= 0 or size[1] <= 0:
            return

        crop = self._crop()
        sensitivity = PAN_SENSITIVITY / crop.zoom
        dx = point[0] - self._drag_origin[0]
        dy = point[1] - self._drag_origin[1]
        pan_x = self._pan_origin[0] - (dx / size[0]) * sensitivity
        pan_y = self._pan_origin[1] - (dy / size[1]) * sensitivity
        self._set_crop(self.region_id, crop.zoom, pan_x, pan_y)

    def release(self) -> None:
        self._drag_origin = None

    def wheel(self, delta_y: float) -> None:
        """Scrolling down zooms out, scrolling up zooms in."""
        crop = self._crop()
        step = -WHEEL_STEP if delta_y > 0 else WHEEL_STEP
        self._set_crop(self.region_id, crop.zoom + step, crop.pan_x, crop.pan_y)

    def pinch_start(self, a: Point, b: Point) -> None:
        self._drag_origin = None
        self._pinch_distance = math.hypot(b[0] - a[0], b[1] - a[1])
        self._pinch_zoom = self._crop().zoom

    def pinch(self, a: Point, b: Point) -> None:
        if self._pinch_distance <= 0:
            return
        distance = math.hypot(b[0] - a[0], b[1] - a[1])
        crop = self._crop()
        self._set_crop(self.region_id, self._pinch_zoom * distance / self._pinch_distance,
                       crop.pan_x, crop.pan_y)
