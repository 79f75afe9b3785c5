"""
Photo state and cover-fit crop math for photo regions.

Pan is stored as a fraction of the slack between the crop rectangle and the
natural image, so a crop stays valid when the photo or the region changes size.
"""

import io
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError
from loguru import logger
from pydantic import BaseModel

from memorial_preview.errors import DecodeFailedError
from memorial_preview.utils import clamp, parse_focal_hint

MIN_ZOOM = 1.0
MAX_ZOOM = 3.0

FocalHint = Union[str, Tuple[float, float], None]


class PhotoCrop(BaseModel):
    """Serializable zoom/pan for one photo region"""
    zoom: float = 1.0
    pan_x: float = 0.5
    pan_y: float = 0.5

    model_config = {"frozen": True}


@dataclass(frozen=True)
class SourceRect:
    """Sub-rectangle of the natural image, in natural pixels"""
    x: float
    y: float
    width: float
    height: float

    def as_box(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass
class PhotoState:
    image: Optional[Image.Image] = None
    zoom: float = 1.0
    pan_x: float = 0.5
    pan_y: float = 0.5
    position_hint: Optional[Tuple[float, float]] = None

    def crop(self) -> PhotoCrop:
        return PhotoCrop(zoom=self.zoom, pan_x=self.pan_x, pan_y=self.pan_y)


def cover_rect(natural_w: float, natural_h: float, dest_w: float, dest_h: float,
               zoom: float = 1.0, pan_x: float = 0.5, pan_y: float = 0.5) -> SourceRect:
    """
    Source rectangle for drawing an image cover-fit into a dest_w x dest_h box.

    The rectangle has the destination's aspect ratio, is as large as the image
    allows at zoom 1, shrinks by 1/zoom, and sits at pan_x/pan_y of the slack.
    """
    img_aspect = natural_w / natural_h
    box_aspect = dest_w / dest_h

    if img_aspect > box_aspect:
        sh = natural_h
        sw = sh * box_aspect
    else:
        sw = natural_w
        sh = sw / box_aspect

    sw /= zoom
    sh /= zoom

    sx = (natural_w - sw) * pan_x
    sy = (natural_h - sh) * pan_y
    return SourceRect(sx, sy, sw, sh)


def decode_image(data: bytes, region_id: str = "photo") -> Image.Image:
    """Decode uploaded bytes into an upright RGB image."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeFailedError(region_id, reason=str(e), size_bytes=len(data or b''))

    if image.width == 0 or image.height == 0:
        raise DecodeFailedError(region_id, reason="image has no pixels", size_bytes=len(data))

    return image.convert('RGB')


class ImageTransform:
    """Per-region photo state: bitmap, zoom and pan."""

    def __init__(self):
        self._states: Dict[str, PhotoState] = {}
        self._tickets: Dict[str, int] = {}

    def begin_load(self, region_id: str) -> int:
        """Reserve a load ticket; only the newest ticket's result is kept."""
        ticket = self._tickets.get(region_id, 0) + 1
        self._tickets[region_id] = ticket
        return ticket

    def is_current(self, region_id: str, ticket: int) -> bool:
        return self._tickets.get(region_id) == ticket

    def set_image(self, region_id: str, image: Image.Image, focal_hint: FocalHint = None,
                  ticket: Optional[int] = None) -> bool:
        """
        Store a decoded bitmap for a region.

        A re-upload keeps the existing zoom and pan. Returns False when the
        load was superseded by a newer one and the image was discarded.
        """
        if ticket is not None and not self.is_current(region_id, ticket):
            logger.debug(f"Discarding superseded photo load for {region_id} (ticket {ticket})")
            return False

        hint = parse_focal_hint(focal_hint)
        existing = self._states.get(region_id)
        if existing is not None:
            existing.image = image
            existing.position_hint = hint
        else:
            pan_x, pan_y = hint if hint else (0.5, 0.5)
            self._states[region_id] = PhotoState(
                image=image, zoom=1.0, pan_x=pan_x, pan_y=pan_y, position_hint=hint
            )

        logger.debug(f"Photo set for {region_id}: {image.size}")
        return True

    def set_crop(self, region_id: str, zoom: float, pan_x: float, pan_y: float) -> PhotoCrop:
        state = self._states.setdefault(region_id, PhotoState())
        state.zoom = clamp(zoom, MIN_ZOOM, MAX_ZOOM)
        state.pan_x = clamp(pan_x, 0.0, 1.0)
        state.pan_y = clamp(pan_y, 0.0, 1.0)
        return state.crop()

    def get_state(self, region_id: str) -> Optional[PhotoState]:
        return self._states.get(region_id)

    def get_crop(self, region_id: str) -> Optional[PhotoCrop]:
        state = self._states.get(region_id)
        return state.crop() if state else None

    def crops(self) -> Dict[str, PhotoCrop]:
        return {region_id: state.crop() for region_id, state in self._states.items()}

    def has_image(self, region_id: str) -> bool:
        state = self._states.get(region_id)
        return state is not None and state.image is not None

    def cover_rect(self, region_id: str, dest_w: float, dest_h: float) -> Optional[SourceRect]:
        state = self._states.get(region_id)
        if state is None or state.image is None:
            return None
        natural_w, natural_h = state.image.size
        return cover_rect(natural_w, natural_h, dest_w, dest_h, state.zoom, state.pan_x, state.pan_y)
