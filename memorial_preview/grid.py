"""
Grid geometry for the memorial preview renderer.

This module handles:
- Reconciling live regions with the active layout's region names
- Resolving fractional tracks (catalog defaults or user overrides)
- Fitting the frame to a product's physical aspect ratio
- Converting each region's layout box into an integer device-pixel surface

Nothing here draws; regions only own their raster surfaces.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from PIL import Image
from loguru import logger

from memorial_preview.layouts import (
    AREA_ROLES, SECOND_PANEL, LayoutCatalog, LayoutDefinition, RegionRole
)
from memorial_preview.errors import ValidationError
from memorial_preview.utils import round_half_up


class LayoutPosition:
    """Represents a position and size in layout pixels."""

    def __init__(self, x: float, y: float, width: float, height: float):
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_device(self, scale: float) -> Tuple[int, int, int, int]:
        """Device-pixel (x, y, width, height); edges are rounded so neighbours never leave a seam."""
        x0 = round_half_up(self.x * scale)
        y0 = round_half_up(self.y * scale)
        x1 = round_half_up(self.right * scale)
        y1 = round_half_up(self.bottom * scale)
        return x0, y0, x1 - x0, y1 - y0

    def __eq__(self, other) -> bool:
        if not isinstance(other, LayoutPosition):
            return NotImplemented
        return (self.x, self.y, self.width, self.height) == (other.x, other.y, other.width, other.height)

    def __repr__(self) -> str:
        return f"LayoutPosition({self.x}, {self.y}, {self.width}, {self.height})"


@dataclass
class TrackRatios:
    """Fractional column and row weights for one layout"""
    columns: List[float]
    rows: List[float]

    def copy(self) -> 'TrackRatios':
        return TrackRatios(columns=list(self.columns), rows=list(self.rows))

    def to_dict(self) -> Dict[str, List[float]]:
        return {'columns': list(self.columns), 'rows': list(self.rows)}


@dataclass
class Region:
    """One named rectangular area of the preview and its raster surface"""
    name: str
    role: RegionRole
    surface: Image.Image = field(default_factory=lambda: Image.new('RGB', (0, 0)))
    box: Optional[LayoutPosition] = None
    device_rect: Optional[Tuple[int, int, int, int]] = None
    live: bool = True

    @property
    def size(self) -> Tuple[int, int]:
        return self.surface.size

    @property
    def drawable(self) -> bool:
        """Live, measured into a non-empty box by the last reflow"""
        w, h = self.surface.size
        return self.live and self.device_rect is not None and w > 0 and h > 0

    def dispose(self) -> None:
        self.live = False
        self.surface = Image.new('RGB', (0, 0))


class GridController:
    """Owns the active layout, track overrides and the live region set."""

    def __init__(self, catalog: LayoutCatalog = None, gap_px: float = 0.0, min_weight: float = 0.3):
        self.catalog = catalog or LayoutCatalog()
        self.gap_px = gap_px
        self.min_weight = min_weight
        self.active_layout_id: Optional[str] = None
        self.track_overrides: Dict[str, TrackRatios] = {}
        self.regions: Dict[str, Region] = {}
        self.frame_dims: Optional[Tuple[float, float]] = None
        self.text_panel = False
        self.width_px = 0.0
        self.device_scale = 1.0

    # --- Layout and regions ---

    @property
    def active_layout(self) -> Optional[LayoutDefinition]:
        if self.active_layout_id is None:
            return None
        return self.catalog.get(self.active_layout_id)

    def role_for(self, name: str) -> RegionRole:
        if name == SECOND_PANEL and self.text_panel:
            return RegionRole.TEXT
        return AREA_ROLES.get(name, RegionRole.PHOTO)

    def apply_layout(self, layout_id: str) -> Tuple[List[str], List[str]]:
        """
        Make `layout_id` active and reconcile regions with its area names.

        Returns (created, removed) region names. Regions are never reused
        across a removal: a name that comes back gets a fresh surface.
        """
        layout = self.catalog.require(layout_id)
        required = layout.area_names()

        removed = [name for name in self.regions if name not in required]
        for name in removed:
            self.regions.pop(name).dispose()
            logger.debug(f"Region {name} removed (layout {layout_id})")

        created = []
        for name in required:
            region = self.regions.get(name)
            role = self.role_for(name)
            if region is None:
                self.regions[name] = Region(name=name, role=role)
                created.append(name)
                logger.debug(f"Region {name} created as {role.value}")
            elif region.role != role:
                logger.debug(f"Region {name} switched from {region.role.value} to {role.value}")
                region.role = role

        # keep dict order matching the layout's area order
        self.regions = {name: self.regions[name] for name in required}

        if layout_id != self.active_layout_id:
            logger.info(f"Applied layout {layout_id} ({len(required)} regions)")
        self.active_layout_id = layout_id
        return created, removed

    def set_text_panel(self, enabled: bool) -> None:
        self.text_panel = enabled
        if self.active_layout_id is not None:
            self.apply_layout(self.active_layout_id)

    def get_region(self, name: str) -> Optional[Region]:
        return self.regions.get(name)

    # --- Tracks ---

    def resolve_tracks(self, layout_id: str) -> TrackRatios:
        override = self.track_overrides.get(layout_id)
        if override is not None:
            return override.copy()
        layout = self.catalog.require(layout_id)
        return TrackRatios(columns=list(layout.columns), rows=list(layout.rows))

    def set_override(self, layout_id: str, columns: List[float], rows: List[float]) -> None:
        self.check_override(layout_id, columns, rows)
        self.track_overrides[layout_id] = TrackRatios(
            columns=[float(v) for v in columns],
            rows=[float(v) for v in rows],
        )

    def check_override(self, layout_id: str, columns: List[float], rows: List[float]) -> None:
        """Raise UnknownLayoutError or ValidationError if the weights cannot apply to the layout."""
        layout = self.catalog.require(layout_id)
        if len(columns) != len(layout.columns) or len(rows) != len(layout.rows):
            raise ValidationError(
                f"Track count mismatch for layout {layout_id}",
                details={
                    'expected': [len(layout.columns), len(layout.rows)],
                    'received': [len(columns), len(rows)]
                }
            )
        # adjacent pairs then always hold at least twice the divider floor
        if any(v <= 0 or v < self.min_weight for v in list(columns) + list(rows)):
            raise ValidationError(
                f"Track weights must be positive and at least {self.min_weight} for layout {layout_id}",
                details={'columns': list(columns), 'rows': list(rows), 'min_weight': self.min_weight}
            )

    def clear_override(self, layout_id: str) -> bool:
        return self.track_overrides.pop(layout_id, None) is not None

    # --- Frame ---

    def recompute_frame(self, frame_dims: Optional[Tuple[float, float]]) -> Tuple[float, float]:
        """Store a physical print size override and return the effective aspect (w, h)."""
        self.frame_dims = tuple(frame_dims) if frame_dims else None
        return self.frame_aspect()

    def frame_aspect(self) -> Tuple[float, float]:
        layout = self.active_layout
        if layout is None:
            return 1.0, 1.0
        if not self.frame_dims:
            return layout.aspect

        # a landscape layout stays landscape however the print size is quoted
        a, b = self.frame_dims
        if layout.is_landscape:
            return max(a, b), min(a, b)
        return min(a, b), max(a, b)

    def set_viewport(self, width_px: float, device_scale: float = None) -> None:
        self.width_px = max(0.0, float(width_px))
        if device_scale is not None:
            self.device_scale = float(device_scale)

    def frame_size(self) -> Tuple[float, float]:
        """Whole frame size in layout pixels"""
        aw, ah = self.frame_aspect()
        return self.width_px, self.width_px * ah / aw

    def device_frame_size(self) -> Tuple[int, int]:
        w, h = self.frame_size()
        return round_half_up(w * self.device_scale), round_half_up(h * self.device_scale)

    # --- Geometry ---

    def _track_edges(self, weights: List[float], total_px: float) -> List[Tuple[float, float]]:
        """(start, end) pixel span of every track, gaps excluded"""
        free = max(0.0, total_px - self.gap_px * (len(weights) - 1))
        total_weight = sum(weights)
        edges = []
        pos = 0.0
        for i, weight in enumerate(weights):
            size = free * weight / total_weight if total_weight > 0 else 0.0
            edges.append((pos, pos + size))
            pos += size + self.gap_px
        return edges

    def track_edges(self) -> Tuple[List[Tuple[float, float]], List[Tuple[float, float]]]:
        tracks = self.resolve_tracks(self.active_layout_id)
        width, height = self.frame_size()
        return self._track_edges(tracks.columns, width), self._track_edges(tracks.rows, height)

    def region_box(self, name: str) -> LayoutPosition:
        layout = self.catalog.require(self.active_layout_id)
        col_edges, row_edges = self.track_edges()
        r0, c0, r1, c1 = layout.cell_span(name)
        x, right = col_edges[c0][0], col_edges[c1][1]
        y, bottom = row_edges[r0][0], row_edges[r1][1]
        return LayoutPosition(x, y, right - x, bottom - y)

    def measure_regions(self) -> Dict[str, Tuple[int, int]]:
        """
        Size every live region's surface to its device-pixel box.

        Returns the device size of each region that has space. Regions with
        an empty box are left untouched until a later reflow gives them room.
        """
        sizes = {}
        if self.active_layout_id is None:
            return sizes

        for name, region in self.regions.items():
            box = self.region_box(name)
            rect = box.to_device(self.device_scale)
            dw, dh = rect[2], rect[3]
            if box.is_empty or dw <= 0 or dh <= 0:
                # surface kept as is, but not drawn until a reflow gives it room
                region.box = None
                region.device_rect = None
                logger.debug(f"Region {name} has no space yet, skipping")
                continue

            region.box = box
            region.device_rect = rect
            if region.surface.size != (dw, dh):
                region.surface = Image.new('RGB', (dw, dh))
                logger.debug(f"Region {name} resized to {dw}x{dh}")
            sizes[name] = (dw, dh)

        return sizes
