"""
Layout catalog for the memorial preview renderer.

Each layout declares fractional column/row tracks and a row-major grid of
region names. Repeating a name across cells spans that region over them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from loguru import logger

from memorial_preview.errors import UnknownLayoutError
from memorial_preview.utils import parse_aspect_ratio


class RegionRole(str, Enum):
    PHOTO = "photo"
    TRIBUTE = "tribute"
    TEXT = "text"


PRIMARY_PHOTO = "photo"
TRIBUTE = "tribute"
SECOND_PANEL = "panel2"

# Roles for every region name a layout may use. panel2 defaults to a photo
# and becomes a text panel when the host switches the third panel to text.
AREA_ROLES: Dict[str, RegionRole] = {
    PRIMARY_PHOTO: RegionRole.PHOTO,
    TRIBUTE: RegionRole.TRIBUTE,
    SECOND_PANEL: RegionRole.PHOTO,
}


@dataclass(frozen=True)
class LayoutDefinition:
    """Immutable grid definition supplied by the catalog"""
    id: str
    label: str
    region_count: int
    columns: Tuple[float, ...]
    rows: Tuple[float, ...]
    areas: Tuple[Tuple[str, ...], ...]
    aspect_ratio: str

    @property
    def aspect(self) -> Tuple[float, float]:
        return parse_aspect_ratio(self.aspect_ratio)

    @property
    def is_landscape(self) -> bool:
        w, h = self.aspect
        return w > h

    def area_names(self) -> List[str]:
        """Distinct region names in first-appearance order"""
        names = []
        for row in self.areas:
            for name in row:
                if name not in names:
                    names.append(name)
        return names

    def cell_span(self, name: str) -> Tuple[int, int, int, int]:
        """Return (first_row, first_col, last_row, last_col) covered by a region"""
        cells = [(r, c) for r, row in enumerate(self.areas)
                 for c, label in enumerate(row) if label == name]
        if not cells:
            raise KeyError(name)
        rows = [r for r, _ in cells]
        cols = [c for _, c in cells]
        return min(rows), min(cols), max(rows), max(cols)


def _layout(layout_id: str, label: str, region_count: int, columns, rows, areas, aspect_ratio: str) -> LayoutDefinition:
    return LayoutDefinition(
        id=layout_id,
        label=label,
        region_count=region_count,
        columns=tuple(float(v) for v in columns),
        rows=tuple(float(v) for v in rows),
        areas=tuple(tuple(row) for row in areas),
        aspect_ratio=aspect_ratio,
    )


LAYOUTS: Dict[str, LayoutDefinition] = {
    # 2-panel
    'side-by-side': _layout('side-by-side', 'Side by side', 2, [1, 1], [1],
                            [['photo', 'tribute']], '5/3.2'),
    'stacked': _layout('stacked', 'Stacked', 2, [1], [1, 1],
                       [['photo'], ['tribute']], '4/5'),
    # 3-panel hero
    'hero-left': _layout('hero-left', 'Hero left', 3, [1.15, 1], [1, 1],
                         [['photo', 'panel2'], ['photo', 'tribute']], '5/3.8'),
    'hero-top': _layout('hero-top', 'Hero top', 3, [1, 1], [1.3, 1],
                        [['photo', 'photo'], ['panel2', 'tribute']], '4/5'),
    # 3-panel photos + tribute
    'photos-left': _layout('photos-left', 'Photos left', 3, [1, 1.15], [1, 1],
                           [['photo', 'tribute'], ['panel2', 'tribute']], '5/3.8'),
    'tribute-top': _layout('tribute-top', 'Tribute top', 3, [1, 1], [1, 1.3],
                           [['tribute', 'tribute'], ['photo', 'panel2']], '4/5'),
}

# Layout to switch to when the third panel is added or removed
ADD_THIRD_PANEL = {
    'side-by-side': 'hero-left',
    'stacked': 'hero-top',
}

REMOVE_THIRD_PANEL = {
    'hero-left': 'side-by-side',
    'hero-top': 'stacked',
    'photos-left': 'side-by-side',
    'tribute-top': 'stacked',
}


class LayoutCatalog:
    """Read-only lookup over the layout table"""

    def __init__(self, layouts: Optional[Dict[str, LayoutDefinition]] = None):
        self._layouts = dict(layouts if layouts is not None else LAYOUTS)

    def get(self, layout_id: str) -> Optional[LayoutDefinition]:
        return self._layouts.get(layout_id)

    def require(self, layout_id: str) -> LayoutDefinition:
        layout = self._layouts.get(layout_id)
        if layout is None:
            logger.warning(f"Unknown layout requested: {layout_id}")
            raise UnknownLayoutError(layout_id, sorted(self._layouts))
        return layout

    def list_available(self, region_count: int) -> List[LayoutDefinition]:
        return [layout for layout in self._layouts.values() if layout.region_count == region_count]

    def ids(self) -> List[str]:
        return list(self._layouts)

    def with_third_panel(self, layout_id: str) -> str:
        """3-panel counterpart of a layout (3-panel layouts map to themselves)"""
        layout = self.require(layout_id)
        if layout.region_count == 3:
            return layout_id
        return ADD_THIRD_PANEL.get(layout_id, 'hero-left')

    def without_third_panel(self, layout_id: str) -> str:
        """2-panel counterpart of a layout (2-panel layouts map to themselves)"""
        layout = self.require(layout_id)
        if layout.region_count == 2:
            return layout_id
        return REMOVE_THIRD_PANEL.get(layout_id, 'side-by-side')
