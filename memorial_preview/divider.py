"""
Draggable dividers between grid tracks.

A drag converts the pointer's pixel delta into a weight delta and moves
weight between the two tracks either side of the handle. Neither track may
drop below the minimum weight; the pair's total weight is conserved.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from loguru import logger

from memorial_preview.grid import GridController, TrackRatios

COLUMN = "col"
ROW = "row"


@dataclass(frozen=True)
class DividerHandle:
    axis: str
    index: int
    offset_px: float


@dataclass
class DividerDrag:
    layout_id: str
    axis: str
    index: int
    start_pos: float
    start_tracks: TrackRatios
    current: Optional[TrackRatios] = None


def redistribute(weights: List[float], index: int, delta: float, floor: float) -> List[float]:
    """Move `delta` weight from track index+1 to track index, keeping both at or above `floor`.

    The pair's sum is conserved as long as it holds at least `2 * floor`, which
    `GridController.set_override` guarantees by rejecting tracks below the floor.
    """
    result = list(weights)
    new_a = weights[index] + delta
    new_b = weights[index + 1] - delta

    if new_a < floor:
        new_b -= floor - new_a
        new_a = floor
    if new_b < floor:
        new_a -= floor - new_b
        new_b = floor

    result[index] = max(floor, new_a)
    result[index + 1] = max(floor, new_b)
    return result


class DividerController:
    """
    Turns pointer gestures on divider handles into track ratio overrides.

    `on_change(layout_id, columns, rows)` receives live ratios on every move
    and again on release; `on_reset(layout_id)` is called on double activation.
    """

    def __init__(self, grid: GridController,
                 on_change: Callable[[str, List[float], List[float]], None],
                 on_reset: Callable[[str], None],
                 min_weight: float = 0.3):
        self.grid = grid
        self.on_change = on_change
        self.on_reset = on_reset
        self.min_weight = min_weight
        self.drag: Optional[DividerDrag] = None

    def handles(self) -> List[DividerHandle]:
        """One handle per pair of adjacent tracks, positioned in layout pixels."""
        if self.grid.active_layout_id is None:
            return []

        col_edges, row_edges = self.grid.track_edges()
        gap = self.grid.gap_px
        handles = []
        for i in range(len(col_edges) - 1):
            handles.append(DividerHandle(COLUMN, i, col_edges[i][1] + gap / 2))
        for i in range(len(row_edges) - 1):
            handles.append(DividerHandle(ROW, i, row_edges[i][1] + gap / 2))
        return handles

    def _axis_length(self, axis: str) -> float:
        width, height = self.grid.frame_size()
        return width if axis == COLUMN else height

    def start(self, axis: str, index: int, pointer_pos: float) -> DividerDrag:
        layout_id = self.grid.active_layout_id
        tracks = self.grid.resolve_tracks(layout_id)
        weights = tracks.columns if axis == COLUMN else tracks.rows
        if not 0 <= index < len(weights) - 1:
            raise IndexError(f"No {axis} divider at index {index} in layout {layout_id}")

        self.drag = DividerDrag(layout_id, axis, index, pointer_pos, tracks)
        logger.debug(f"Divider drag started: {axis}[{index}] on {layout_id}")
        return self.drag

    def ratios_for(self, pointer_pos: float) -> Optional[TrackRatios]:
        """Track ratios for the pointer at `pointer_pos`, relative to the drag start."""
        drag = self.drag
        if drag is None:
            return None

        total_px = self._axis_length(drag.axis)
        if total_px <= 0:
            return drag.start_tracks.copy()

        start = drag.start_tracks
        weights = start.columns if drag.axis == COLUMN else start.rows
        delta_fraction = (pointer_pos - drag.start_pos) / total_px
        delta_weight = delta_fraction * (weights[drag.index] + weights[drag.index + 1])
        moved = redistribute(weights, drag.index, delta_weight, self.min_weight)

        if drag.axis == COLUMN:
            return TrackRatios(columns=moved, rows=list(start.rows))
        return TrackRatios(columns=list(start.columns), rows=moved)

    def move(self, pointer_pos: float) -> Optional[TrackRatios]:
        ratios = self.ratios_for(pointer_pos)
        if ratios is None:
            return None
        self.drag.current = ratios
        self.on_change(self.drag.layout_id, ratios.columns, ratios.rows)
        return ratios

    def end(self) -> Optional[TrackRatios]:
        drag = self.drag
        if drag is None:
            return None
        self.drag = None

        final = drag.current or drag.start_tracks
        self.on_change(drag.layout_id, final.columns, final.rows)
        logger.info(f"Divider {drag.axis}[{drag.index}] set {drag.layout_id} to "
                    f"columns={final.columns} rows={final.rows}")
        return final

    def double_activate(self) -> None:
        """Double click / double tap on any handle restores the catalog tracks."""
        self.drag = None
        layout_id = self.grid.active_layout_id
        if layout_id is not None:
            self.on_reset(layout_id)
