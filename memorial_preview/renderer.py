"""
Preview renderer: the host-facing API of the memorial preview.

One `PreviewRenderer` instance owns all state for one preview. A live
customizer and a proof job each build their own instance; nothing is shared
between instances.

Every setter mutates state synchronously and schedules a single coalesced
render on the next frame. Photo decode and font preload run on a worker
pool and re-enter through the frame scheduler, so all state changes happen
on the thread that drives frames.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Dict, List, Optional, Tuple, Union

from PIL import Image
from loguru import logger
from pydantic import BaseModel, Field

from memorial_preview.config import AppConfig, StylePalette, TemplateDescriptor, get_config
from memorial_preview.divider import DividerController
from memorial_preview.errors import (
    DecodeFailedError, FileTooLargeError, MeasurementUnavailableError, PreviewError, ValidationError
)
from memorial_preview.fonts import FontBook
from memorial_preview.gestures import CropGesture
from memorial_preview.grid import GridController, TrackRatios
from memorial_preview.layouts import LayoutCatalog, LayoutDefinition, RegionRole
from memorial_preview.photo import FocalHint, ImageTransform, PhotoCrop, decode_image
from memorial_preview.render import RegionRenderer
from memorial_preview.scheduler import FrameScheduler
from memorial_preview.typeset import TypesetPlan
from memorial_preview.utils import hex_to_rgb, parse_frame_sku

THIRD_PANEL_MODES = ("photo", "text")


class SurfaceHandle(BaseModel):
    """Host container: layout width in CSS pixels and the display scale factor"""
    width_px: float = 800.0
    device_scale: Optional[float] = None


class TrackRatiosModel(BaseModel):
    columns: List[float]
    rows: List[float]


class PreviewSnapshot(BaseModel):
    """Serialized preview state, as persisted by the host per template session"""
    template_id: str
    fields: Dict[str, str] = Field(default_factory=dict)
    style: Optional[str] = None
    layout: str = "side-by-side"
    third_panel_mode: str = "photo"
    frame_size: Optional[Tuple[float, float]] = None
    photo_crops: Dict[str, PhotoCrop] = Field(default_factory=dict)
    custom_ratios: Dict[str, TrackRatiosModel] = Field(default_factory=dict)


class PreviewRenderer:
    """Panel-based preview renderer for one memorial composition."""

    def __init__(self, config: AppConfig = None, catalog: LayoutCatalog = None,
                 scheduler: FrameScheduler = None, fonts: FontBook = None,
                 on_error: Callable[[PreviewError], None] = None):
        self.config = config or get_config()
        self.catalog = catalog or LayoutCatalog()
        self.scheduler = scheduler or FrameScheduler()
        self.fonts = fonts or FontBook(self.config)
        self.on_error = on_error

        self.grid = GridController(
            self.catalog, gap_px=self.config.GRID_GAP_PX, min_weight=self.config.MIN_TRACK_WEIGHT
        )
        self.transform = ImageTransform()
        self.region_renderer = RegionRenderer(self.transform, self.fonts)
        self.dividers = DividerController(
            self.grid,
            on_change=self.set_custom_ratios,
            on_reset=self.reset_custom_ratios,
            min_weight=self.config.MIN_TRACK_WEIGHT,
        )

        self.template: Optional[TemplateDescriptor] = None
        self._fields: Dict[str, str] = {}
        self._palette = StylePalette()
        self._style_id: Optional[str] = None
        self._frame_size: Optional[Tuple[float, float]] = None
        self._render_queued = False
        self._plans: Dict[str, TypesetPlan] = {}
        self.deferred_regions: List[str] = []
        self._executor: Optional[ThreadPoolExecutor] = None

    # --- Lifecycle ---

    def init(self, surface: SurfaceHandle, template: TemplateDescriptor,
             layout_id: Optional[str] = None) -> 'PreviewRenderer':
        """Wire the renderer to a host surface and a template's defaults."""
        self.template = template
        self._fields = template.default_fields()
        self._style_id = template.default_style if template.default_style in template.style_variants else None
        self._palette = template.default_palette()

        device_scale = surface.device_scale or self.config.DEVICE_SCALE
        self.grid.set_viewport(surface.width_px, device_scale)
        self.grid.apply_layout(layout_id or template.default_layout or self.config.DEFAULT_LAYOUT)
        self.grid.measure_regions()

        self._preload_fonts()
        self.queue_render()
        logger.info(f"Preview initialized for template {template.id} "
                    f"({surface.width_px:.0f}px @ {device_scale}x)")
        return self

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=max(1, self.config.DECODE_WORKERS),
                thread_name_prefix="memorial-preview"
            )
        return self._executor

    def _preload_fonts(self) -> None:
        if self.fonts.ready:
            return
        if not self.config.ASYNC_DECODE:
            self.fonts.load()
            return
        future = self._pool().submit(self.fonts.load)
        future.add_done_callback(lambda f: self.scheduler.request_frame(partial(self._fonts_loaded, f)))

    def _fonts_loaded(self, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"Font preload failed: {error}")
            return
        self.queue_render()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> 'PreviewRenderer':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def resize(self, width_px: float, device_scale: Optional[float] = None) -> None:
        """Host resize listener: the container width or display scale changed."""
        self.grid.set_viewport(width_px, device_scale)
        self._reflow()

    # --- Setters ---

    def set_field(self, field_id: str, value: Optional[str]) -> None:
        self._fields[field_id] = '' if value is None else str(value)
        self.queue_render()

    def set_photo(self, region_id: str, data: bytes, focal_hint: FocalHint = None) -> Future:
        """
        Decode `data` and show it in a photo region.

        Returns a future for the decode. The photo appears on the first frame
        after the decode resolves; a newer `set_photo` for the same region
        makes this one a no-op.
        """
        size = len(data or b'')
        if size > self.config.MAX_UPLOAD_SIZE:
            raise FileTooLargeError(region_id, size / (1024 * 1024), self.config.MAX_UPLOAD_SIZE / (1024 * 1024))

        ticket = self.transform.begin_load(region_id)
        if self.config.ASYNC_DECODE:
            future = self._pool().submit(decode_image, data, region_id)
        else:
            future = Future()
            try:
                future.set_result(decode_image(data, region_id))
            except DecodeFailedError as e:
                future.set_exception(e)

        future.add_done_callback(lambda f: self.scheduler.request_frame(
            partial(self._photo_loaded, region_id, ticket, f, focal_hint)
        ))
        return future

    def _photo_loaded(self, region_id: str, ticket: int, future: Future, focal_hint: FocalHint) -> None:
        if not self.transform.is_current(region_id, ticket):
            logger.debug(f"Ignoring superseded decode for {region_id}")
            return

        error = future.exception()
        if error is not None:
            if not isinstance(error, PreviewError):
                error = DecodeFailedError(region_id, reason=str(error))
            logger.warning(f"Photo decode failed for {region_id}: {error.message}")
            self._report(error)
            return

        if self.transform.set_image(region_id, future.result(), focal_hint, ticket):
            self.queue_render()

    def set_photo_crop(self, region_id: str, zoom: float, pan_x: float, pan_y: float) -> PhotoCrop:
        crop = self.transform.set_crop(region_id, zoom, pan_x, pan_y)
        self.queue_render()
        return crop

    def set_style(self, palette: Union[StylePalette, str]) -> None:
        """Swap the whole palette, given directly or by the template's style id."""
        if isinstance(palette, str):
            variants = self.template.style_variants if self.template else {}
            if palette not in variants:
                raise ValidationError(
                    f"Unknown style: {palette}",
                    details={'style': palette, 'available': sorted(variants)}
                )
            self._style_id = palette
            self._palette = variants[palette]
        else:
            self._style_id = None
            self._palette = palette
        self.queue_render()

    def set_layout(self, layout_id: str) -> None:
        self.grid.apply_layout(layout_id)
        self._reflow()

    def set_frame_aspect(self, width_in: float, height_in: float) -> None:
        if width_in <= 0 or height_in <= 0:
            raise ValidationError(
                "Frame dimensions must be positive",
                details={'width_in': width_in, 'height_in': height_in}
            )
        self._frame_size = (float(width_in), float(height_in))
        self.grid.recompute_frame(self._frame_size)
        self._reflow()

    def clear_frame_aspect(self) -> None:
        self._frame_size = None
        self.grid.recompute_frame(None)
        self._reflow()

    def set_frame_size(self, sku: Optional[str]) -> None:
        """Fit the frame to a product SKU such as 'framed-11x14'; other SKUs clear the override."""
        dims = parse_frame_sku(sku)
        if dims is None:
            self.clear_frame_aspect()
        else:
            self.set_frame_aspect(*dims)

    def set_third_panel_mode(self, mode: str) -> None:
        if mode not in THIRD_PANEL_MODES:
            raise ValidationError(f"Unknown third panel mode: {mode}", details={'mode': mode})
        self.grid.set_text_panel(mode == "text")
        self.queue_render()

    def set_custom_ratios(self, layout_id: str, columns: List[float], rows: List[float]) -> None:
        self.grid.set_override(layout_id, columns, rows)
        if layout_id == self.grid.active_layout_id:
            self._reflow()

    def reset_custom_ratios(self, layout_id: Optional[str] = None) -> None:
        layout_id = layout_id or self.grid.active_layout_id
        if self.grid.clear_override(layout_id):
            logger.info(f"Custom ratios cleared for {layout_id}")
        if layout_id == self.grid.active_layout_id:
            self._reflow()

    # --- Accessors (snapshots, never live state) ---

    def get_fields(self) -> Dict[str, str]:
        return dict(self._fields)

    def get_photo_crop(self, region_id: str) -> Optional[PhotoCrop]:
        """Crop for a region; the default crop for a live region without one; None otherwise."""
        crop = self.transform.get_crop(region_id)
        if crop is None and region_id in self.grid.regions:
            return PhotoCrop()
        return crop

    def get_current_layout(self) -> Optional[str]:
        return self.grid.active_layout_id

    def get_layout(self) -> Optional[LayoutDefinition]:
        return self.grid.active_layout

    def get_current_tracks(self) -> Optional[TrackRatios]:
        if self.grid.active_layout_id is None:
            return None
        return self.grid.resolve_tracks(self.grid.active_layout_id)

    def get_custom_ratios(self) -> Dict[str, Dict[str, List[float]]]:
        return {layout_id: ratios.to_dict() for layout_id, ratios in self.grid.track_overrides.items()}

    def get_style(self) -> StylePalette:
        return self._palette

    def get_region_roles(self) -> Dict[str, RegionRole]:
        return {name: region.role for name, region in self.grid.regions.items()}

    def get_panel_surface(self, region_id: str) -> Optional[Image.Image]:
        """
        Raw surface of a live region, for host gesture wiring. None if not in the layout.

        A reflow that changes the region's size swaps in a new surface, so fetch
        it again after `resize`, `set_layout`, frame or ratio changes.
        """
        region = self.grid.get_region(region_id)
        return region.surface if region else None

    def get_typeset_plan(self, region_id: str) -> Optional[TypesetPlan]:
        return self._plans.get(region_id)

    def crop_gesture(self, region_id: str) -> CropGesture:
        def display_size(rid: str) -> Optional[Tuple[float, float]]:
            region = self.grid.get_region(rid)
            if region is None or region.box is None:
                return None
            return region.box.width, region.box.height

        return CropGesture(region_id, self.get_photo_crop, self.set_photo_crop, display_size)

    # --- Rendering ---

    def _reflow(self) -> None:
        self.grid.measure_regions()
        self.queue_render()

    def queue_render(self) -> None:
        """Schedule one render for the next frame; repeated calls coalesce."""
        if self._render_queued:
            return
        self._render_queued = True
        self.scheduler.request_frame(self._queued_render)

    def _queued_render(self) -> None:
        self._render_queued = False
        self.render()

    def flush(self) -> int:
        return self.scheduler.flush()

    def render(self) -> int:
        """Draw every live region now; returns how many regions were drawn."""
        if self.grid.active_layout_id is None or self.template is None:
            return 0

        self.grid.measure_regions()
        drawn = 0
        deferred = []
        for name, region in self.grid.regions.items():
            if not region.drawable:
                continue
            try:
                plan = self.region_renderer.render_region(region, self._fields, self._palette, self.template)
            except MeasurementUnavailableError:
                deferred.append(name)
                continue
            if plan is not None:
                self._plans[name] = plan
            drawn += 1

        if deferred:
            # the font preload callback queues the follow-up render
            logger.debug(f"Deferred {', '.join(deferred)} until fonts are ready")
        self.deferred_regions = deferred
        return drawn

    def compose(self) -> Image.Image:
        """Paste every region into one image of the whole frame, in device pixels."""
        self.grid.measure_regions()
        canvas = Image.new('RGB', self.grid.device_frame_size(), hex_to_rgb(self._palette.background))
        for region in self.grid.regions.values():
            if region.drawable and region.device_rect is not None:
                canvas.paste(region.surface, region.device_rect[:2])
        return canvas

    # --- Snapshots ---

    def snapshot(self) -> PreviewSnapshot:
        return PreviewSnapshot(
            template_id=self.template.id if self.template else '',
            fields=self.get_fields(),
            style=self._style_id,
            layout=self.grid.active_layout_id or self.config.DEFAULT_LAYOUT,
            third_panel_mode="text" if self.grid.text_panel else "photo",
            frame_size=self._frame_size,
            photo_crops=self.transform.crops(),
            custom_ratios={
                layout_id: TrackRatiosModel(**ratios.to_dict())
                for layout_id, ratios in self.grid.track_overrides.items()
            },
        )

    def restore(self, snapshot: PreviewSnapshot) -> None:
        """
        Re-apply a persisted snapshot; photo bytes are supplied separately through set_photo.

        The snapshot is checked as a whole first. If it is rejected, nothing
        has changed.
        """
        self._check_snapshot(snapshot)

        for field_id, value in snapshot.fields.items():
            self._fields[field_id] = value
        for layout_id, ratios in snapshot.custom_ratios.items():
            self.grid.set_override(layout_id, ratios.columns, ratios.rows)
        self.grid.text_panel = snapshot.third_panel_mode == "text"
        self.grid.apply_layout(snapshot.layout)
        for region_id, crop in snapshot.photo_crops.items():
            self.transform.set_crop(region_id, crop.zoom, crop.pan_x, crop.pan_y)
        if snapshot.style:
            self.set_style(snapshot.style)
        if snapshot.frame_size:
            self._frame_size = tuple(snapshot.frame_size)
        else:
            self._frame_size = None
        self.grid.recompute_frame(self._frame_size)

        logger.info(f"Restored snapshot for {snapshot.template_id} (layout {snapshot.layout})")
        self._reflow()

    def _check_snapshot(self, snapshot: PreviewSnapshot) -> None:
        if self.template is not None and snapshot.template_id != self.template.id:
            raise ValidationError(
                "Snapshot belongs to a different template",
                details={'snapshot': snapshot.template_id, 'template': self.template.id}
            )

        self.catalog.require(snapshot.layout)
        for layout_id, ratios in snapshot.custom_ratios.items():
            self.grid.check_override(layout_id, ratios.columns, ratios.rows)

        if snapshot.third_panel_mode not in THIRD_PANEL_MODES:
            raise ValidationError(
                f"Unknown third panel mode: {snapshot.third_panel_mode}",
                details={'mode': snapshot.third_panel_mode}
            )
        if snapshot.style:
            variants = self.template.style_variants if self.template else {}
            if snapshot.style not in variants:
                raise ValidationError(
                    f"Unknown style: {snapshot.style}",
                    details={'style': snapshot.style, 'available': sorted(variants)}
                )
        if snapshot.frame_size and min(snapshot.frame_size) <= 0:
            raise ValidationError(
                "Frame dimensions must be positive",
                details={'frame_size': list(snapshot.frame_size)}
            )

    def _report(self, error: PreviewError) -> None:
        if self.on_error is not None:
            self.on_error(error)
