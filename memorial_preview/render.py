"""
Region rendering for the memorial preview.

This module handles:
- Photo regions: cover-fit photo or an upload placeholder
- Tribute regions: background, vignette and the typeset tribute
- Text regions: the custom message panel

All drawing mutates the region's current surface in place. A reflow that
changes a region's size replaces its surface, so hosts fetch it again
after a resize or layout change.
"""

from typing import Dict, Optional

import numpy as np
from PIL import Image, ImageDraw
from loguru import logger

from memorial_preview.config import StylePalette, TemplateDescriptor, TributeMapping
from memorial_preview.fonts import FontBook
from memorial_preview.grid import Region
from memorial_preview.layouts import PRIMARY_PHOTO, RegionRole
from memorial_preview.photo import ImageTransform
from memorial_preview.typeset import (
    FACE_LABEL, DividerRule, PlacedText, TributeContent, TypesetPlan,
    layout_text_block, typeset_tribute
)
from memorial_preview.utils import hex_to_rgb, round_half_up

VIGNETTE_COLOR = (196, 168, 130)
VIGNETTE_ALPHA = 0.04
VIGNETTE_RADIUS = 0.6
DIVIDER_ALPHA = 0.4


def resolve_tribute_content(fields: Dict[str, str], mapping: TributeMapping) -> TributeContent:
    """Turn raw field values into the tribute's display strings."""
    def value(field_id: str) -> str:
        return (fields.get(field_id) or '').strip()

    birth = value(mapping.birth_date)
    passed = value(mapping.pass_date)
    if birth and passed:
        dates = f"{birth} – {passed}"
    else:
        dates = birth or passed

    nickname = value(mapping.nickname)
    if nickname and not nickname.startswith('"'):
        nickname = f"“{nickname}”"

    family = value(mapping.family_name)
    family_line = f"{mapping.family_prefix} {family}" if family else ''

    return TributeContent(
        name=value(mapping.name),
        dates=dates,
        nickname=nickname,
        family_line=family_line,
        # keep interior blank lines: they are stanza breaks
        body=(fields.get(mapping.poem_text) or '').strip('\n'),
    )


def _blend(surface: Image.Image, overlay: Image.Image) -> None:
    """Alpha-composite an RGBA overlay onto an RGB surface in place."""
    composed = Image.alpha_composite(surface.convert('RGBA'), overlay)
    surface.paste(composed.convert('RGB'))


class RegionRenderer:
    """Draws one region's content given the current fields and palette."""

    def __init__(self, transform: ImageTransform, fonts: FontBook):
        self.transform = transform
        self.fonts = fonts

    def render_region(self, region: Region, fields: Dict[str, str], palette: StylePalette,
                      template: TemplateDescriptor) -> Optional[TypesetPlan]:
        """Render by role. Returns the typeset plan for tribute regions."""
        if not region.drawable:
            return None

        if region.role == RegionRole.PHOTO:
            self.render_photo(region.surface, region.name, palette)
        elif region.role == RegionRole.TRIBUTE:
            return self.render_tribute(region.surface, fields, palette, template.tribute_mapping)
        elif region.role == RegionRole.TEXT:
            self.render_text(region.surface, fields.get(template.text_panel_field, ''), palette)
        return None

    # --- Photo ---

    def render_photo(self, surface: Image.Image, region_id: str, palette: StylePalette) -> None:
        w, h = surface.size
        surface.paste(hex_to_rgb(palette.background), (0, 0, w, h))

        state = self.transform.get_state(region_id)
        if state is None or state.image is None:
            self.render_placeholder(surface, region_id)
            return

        rect = self.transform.cover_rect(region_id, w, h)
        fitted = state.image.resize((w, h), Image.Resampling.LANCZOS, box=rect.as_box())
        surface.paste(fitted, (0, 0))

    def render_placeholder(self, surface: Image.Image, region_id: str) -> None:
        w, h = surface.size
        overlay = Image.new('RGBA', (w, h), (255, 255, 255, round_half_up(255 * 0.03)))
        draw = ImageDraw.Draw(overlay)

        cx, cy = w / 2, h / 2
        icon = min(w, h) * 0.12
        stroke = (255, 255, 255, round_half_up(255 * 0.12))
        line_width = max(1, round_half_up(icon * 0.06))

        draw.rounded_rectangle(
            (cx - icon, cy - icon * 0.7, cx + icon, cy + icon * 0.7),
            radius=icon * 0.15, outline=stroke, width=line_width
        )
        r = icon * 0.4
        draw.ellipse((cx - r, cy - r, cx + r, cy + r), outline=stroke, width=line_width)

        label = 'Upload their photo' if region_id == PRIMARY_PHOTO else 'Upload second photo'
        label_px = max(1, round_half_up(icon * 0.3))
        if self.fonts.ready:
            draw.text((cx, cy + icon * 1.1), label, font=self.fonts.font(FACE_LABEL, label_px),
                      fill=(255, 255, 255, round_half_up(255 * 0.15)), anchor='mt')
        _blend(surface, overlay)

    # --- Tribute ---

    def render_tribute(self, surface: Image.Image, fields: Dict[str, str], palette: StylePalette,
                       mapping: TributeMapping) -> TypesetPlan:
        w, h = surface.size
        content = resolve_tribute_content(fields, mapping)

        # measure first: a MeasurementUnavailableError must leave the surface untouched
        plan = typeset_tribute(content, w, h, self.fonts.measure)

        surface.paste(hex_to_rgb(palette.background), (0, 0, w, h))
        self._apply_vignette(surface)

        overlay = Image.new('RGBA', (w, h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        colors = {
            'name': palette.name,
            'dates': palette.dates,
            'body': palette.poem,
            'nickname': palette.nickname,
            'family': palette.family,
        }
        for placed in plan.header + plan.body + plan.footer:
            self._draw_text(draw, placed, colors[placed.slot])
        for rule in plan.dividers:
            self._draw_divider(draw, rule, palette.divider)
        _blend(surface, overlay)

        logger.debug(f"Tribute rendered {w}x{h}: tier {plan.tier_index}, "
                     f"{plan.font_scale_pct}% body, {len(plan.body)} lines")
        return plan

    def _apply_vignette(self, surface: Image.Image) -> None:
        """Faint warm radial glow from the panel center."""
        w, h = surface.size
        radius = h * VIGNETTE_RADIUS
        if radius <= 0:
            return

        ys, xs = np.mgrid[0:h, 0:w].astype(np.float32)
        dist = np.sqrt((xs + 0.5 - w / 2) ** 2 + (ys + 0.5 - h / 2) ** 2)
        alpha = VIGNETTE_ALPHA * (1.0 - np.clip(dist / radius, 0.0, 1.0))

        base = np.asarray(surface, dtype=np.float32)
        tint = np.array(VIGNETTE_COLOR, dtype=np.float32)
        blended = base * (1.0 - alpha[..., None]) + tint * alpha[..., None]
        surface.paste(Image.fromarray(np.clip(blended + 0.5, 0, 255).astype(np.uint8), 'RGB'))

    def _draw_text(self, draw: ImageDraw.ImageDraw, placed: PlacedText, color: str) -> None:
        font_px = placed.font_px
        if placed.max_width > 0:
            # squeeze lines wider than the text column, like a canvas maxWidth
            width = self.fonts.measure(placed.text, font_px, placed.face)
            if width > placed.max_width:
                font_px = max(1, int(font_px * placed.max_width / width))

        anchor = 'mt' if placed.anchor == 'top' else 'mb'
        draw.text((placed.x, placed.y), placed.text, font=self.fonts.font(placed.face, font_px),
                  fill=hex_to_rgb(color) + (255,), anchor=anchor)

    def _draw_divider(self, draw: ImageDraw.ImageDraw, rule: DividerRule, color: str) -> None:
        fill = hex_to_rgb(color) + (round_half_up(255 * DIVIDER_ALPHA),)
        draw.line(
            [(rule.x - rule.half_width, rule.y), (rule.x + rule.half_width, rule.y)],
            fill=fill, width=max(1, round_half_up(rule.line_width))
        )

    # --- Text panel ---

    def render_text(self, surface: Image.Image, text: str, palette: StylePalette) -> None:
        w, h = surface.size
        plan = layout_text_block(text, w, h, self.fonts.measure)

        surface.paste(hex_to_rgb(palette.background), (0, 0, w, h))
        overlay = Image.new('RGBA', (w, h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        if plan is None:
            label_px = max(1, round_half_up(min(w, h) * 0.05))
            draw.text((w / 2, h / 2), 'Custom text', font=self.fonts.font(FACE_LABEL, label_px),
                      fill=(255, 255, 255, round_half_up(255 * 0.1)), anchor='mm')
        else:
            for placed in plan.lines:
                self._draw_text(draw, placed, palette.poem)

        _blend(surface, overlay)
