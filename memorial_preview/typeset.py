"""
Adaptive typesetting for tribute and text panels.

The poem is the product. When a tribute does not fit its panel, whitespace
is compressed first by walking the margin/padding tiers from most generous
to most compact. Only when the most compact tier still overflows does the
body type shrink, in 2% steps from 98% down to a hard floor of 82%. Content
that overflows at the floor is laid out anyway; it is never truncated.

Everything here is a pure function of its inputs. Text widths come from a
measurement callable supplied by the renderer so plans can be computed
without any font backend.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from loguru import logger

from memorial_preview.utils import round_half_up

# measure(text, font_px, face) -> width in pixels
MeasureFn = Callable[[str, int, str], float]

FACE_NAME = "serif-medium"
FACE_DATES = "serif-light"
FACE_BODY = "serif-light"
FACE_NICKNAME = "serif-italic"
FACE_FAMILY = "serif-light-italic"
FACE_LABEL = "sans"

# Panel size the type scale is designed for
REFERENCE_WIDTH = 400.0
REFERENCE_HEIGHT = 260.0

NAME_SIZE = 30
DATE_SIZE = 10.5
NICKNAME_SIZE = 10
FAMILY_SIZE = 9
BODY_SIZE = 13

NAME_LEADING = 1.2
DATE_LEADING = 1.6
NICKNAME_LEADING = 1.6
FAMILY_LEADING = 1.5
BODY_LEADING = 1.55
BLANK_LINE_FACTOR = 0.5

DIVIDER_ALLOWANCE = 6
DIVIDER_OFFSET = 2
DIVIDER_HALF_WIDTH = 28

TEXT_WIDTH_FACTOR = 0.76
BODY_WRAP_FACTOR = 0.92
TEXT_PANEL_WIDTH_FACTOR = 0.8

# (margin as a fraction of height, padding in reference pixels), loosest first
TIERS: Tuple[Tuple[float, float], ...] = (
    (0.09, 14),
    (0.06, 10),
    (0.04, 6),
    (0.025, 3),
)

FONT_SCALE_FLOOR = 82
FONT_SCALE_STEPS: Tuple[int, ...] = tuple(range(98, FONT_SCALE_FLOOR - 1, -2))


@dataclass(frozen=True)
class TributeContent:
    """Display strings for a tribute panel; empty strings omit their block"""
    name: str = ""
    dates: str = ""
    nickname: str = ""
    family_line: str = ""
    body: str = ""

    @property
    def has_header(self) -> bool:
        return bool(self.name or self.dates)

    @property
    def has_footer(self) -> bool:
        return bool(self.nickname or self.family_line)


@dataclass(frozen=True)
class PlacedText:
    text: str
    x: float
    y: float
    font_px: int
    face: str
    slot: str
    anchor: str = "top"  # "top" or "bottom" edge sits on y
    max_width: float = 0.0


@dataclass(frozen=True)
class DividerRule:
    x: float
    y: float
    half_width: float
    line_width: float


@dataclass(frozen=True)
class BodyMeasure:
    lines: Tuple[str, ...]
    font_size: float
    line_height: float
    blank_height: float
    total_height: float


@dataclass(frozen=True)
class TypesetPlan:
    width: float
    height: float
    scale: float
    margin: float
    padding: float
    tier_index: int
    font_scale_pct: int
    body_font_size: float
    body_height: float
    overflow: bool
    header: Tuple[PlacedText, ...]
    body: Tuple[PlacedText, ...]
    footer: Tuple[PlacedText, ...]
    dividers: Tuple[DividerRule, ...]

    @property
    def body_lines(self) -> List[str]:
        return [line.text for line in self.body]

    @property
    def shrunk(self) -> bool:
        return self.font_scale_pct < 100


@dataclass(frozen=True)
class TextBlockPlan:
    font_px: int
    line_height: float
    lines: Tuple[PlacedText, ...]
    total_height: float


def panel_scale(width: float, height: float) -> float:
    """Scale by the limiting dimension so wide-but-short panels don't blow up the type."""
    return min(width / REFERENCE_WIDTH, height / REFERENCE_HEIGHT)


def wrap_text(text: str, max_width: float, measure: MeasureFn, font_px: int, face: str = FACE_BODY) -> List[str]:
    """
    Greedy word wrap.

    Blank input lines come back as '' so stanza breaks survive. A single word
    wider than max_width gets a line of its own rather than being split.
    """
    lines = []
    for paragraph in text.split('\n'):
        if not paragraph.strip():
            lines.append('')
            continue

        current = ''
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if current and measure(candidate, font_px, face) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        if current:
            lines.append(current)

    return lines


def measure_body(text: str, font_size: float, wrap_width: float, measure: MeasureFn) -> BodyMeasure:
    line_height = font_size * BODY_LEADING
    blank_height = line_height * BLANK_LINE_FACTOR
    lines = wrap_text(text, wrap_width, measure, round_half_up(font_size), FACE_BODY)
    total = sum(blank_height if line == '' else line_height for line in lines)
    return BodyMeasure(tuple(lines), font_size, line_height, blank_height, total)


def typeset_tribute(content: TributeContent, width: float, height: float, measure: MeasureFn) -> TypesetPlan:
    """Lay out a tribute so it fits width x height, following the tier and font-scale ladders."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Cannot typeset into an empty box ({width}x{height})")

    w, h = float(width), float(height)
    scale = panel_scale(w, h)
    cx = w / 2
    max_text_width = w * TEXT_WIDTH_FACTOR
    wrap_width = max_text_width * BODY_WRAP_FACTOR

    name_px = round_half_up(NAME_SIZE * scale)
    date_px = round_half_up(DATE_SIZE * scale)
    nick_px = round_half_up(NICKNAME_SIZE * scale)
    fam_px = round_half_up(FAMILY_SIZE * scale)
    body_base = BODY_SIZE * scale

    header_h = ((name_px * NAME_LEADING if content.name else 0)
                + (date_px * DATE_LEADING if content.dates else 0)
                + (DIVIDER_ALLOWANCE * scale if content.has_header else 0))
    footer_h = ((DIVIDER_ALLOWANCE * scale if content.has_footer else 0)
                + (nick_px * NICKNAME_LEADING if content.nickname else 0)
                + (fam_px * FAMILY_LEADING if content.family_line else 0))

    tiers = [(h * margin_pct, pad * scale) for margin_pct, pad in TIERS]
    font_scale_pct = 100
    overflow = False

    if content.body:
        body = measure_body(content.body, body_base, wrap_width, measure)
        tier_index = None
        for index, (m, pad) in enumerate(tiers):
            total = m + header_h + pad + body.total_height + pad + footer_h + m
            if total <= h:
                tier_index = index
                break

        if tier_index is None:
            tier_index = len(tiers) - 1
            margin, pad = tiers[tier_index]
            available = h - margin * 2 - header_h - pad * 2 - footer_h
            for pct in FONT_SCALE_STEPS:
                body = measure_body(content.body, body_base * pct / 100, wrap_width, measure)
                font_scale_pct = pct
                if body.total_height <= available:
                    break
            else:
                overflow = True
                logger.warning(f"Tribute overflows {w:.0f}x{h:.0f} at the {FONT_SCALE_FLOOR}% floor")

            logger.debug(f"Tribute body shrunk to {font_scale_pct}% ({len(body.lines)} lines)")
        margin, pad = tiers[tier_index]
    else:
        tier_index = 0
        margin, pad = tiers[0]
        body = BodyMeasure((), body_base, 0.0, 0.0, 0.0)

    header: List[PlacedText] = []
    footer: List[PlacedText] = []
    dividers: List[DividerRule] = []
    rule_width = max(1.0, 0.8 * scale)

    y = margin
    if content.name:
        header.append(PlacedText(content.name, cx, y, name_px, FACE_NAME, "name", "top", max_text_width))
        y += name_px * NAME_LEADING
    if content.dates:
        header.append(PlacedText(content.dates, cx, y, date_px, FACE_DATES, "dates", "top", max_text_width))
        y += date_px * DATE_LEADING
    if content.has_header:
        dividers.append(DividerRule(cx, y + DIVIDER_OFFSET * scale, DIVIDER_HALF_WIDTH * scale, rule_width))
        y += DIVIDER_ALLOWANCE * scale + pad

    body_lines: List[PlacedText] = []
    if body.lines:
        # center within the zone between header and footer, not the whole panel
        footer_top = h - margin - footer_h
        zone_h = footer_top - pad - y
        py = y + max(0.0, (zone_h - body.total_height) / 2)
        body_px = round_half_up(body.font_size)
        for line in body.lines:
            if line == '':
                py += body.blank_height
                continue
            body_lines.append(PlacedText(line, cx, py, body_px, FACE_BODY, "body", "top", max_text_width))
            py += body.line_height

    # footer is built upward from the bottom margin
    fy = h - margin
    if content.family_line:
        footer.append(PlacedText(content.family_line, cx, fy, fam_px, FACE_FAMILY, "family", "bottom", max_text_width))
        fy -= fam_px * FAMILY_LEADING
    if content.nickname:
        footer.append(PlacedText(content.nickname, cx, fy, nick_px, FACE_NICKNAME, "nickname", "bottom", max_text_width))
        fy -= nick_px * NICKNAME_LEADING
    if content.has_footer:
        dividers.append(DividerRule(cx, fy, DIVIDER_HALF_WIDTH * scale, rule_width))

    return TypesetPlan(
        width=w,
        height=h,
        scale=scale,
        margin=margin,
        padding=pad,
        tier_index=tier_index,
        font_scale_pct=font_scale_pct,
        body_font_size=body.font_size,
        body_height=body.total_height,
        overflow=overflow,
        header=tuple(header),
        body=tuple(body_lines),
        footer=tuple(footer),
        dividers=tuple(dividers),
    )


def layout_text_block(text: str, width: float, height: float, measure: MeasureFn) -> Optional[TextBlockPlan]:
    """Single-size, vertically centered layout for the custom message panel. None when empty."""
    if not text or not text.strip():
        return None

    w, h = float(width), float(height)
    scale = panel_scale(w, h)
    font_size = BODY_SIZE * scale
    font_px = round_half_up(font_size)
    line_height = font_size * BODY_LEADING
    max_text_width = w * TEXT_PANEL_WIDTH_FACTOR
    cx = w / 2

    lines = wrap_text(text, max_text_width, measure, font_px, FACE_BODY)
    total = sum(line_height * BLANK_LINE_FACTOR if line == '' else line_height for line in lines)

    y = (h - total) / 2
    placed = []
    for line in lines:
        if line == '':
            y += line_height * BLANK_LINE_FACTOR
            continue
        placed.append(PlacedText(line, cx, y, font_px, FACE_BODY, "text", "top", max_text_width))
        y += line_height

    return TextBlockPlan(font_px=font_px, line_height=line_height, lines=tuple(placed), total_height=total)
