"""
Color parsing and WCAG 2.x contrast math.
"""

import math
import re
from typing import List, Optional, Tuple


NAMED_COLORS = {
    "white": (255, 255, 255, 1.0),
    "black": (0, 0, 0, 1.0),
}

# Below this alpha a computed color is treated as "no color".
MIN_VISIBLE_ALPHA = 0.05

LARGE_TEXT_PX = 24.0
LARGE_BOLD_TEXT_PX = 18.66
BOLD_WEIGHT = 700

TEXT_AA_NORMAL = 4.5
TEXT_AAA_NORMAL = 7.0
TEXT_AA_LARGE = 3.0
TEXT_AAA_LARGE = 4.5

NON_TEXT_REQUIRED = 3.0
NON_TEXT_ENHANCED = 4.5

FILTER_FUNCS = re.compile(
    r"(invert|sepia|saturate|hue-rotate|brightness|contrast|grayscale|opacity)\(([^)]+)\)"
)


def parse_color(value: str) -> Optional[Tuple[int, int, int, float]]:
    if not value:
        return None
    value = value.strip().lower()
    if value in {"transparent", "none"}:
        return None
    if value in NAMED_COLORS:
        return NAMED_COLORS[value]
    rgba_match = re.match(r"rgba?\(([^)]+)\)", value)
    if rgba_match:
        parts = [p.strip() for p in re.split(r"[,\s/]+", rgba_match.group(1)) if p.strip()]
        if len(parts) >= 3:
            try:
                r = int(float(parts[0]))
                g = int(float(parts[1]))
                b = int(float(parts[2]))
                a = 1.0
                if len(parts) > 3:
                    a = float(parts[3].rstrip("%")) / 100.0 if parts[3].endswith("%") else float(parts[3])
                return r, g, b, a
            except ValueError:
                return None
    hex_match = re.match(r"#([0-9a-f]{3,8})$", value)
    if hex_match:
        h = hex_match.group(1)
        if len(h) in {3, 4}:
            r = int(h[0] * 2, 16)
            g = int(h[1] * 2, 16)
            b = int(h[2] * 2, 16)
            a = int(h[3] * 2, 16) / 255.0 if len(h) == 4 else 1.0
            return r, g, b, a
        if len(h) in {6, 8}:
            r = int(h[0:2], 16)
            g = int(h[2:4], 16)
            b = int(h[4:6], 16)
            a = int(h[6:8], 16) / 255.0 if len(h) == 8 else 1.0
            return r, g, b, a
    return None


def rgb_to_hex(r: float, g: float, b: float) -> str:
    def clamp(c: float) -> int:
        return max(0, min(255, int(round(c))))

    return "#{:02X}{:02X}{:02X}".format(clamp(r), clamp(g), clamp(b))


def hex_to_rgb(value: str) -> Optional[Tuple[int, int, int]]:
    rgba = parse_color(value)
    if not rgba:
        return None
    return rgba[0], rgba[1], rgba[2]


def to_hex(value: Optional[str]) -> Optional[str]:
    """Canonical ``#RRGGBB`` for any CSS color, ``None`` when (almost) transparent."""
    rgba = parse_color(value or "")
    if not rgba or rgba[3] < MIN_VISIBLE_ALPHA:
        return None
    return rgb_to_hex(rgba[0], rgba[1], rgba[2])


def relative_luminance(rgb: Tuple[int, int, int]) -> float:
    def channel(c: int) -> float:
        c = c / 255.0
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    return 0.2126 * channel(rgb[0]) + 0.7152 * channel(rgb[1]) + 0.0722 * channel(rgb[2])


def contrast_ratio(fg: Tuple[int, int, int], bg: Tuple[int, int, int]) -> float:
    lum_fg = relative_luminance(fg)
    lum_bg = relative_luminance(bg)
    lighter = max(lum_fg, lum_bg)
    darker = min(lum_fg, lum_bg)
    return (lighter + 0.05) / (darker + 0.05)


def contrast_ratio_hex(fg: str, bg: str) -> Optional[float]:
    fg_rgb = hex_to_rgb(fg)
    bg_rgb = hex_to_rgb(bg)
    if fg_rgb is None or bg_rgb is None:
        return None
    return contrast_ratio(fg_rgb, bg_rgb)


def parse_px(value) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = re.match(r"\s*(-?[\d.]+)", str(value))
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


def parse_weight(value) -> int:
    if value is None:
        return 400
    text = str(value).strip().lower()
    if text == "bold":
        return 700
    if text == "normal":
        return 400
    try:
        return int(float(text))
    except ValueError:
        return 400


def is_large_text(font_size, font_weight) -> bool:
    size = parse_px(font_size)
    return size >= LARGE_TEXT_PX or (size >= LARGE_BOLD_TEXT_PX and parse_weight(font_weight) >= BOLD_WEIGHT)


def text_thresholds(large: bool) -> Tuple[float, float]:
    if large:
        return TEXT_AA_LARGE, TEXT_AAA_LARGE
    return TEXT_AA_NORMAL, TEXT_AAA_NORMAL


def format_ratio(ratio: float) -> str:
    return f"{ratio:.1f}:1"


def is_light_fill(value: Optional[str]) -> bool:
    rgb = hex_to_rgb(value or "")
    if rgb is None:
        return False
    return min(rgb) >= 0xFA


def _parse_filter_chain(css_filter: str) -> List[Tuple[str, float]]:
    chain = []
    for name, raw in FILTER_FUNCS.findall(css_filter):
        raw = raw.strip()
        try:
            if name == "hue-rotate":
                value = float(re.sub(r"[a-z]+$", "", raw))
            elif raw.endswith("%"):
                value = float(raw[:-1]) / 100.0
            else:
                value = float(raw)
        except ValueError:
            continue
        chain.append((name, value))
    return chain


def estimate_filtered_color(css_filter: Optional[str]) -> Optional[str]:
    """Approximate the rendered color of a black vector icon after CSS filters."""
    if not css_filter or css_filter == "none":
        return None
    chain = _parse_filter_chain(css_filter)
    if not chain:
        return None

    r = g = b = 0.0
    for name, v in chain:
        if name == "invert":
            r = r * (1 - v) + (255 - r) * v
            g = g * (1 - v) + (255 - g) * v
            b = b * (1 - v) + (255 - b) * v
        elif name == "sepia":
            sr = 0.393 * r + 0.769 * g + 0.189 * b
            sg = 0.349 * r + 0.686 * g + 0.168 * b
            sb = 0.272 * r + 0.534 * g + 0.131 * b
            r, g, b = r * (1 - v) + sr * v, g * (1 - v) + sg * v, b * (1 - v) + sb * v
        elif name == "saturate":
            gray = 0.2126 * r + 0.7152 * g + 0.0722 * b
            r, g, b = gray + v * (r - gray), gray + v * (g - gray), gray + v * (b - gray)
        elif name == "hue-rotate":
            a = math.radians(v)
            co, si = math.cos(a), math.sin(a)
            rr = (0.213 + co * 0.787 - si * 0.213) * r + (0.715 - co * 0.715 - si * 0.715) * g + (0.072 - co * 0.072 + si * 0.928) * b
            gg = (0.213 - co * 0.213 + si * 0.143) * r + (0.715 + co * 0.285 + si * 0.140) * g + (0.072 - co * 0.072 - si * 0.283) * b
            bb = (0.213 - co * 0.213 - si * 0.787) * r + (0.715 - co * 0.715 + si * 0.715) * g + (0.072 + co * 0.928 + si * 0.072) * b
            r, g, b = rr, gg, bb
        elif name == "brightness":
            r, g, b = r * v, g * v, b * v
        elif name == "contrast":
            r, g, b = (r - 128) * v + 128, (g - 128) * v + 128, (b - 128) * v + 128
        elif name == "grayscale":
            gray = 0.2126 * r + 0.7152 * g + 0.0722 * b
            r, g, b = r * (1 - v) + gray * v, g * (1 - v) + gray * v, b * (1 - v) + gray * v
    return rgb_to_hex(r, g, b)
