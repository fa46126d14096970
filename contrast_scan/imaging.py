"""
Raster helpers built on Pillow: preview crops, border-ring sampling,
upscaling of small element captures and debug stitching.
"""

import base64
import io
import logging
import math
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from PIL import Image as PILImage

from .colors import rgb_to_hex
from .models import Frame, Rect, Strategy

logger = logging.getLogger(__name__)

Pixel = Tuple[int, int, int]

STITCH_OVERLAP_PX = 200
MAX_STITCH_WIDTH = 50000
MAX_STITCH_HEIGHT = 30000


def open_rgb(buffer: bytes) -> PILImage.Image:
    image = PILImage.open(io.BytesIO(buffer))
    return image.convert("RGB")


def to_data_url(image: PILImage.Image, fmt: str = "JPEG") -> str:
    out = io.BytesIO()
    image.save(out, format=fmt)
    mime = "image/png" if fmt.upper() == "PNG" else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(out.getvalue()).decode('ascii')}"


def bytes_to_data_url(buffer: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(buffer).decode('ascii')}"


def max_deviation(samples: Sequence[Pixel]) -> float:
    """Largest per-channel distance from the sample mean."""
    n = len(samples)
    avg = [sum(p[i] for p in samples) / n for i in range(3)]
    return max(abs(p[i] - avg[i]) for p in samples for i in range(3))


def mean_color(samples: Sequence[Pixel]) -> Pixel:
    n = len(samples)
    return tuple(int(round(sum(p[i] for p in samples) / n)) for i in range(3))


def grid_samples(image: PILImage.Image, divisions: int) -> List[Pixel]:
    w, h = image.size
    step_x = max(1, w // divisions)
    step_y = max(1, h // divisions)
    pixels = image.load()
    return [pixels[x, y][:3] for x in range(0, w, step_x) for y in range(0, h, step_y)]


def is_blank_crop(image: PILImage.Image, threshold: float = 18.0, divisions: int = 7) -> bool:
    w, h = image.size
    if w < 6 or h < 6:
        return True
    samples = grid_samples(image, divisions)
    if len(samples) < 4:
        return True
    return max_deviation(samples) < threshold


def clamp_crop(rect: Rect, pad: float, bounds: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Padded crop box ``(x, y, w, h)`` clipped to ``bounds``."""
    width, height = bounds
    x = max(0, int(math.floor(rect.x - pad)))
    y = max(0, int(math.floor(rect.y - pad)))
    w = min(width - x, int(math.floor(rect.width + pad * 2)))
    h = min(height - y, int(math.floor(rect.height + pad * 2)))
    return x, y, w, h


def crop_preview(
    image: PILImage.Image,
    rect: Rect,
    pads: Iterable[int],
    blank_threshold: float = 18.0,
) -> Optional[str]:
    """First non-blank padded crop as a JPEG data URL."""
    for pad in pads:
        x, y, w, h = clamp_crop(rect, pad, image.size)
        if w <= 5 or h <= 5:
            continue
        crop = image.crop((x, y, x + w, y + h))
        if is_blank_crop(crop, blank_threshold):
            continue
        return to_data_url(crop, "JPEG")
    return None


def ring_samples(image: PILImage.Image, rect: Rect, pad: int = 10, ring: int = 3) -> List[Pixel]:
    """Pixels from a thin border ring around ``rect``; empty when the box is too small."""
    x0 = max(0, int(math.floor(rect.x - pad)))
    y0 = max(0, int(math.floor(rect.y - pad)))
    x1 = min(image.width, int(math.ceil(rect.x + rect.width + pad)))
    y1 = min(image.height, int(math.ceil(rect.y + rect.height + pad)))
    w, h = x1 - x0, y1 - y0
    if w < 16 or h < 16:
        return []

    pixels = image.load()
    step_x = max(1, w // 24)
    step_y = max(1, h // 24)
    samples: List[Pixel] = []
    for x in range(x0, x1, step_x):
        for t in range(ring):
            samples.append(pixels[x, y0 + t][:3])
            samples.append(pixels[x, y1 - 1 - t][:3])
    for y in range(y0, y1, step_y):
        for t in range(ring):
            samples.append(pixels[x0 + t, y][:3])
            samples.append(pixels[x1 - 1 - t, y][:3])
    return samples


def infer_solid_background(
    image: PILImage.Image,
    rect: Rect,
    pad: int = 10,
    ring: int = 3,
    min_samples: int = 30,
    max_dev: float = 18.0,
) -> Optional[Tuple[str, float]]:
    """Return ``(hex, uniformity)`` when the border ring reads as one flat color."""
    samples = ring_samples(image, rect, pad, ring)
    if len(samples) < min_samples:
        return None
    uniformity = max_deviation(samples)
    if uniformity > max_dev:
        return None
    return rgb_to_hex(*mean_color(samples)), uniformity


def upscaled_png(buffer: bytes, min_px: int = 60) -> str:
    """PNG data URL, scaled by an integer factor so the short side reaches ``min_px``."""
    image = PILImage.open(io.BytesIO(buffer))
    w, h = image.size
    if w < min_px or h < min_px:
        scale = int(math.ceil(min_px / max(1, min(w, h))))
        image = image.resize((w * scale, h * scale), PILImage.LANCZOS)
    return to_data_url(image, "PNG")


def non_text_crop(
    image: PILImage.Image,
    rect: Rect,
    viewport: Tuple[int, int],
    blank_threshold: float = 15.0,
) -> Tuple[Optional[PILImage.Image], bool, int]:
    """Crop around a small element, scaled from CSS px to frame px.

    Returns ``(crop, is_blank, pad)``.
    """
    img_w, img_h = image.size
    scale_x = img_w / viewport[0]
    scale_y = img_h / viewport[1]
    pad = 8 if rect.width <= 50 else 10 if rect.width <= 120 else 12
    s_pad = pad * scale_x
    x = max(0, int(math.floor(rect.x * scale_x - s_pad)))
    y = max(0, int(math.floor(rect.y * scale_y - s_pad)))
    w = int(math.floor(rect.width * scale_x + s_pad * 2))
    h = int(math.floor(rect.height * scale_y + s_pad * 2))
    w = max(20, min(w, img_w - x))
    h = max(20, min(h, img_h - y))
    if x >= img_w or y >= img_h:
        return None, True, pad
    crop = image.crop((x, y, min(img_w, x + w), min(img_h, y + h)))
    samples = grid_samples(crop, 5)
    blank = len(samples) > 2 and max_deviation(samples) < blank_threshold
    return crop, blank, pad


def final_section_crop(image: PILImage.Image, rect: Rect, pad: int, viewport: Tuple[int, int]) -> Optional[PILImage.Image]:
    fw, fh = image.size
    sx = fw / viewport[0]
    sy = fh / viewport[1]
    x = max(0, int(math.floor(rect.x * sx - pad * sx)))
    y = max(0, int(math.floor(rect.y * sy - pad * sy)))
    w = max(10, min(int(math.floor(rect.width * sx + pad * sx * 2)), fw - x))
    h = max(10, min(int(math.floor(rect.height * sy + pad * sy * 2)), fh - y))
    if x + w > fw or y + h > fh:
        return None
    return image.crop((x, y, x + w, y + h))


FINAL_SECTION = "final"


class FrameCache:
    """Decodes each captured frame once per evaluation.

    Entries are keyed by ``Frame.index``; the persistent-section capture uses
    ``FINAL_SECTION``.
    """

    def __init__(self):
        self._decoded: Dict[Union[int, str], Optional[PILImage.Image]] = {}

    def get(self, key: Union[int, str], buffer: bytes) -> Optional[PILImage.Image]:
        if key not in self._decoded:
            try:
                self._decoded[key] = open_rgb(buffer)
            except Exception as exc:
                logger.warning("Could not decode frame %s: %s", key, exc)
                self._decoded[key] = None
        return self._decoded[key]


def stitch_frames(frames: List[Frame], strategy: Strategy, viewport: Tuple[int, int]) -> Optional[PILImage.Image]:
    """Horizontal strip with overlap for horizontal pages, vertical stack otherwise."""
    if not frames:
        return None
    vw, vh = viewport
    if strategy == Strategy.HORIZONTAL_APP:
        total = vw + (len(frames) - 1) * (vw - STITCH_OVERLAP_PX)
        if total >= MAX_STITCH_WIDTH:
            return None
        canvas = PILImage.new("RGB", (total, vh))
        positions = [(i * (vw - STITCH_OVERLAP_PX), 0) for i in range(len(frames))]
    else:
        total = len(frames) * vh
        if total >= MAX_STITCH_HEIGHT:
            return None
        canvas = PILImage.new("RGB", (vw, total))
        positions = [(0, i * vh) for i in range(len(frames))]
    for frame, position in zip(frames, positions):
        tile = open_rgb(frame.buffer)
        if tile.size != (vw, vh):
            tile = tile.resize((vw, vh))
        canvas.paste(tile, position)
    return canvas


def write_debug_captures(
    debug_dir: Path,
    frames: List[Frame],
    strategy: Strategy,
    viewport: Tuple[int, int],
    final_buffer: Optional[bytes] = None,
) -> List[Path]:
    """Write the stitched page and the final-section capture; failures only log."""
    written: List[Path] = []
    try:
        debug_dir.mkdir(parents=True, exist_ok=True)
        stitched = stitch_frames(frames, strategy, viewport)
        if stitched is not None:
            path = debug_dir / "FULL_PAGE_CAPTURE.jpg"
            stitched.save(path, format="JPEG")
            written.append(path)
        if final_buffer:
            path = debug_dir / "FINAL_SECTION_CAPTURE.jpg"
            open_rgb(final_buffer).save(path, format="JPEG")
            written.append(path)
    except Exception as exc:
        logger.error("Stitch error: %s", exc)
    return written
