"""
Isolated captures for non-text candidates (icons, logos, controls).

Inline SVG and hamburger icons are clipped straight from the page using a
rect re-located at capture time. Source-backed assets are re-rendered in a
fixed container over their resolved background, and once more over the
sticky-state background when the container has one.
"""

import logging
import math
import re
from pathlib import Path
from typing import Dict, List, Optional

from .colors import to_hex
from .config import ScanSettings
from .models import OVERLAY_ICON_TYPES, NonTextCandidate, Rect, Solid
from .page_script import PageBridge

logger = logging.getLogger(__name__)

CONTAINER_ID = "__nontext_temp"
CONTAINER_PADDING = 20
OVERLAY_ICON_PAD = 20
CONTROL_PAD = 4


def safe_filename(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9-]", "_", value or "")


def clamp_clip(rect: Rect, viewport: Dict[str, int]) -> Dict[str, int]:
    x = max(0, int(math.floor(rect.x)))
    y = max(0, int(math.floor(rect.y)))
    width = int(math.ceil(rect.width))
    height = int(math.ceil(rect.height))
    if x + width > viewport["width"]:
        width = viewport["width"] - x
    if y + height > viewport["height"]:
        height = viewport["height"] - y
    return {"x": x, "y": y, "width": width, "height": height}


def render_size(rect: Rect, min_px: int = 60):
    """Render footprint scaled up by an integer factor to at least ``min_px``."""
    w = rect.width or min_px
    h = rect.height or min_px
    scale = int(math.ceil(min_px / min(w, h))) if (w < min_px or h < min_px) else 1
    return int(round(w * scale)), int(round(h * scale))


class NonTextPipeline:
    def __init__(self, page, bridge: PageBridge, settings: ScanSettings, debug_dir: Optional[Path] = None):
        self.page = page
        self.bridge = bridge
        self.settings = settings
        self.debug_dir = debug_dir

    async def merge(self, candidates: List[NonTextCandidate], merged: List[NonTextCandidate]) -> int:
        """Capture new candidates and append them to ``merged``; returns how many were added."""
        known = {c.dedupe_key for c in merged}
        added = 0
        for candidate in candidates:
            if candidate.dedupe_key in known:
                continue
            known.add(candidate.dedupe_key)
            try:
                await self.capture(candidate)
            except Exception as exc:
                logger.warning("Non-text capture failed for %s: %s", candidate.label, exc)
            merged.append(candidate)
            added += 1
        return added

    async def capture(self, candidate: NonTextCandidate) -> None:
        rect = candidate.rect
        if candidate.type in OVERLAY_ICON_TYPES:
            if rect.width > 5 and rect.height > 5:
                await self.capture_direct(candidate, OVERLAY_ICON_PAD)
            return
        if candidate.src:
            await self.capture_isolated(candidate)
        elif candidate.type == "ui-control" and rect.width > 5 and rect.height > 5:
            await self.capture_direct(candidate, CONTROL_PAD)
        else:
            logger.debug("%s: no src, skipped", candidate.label)

    async def refresh_rect(self, candidate: NonTextCandidate) -> Optional[Rect]:
        rect = candidate.rect
        if rect.width <= 3 or rect.height <= 3:
            return None
        cx, cy = rect.center
        if cx < 0 or cy < 0 or cx > self.settings.viewport_width or cy > self.settings.viewport_height:
            return None
        fresh = await self.bridge.call("refreshRect", x=cx, y=cy, type=candidate.type)
        return Rect.from_dict(fresh) if fresh else None

    async def capture_direct(self, candidate: NonTextCandidate, pad: int) -> Optional[bytes]:
        fresh = await self.refresh_rect(candidate)
        rect = fresh or candidate.rect
        if rect.width <= 5 or rect.height <= 5:
            return None
        clip = clamp_clip(rect.padded(pad), self.settings.viewport)
        if clip["width"] <= 5 or clip["height"] <= 5:
            return None
        try:
            buffer = await self.page.screenshot(type="png", clip=clip)
        except Exception as exc:
            logger.debug("%s: direct clip failed: %s", candidate.label, exc)
            return None
        candidate.element_screenshot = buffer
        if fresh is not None:
            candidate.rect = fresh
        self._write_debug(candidate.label, "ELEM", buffer)
        return buffer

    async def capture_isolated(self, candidate: NonTextCandidate) -> None:
        src_file = candidate.src.split("/")[-1].replace("'", "").replace('"', "")
        info = await self.bridge.call(
            "candidateBackground", href=candidate.href or "", src=src_file, type=candidate.type
        ) or {}
        if info.get("debug"):
            logger.debug("%s sticky probe: %s", candidate.label, info["debug"])

        bg = to_hex(info.get("bg")) or "#FFFFFF"
        if bg != "#FFFFFF":
            candidate.background = Solid(bg)

        primary = await self.render_over(candidate, bg)
        if primary:
            candidate.element_screenshot = primary
            self._write_debug(candidate.label, "ELEM", primary)

        sticky = info.get("sticky") or {}
        sticky_bg = to_hex(sticky.get("stickyBg"))
        if sticky_bg:
            buffer = await self.render_over(candidate, sticky_bg)
            if buffer:
                candidate.sticky_screenshot = buffer
                candidate.sticky_bg_color = sticky_bg
                candidate.normal_bg_color = to_hex(sticky.get("normalBg"))
                self._write_debug(candidate.label, "STICKY", buffer)

    async def render_over(self, candidate: NonTextCandidate, bg: str) -> Optional[bytes]:
        render_w, render_h = render_size(candidate.rect, self.settings.min_preview_px)
        width, height = render_w + CONTAINER_PADDING, render_h + CONTAINER_PADDING
        mounted = await self.bridge.call(
            "mountIsolated",
            id=CONTAINER_ID,
            mode="background" if candidate.type in ("icon-bg-image", "ui-control") else "image",
            src=candidate.src,
            filter=candidate.css_filter or "",
            renderWidth=render_w,
            renderHeight=render_h,
            width=width,
            height=height,
            background=bg,
        )
        if not mounted:
            return None
        try:
            await self.page.wait_for_timeout(400)
            await self.bridge.call("isolatedReady", id=CONTAINER_ID)
            await self.page.wait_for_timeout(200)
            return await self.page.screenshot(
                type="png", clip={"x": 0, "y": 0, "width": width, "height": height}
            )
        except Exception as exc:
            logger.debug("%s: isolated render failed: %s", candidate.label, exc)
            return None
        finally:
            await self.bridge.call("unmountIsolated", id=CONTAINER_ID)

    def _write_debug(self, label: str, suffix: str, buffer: bytes) -> None:
        if not self.debug_dir:
            return
        try:
            folder = self.debug_dir / "nontext_crops"
            folder.mkdir(parents=True, exist_ok=True)
            (folder / f"{safe_filename(label)}_{suffix}.png").write_bytes(buffer)
        except OSError as exc:
            logger.debug("could not write debug crop for %s: %s", label, exc)
