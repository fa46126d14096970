"""
Auxiliary report artifacts: the site logo and the largest content images.
"""

import logging
from typing import Any, Dict, List, Optional

from .colors import is_light_fill
from .config import ScanSettings
from .imaging import bytes_to_data_url
from .models import Strategy
from .page_script import PageBridge

logger = logging.getLogger(__name__)

LOGO_CONTAINER_ID = "__logo_temp"
IMAGE_CONTAINER_ID = "__img_temp"
LOGO_PAD = 6


def artifact(src: str, buffer: bytes, width: float, height: float, **extra: Any) -> Dict[str, Any]:
    data = {
        "src": (src or "")[:300],
        "base64": bytes_to_data_url(buffer),
        "width": int(round(width)),
        "height": int(round(height)),
    }
    data.update(extra)
    return data


async def _screenshot_container(page, size: Optional[Dict[str, Any]]) -> Optional[bytes]:
    if not size or size.get("width", 0) <= 10 or size.get("height", 0) <= 10:
        return None
    return await page.screenshot(type="png", clip={"x": 0, "y": 0, "width": size["width"], "height": size["height"]})


async def capture_site_logo(page, bridge: PageBridge, strategy: Strategy, settings: ScanSettings) -> Optional[Dict[str, Any]]:
    """Find the site logo and capture it as a PNG, isolated from page state where needed."""
    try:
        if strategy != Strategy.HORIZONTAL_APP:
            await bridge.call("scrollTo", x=0, y=0)
            await page.wait_for_timeout(500)

        info = await bridge.call("findLogo")
        if not info:
            logger.info("No logo element found")
            return None
        kind = info.get("kind")
        x, y = float(info.get("x", 0)), float(info.get("y", 0))
        w, h = float(info.get("width", 0)), float(info.get("height", 0))

        if kind == "svg" and info.get("src"):
            bg = "#333" if is_light_fill(info.get("fill")) else "#fff"
            size = await bridge.call(
                "mountIsolated", id=LOGO_CONTAINER_ID, mode="image", src=info["src"],
                renderWidth=round(w), renderHeight=round(h),
                width=round(w + 12), height=round(h + 12), background=bg,
            )
            try:
                await page.wait_for_timeout(300)
                buffer = await _screenshot_container(page, size)
            finally:
                await bridge.call("unmountIsolated", id=LOGO_CONTAINER_ID)
            return artifact(info["src"], buffer, w, h, kind=kind) if buffer else None

        if kind == "css-bg" and info.get("src"):
            render_w = max(round(w * 2), 120)
            render_h = max(round(h * 2), 80)
            size = await bridge.call(
                "mountIsolated", id=LOGO_CONTAINER_ID, mode="image", fit="max", src=info["src"],
                filter=info.get("filter") or "", renderWidth=render_w, renderHeight=render_h, padding=LOGO_PAD, background="#fff",
            )
            try:
                await page.wait_for_timeout(500)
                buffer = await _screenshot_container(page, size)
            finally:
                await bridge.call("unmountIsolated", id=LOGO_CONTAINER_ID)
            if not buffer:
                logger.info("css-bg logo could not be rendered")
                return None
            return artifact(info["src"], buffer, size["width"] - 12, size["height"] - 12, kind=kind)

        if kind == "text-logo":
            size = await bridge.call("cloneTextLogo", id=LOGO_CONTAINER_ID, selector=info.get("selector", ""))
            try:
                await page.wait_for_timeout(300)
                buffer = await _screenshot_container(page, size)
            finally:
                await bridge.call("unmountIsolated", id=LOGO_CONTAINER_ID)
            if not buffer:
                logger.info("Text logo could not be rendered")
                return None
            return artifact("", buffer, size["width"] - 12, size["height"] - 12, kind=kind)

        on_screen = 0 <= x < settings.viewport_width and 0 <= y < settings.viewport_height
        if kind == "img" and on_screen and w > 10 and h > 10:
            cx, cy = max(0.0, x - LOGO_PAD), max(0.0, y - LOGO_PAD)
            clip = {
                "x": cx,
                "y": cy,
                "width": min(settings.viewport_width - cx, w + LOGO_PAD * 2),
                "height": min(settings.viewport_height - cy, h + LOGO_PAD * 2),
            }
            buffer = await page.screenshot(type="png", clip=clip)
            return artifact(info.get("src", ""), buffer, w, h, kind=kind)

        logger.info("Logo element off-screen: (%d,%d) %dx%d %s", x, y, w, h, kind)
    except Exception as exc:
        logger.warning("Logo capture failed: %s", exc)
    return None


def fit_to_viewport(natural_w: int, natural_h: int, viewport_w: int, viewport_h: int):
    nw = natural_w or 800
    nh = natural_h or 600
    scale = min(viewport_w / nw, viewport_h / nh, 1)
    return round(nw * scale), round(nh * scale)


async def collect_top_images(page, bridge: PageBridge, settings: ScanSettings) -> List[Dict[str, Any]]:
    """Largest content images, each rendered alone; consent overlays are hidden meanwhile."""
    top: List[Dict[str, Any]] = []
    await bridge.call("hideConsent")
    try:
        infos = await bridge.call("contentImages", limit=settings.max_content_images) or []
        logger.info("Found %d candidate images", len(infos))
        for info in infos:
            width, height = fit_to_viewport(
                info.get("naturalWidth", 0), info.get("naturalHeight", 0),
                settings.viewport_width, settings.viewport_height,
            )
            try:
                mounted = await bridge.call(
                    "mountIsolated", id=IMAGE_CONTAINER_ID, mode="image", src=info["src"],
                    renderWidth=width, renderHeight=height, width=width, height=height, background="#fff",
                )
                if not mounted:
                    continue
                await page.wait_for_timeout(300)
                loaded = await bridge.call("isolatedReady", id=IMAGE_CONTAINER_ID)
                await page.wait_for_timeout(200)
                if not loaded:
                    continue
                buffer = await page.screenshot(type="png", clip={"x": 0, "y": 0, "width": width, "height": height})
                top.append(artifact(info["src"], buffer, width, height, alt=info.get("alt", "")))
            except Exception as exc:
                logger.debug("content image %s skipped: %s", info.get("src", "")[:60], exc)
            finally:
                await bridge.call("unmountIsolated", id=IMAGE_CONTAINER_ID)
    finally:
        await bridge.call("restoreConsent")
    logger.info("Captured %d top images", len(top))
    return top
