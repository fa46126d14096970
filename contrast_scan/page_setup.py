"""
Page preparation and navigation: overlay dismissal, cleanup, forced
rendering of lazy content, strategy detection and advancing one frame.
"""

import logging
from typing import Optional

from .config import ScanSettings
from .models import Strategy
from .page_script import PageBridge

logger = logging.getLogger(__name__)

# Below this many px of movement the probe wheel step is treated as ignored.
WEAK_RESPONSE_PX = 20


async def dismiss_overlays(bridge: PageBridge, keep_cookies: bool = False) -> int:
    clicked = await bridge.call("dismissOverlays", keepCookies=keep_cookies)
    return int(clicked or 0)


async def perform_cleanup(bridge: PageBridge, initial: bool = False, keep_cookies: bool = False) -> bool:
    return bool(await bridge.call("cleanup", initial=initial, keepCookies=keep_cookies))


async def force_render_content(page, bridge: PageBridge, settings: ScanSettings) -> None:
    """Reveal lazy media and animation-gated content, then let it paint."""
    stats = await bridge.call("forceRender")
    if stats:
        logger.debug("force render: revealed=%s preloaded=%s", stats.get("revealed"), stats.get("preloaded"))
    await page.wait_for_timeout(settings.render_settle_ms)


async def detect_strategy(bridge: PageBridge) -> Strategy:
    raw = await bridge.call("detectStrategy", probe=100)
    strategy = Strategy.parse(raw)
    logger.info("Detected navigation strategy: %s", strategy.value)
    return strategy


async def read_translate_x(bridge: PageBridge) -> float:
    value = await bridge.call("readTranslateX")
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def calibrated_delta(moved_px: float, settings: ScanSettings) -> Optional[int]:
    """Second wheel step that should bring the total shift to the target distance.

    ``None`` means no second step: the probe was ignored (handled by the weak
    fallback) or already overshot the target.
    """
    if moved_px < WEAK_RESPONSE_PX or moved_px >= settings.horizontal_target_px:
        return None
    px_per_delta = moved_px / settings.horizontal_probe_delta
    remaining = settings.horizontal_target_px - moved_px
    delta = round(remaining / max(px_per_delta, 0.1))
    return max(settings.horizontal_min_delta, min(settings.horizontal_max_delta, delta))


async def advance_horizontal(page, bridge: PageBridge, settings: ScanSettings) -> bool:
    before = await read_translate_x(bridge)
    await page.mouse.wheel(0, settings.horizontal_probe_delta)
    await page.wait_for_timeout(300)
    moved = abs(await read_translate_x(bridge) - before)

    if moved < WEAK_RESPONSE_PX:
        await page.mouse.wheel(0, settings.horizontal_weak_delta)
        await page.wait_for_timeout(350)
    else:
        delta = calibrated_delta(moved, settings)
        if delta:
            await page.mouse.wheel(0, delta)
            await page.wait_for_timeout(350)

    after = await read_translate_x(bridge)
    logger.debug("horizontal step: before=%.1f after=%.1f moved=%.1f", before, after, abs(after - before))
    await page.wait_for_timeout(1400)
    # horizontal pages end via the signature check or the loop bound
    return False


async def advance_snap(page, bridge: PageBridge, settings: ScanSettings, loop_count: int) -> bool:
    await page.keyboard.press("PageDown")
    await bridge.call("snapNext")
    await page.wait_for_timeout(4000)
    return loop_count > settings.max_snap_loops


async def advance_standard(page, bridge: PageBridge, settings: ScanSettings) -> bool:
    await bridge.call("scrollBy", dy=settings.viewport_height)
    await page.wait_for_timeout(2000)
    return bool(await bridge.call("isAtEnd", margin=50))


async def advance_page(page, bridge: PageBridge, strategy: Strategy, settings: ScanSettings, loop_count: int) -> bool:
    """Move to the next frame; returns True once the end of the page is reached."""
    if strategy == Strategy.HORIZONTAL_APP:
        return await advance_horizontal(page, bridge, settings)
    if strategy == Strategy.VERTICAL_SNAP:
        return await advance_snap(page, bridge, settings, loop_count)
    return await advance_standard(page, bridge, settings)
