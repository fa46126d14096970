"""
Analysis entry points: one URL end to end, or a batch where each URL fails
on its own.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from .brand import capture_site_logo, collect_top_images
from .capture_loop import CaptureLoop
from .config import ScanSettings
from .imaging import write_debug_captures
from .models import AnalysisReport, AnalyzeOptions
from .nontext import NonTextPipeline
from .page_script import PageBridge
from .page_setup import detect_strategy, dismiss_overlays, perform_cleanup
from .session import BrowserSessionManager, SessionLaunchError
from .site_rules import SiteRules
from .wcag import (
    WcagEvaluator,
    deduplicate_persistent_nodes,
    rank_backgrounds,
    rank_fonts,
    rank_images,
    rank_text_colors,
)

logger = logging.getLogger(__name__)


def parse_url_list(raw: str) -> List[str]:
    """Split a newline/comma separated list, keeping entries that look like URLs."""
    parts = (part.strip() for part in re.split(r"[\n,]+", raw or ""))
    return [part for part in parts if part.startswith("http")]


def clean_url(url: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", url, flags=re.IGNORECASE)[:50]


async def capture_final_section(page, bridge: PageBridge, settings: ScanSettings) -> Optional[bytes]:
    """Screenshot of the persistent layer behind the transformed main content."""
    await bridge.call("hideMain")
    try:
        await page.wait_for_timeout(500)
        return await page.screenshot(type="jpeg", quality=settings.final_jpeg_quality)
    except Exception as exc:
        logger.warning("Final section capture failed: %s", exc)
        return None
    finally:
        await bridge.call("showMain")


async def analyze(
    url: str,
    options: Optional[AnalyzeOptions] = None,
    session: Optional[BrowserSessionManager] = None,
    settings: Optional[ScanSettings] = None,
    rules: Optional[SiteRules] = None,
) -> AnalysisReport:
    options = options or AnalyzeOptions()
    settings = settings or (session.settings if session else ScanSettings())
    owns_session = session is None
    session = session or BrowserSessionManager(settings)
    report = AnalysisReport(
        url=url,
        surfaced_issues=settings.surfaced_issues,
        retained_issues=settings.max_contrast_issues,
    )
    try:
        async with session.new_page(options) as page:
            await _run(page, url, options, settings, rules, report)
    except SessionLaunchError:
        raise
    except Exception as exc:
        logger.error("Analysis of %s failed: %s", url, exc)
        report.error = str(exc) or exc.__class__.__name__
    finally:
        if owns_session:
            await session.close()
    return report


async def _run(page, url: str, options: AnalyzeOptions, settings: ScanSettings,
               rules: Optional[SiteRules], report: AnalysisReport) -> None:
    logger.info("Navigating to %s", url)
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=settings.navigation_timeout_ms)
    except Exception as exc:
        logger.warning("Navigation did not settle for %s: %s", url, exc)
        report.limits.append("Navigation timed out; analysis ran on the partially loaded page.")
    await page.wait_for_timeout(settings.initial_settle_ms)

    bridge = PageBridge(page, rules)
    if not await bridge.install():
        report.limits.append("Page script could not be installed up front; retried per call.")
    await dismiss_overlays(bridge, options.keep_cookies)
    await page.wait_for_timeout(settings.post_dismiss_ms)
    await perform_cleanup(bridge, initial=True, keep_cookies=options.keep_cookies)

    strategy = await detect_strategy(bridge)
    report.strategy = strategy

    debug_dir = Path(options.debug_dir) / clean_url(url) if options.debug_dir else None
    nontext = NonTextPipeline(page, bridge, settings, debug_dir=debug_dir)
    loop = CaptureLoop(page, bridge, strategy, settings, keep_cookies=options.keep_cookies, nontext=nontext)
    result = await loop.run()
    report.frames_captured = len(result.frames)
    if result.stop_reason == "iteration bound":
        report.limits.append(f"Capture stopped at the {settings.max_loops} frame bound.")
    elif result.stop_reason == "page closed":
        report.limits.append("Page closed during capture; results cover the frames taken.")

    final_buffer = None
    if result.has_static_final_behind_main and not page.is_closed():
        final_buffer = await capture_final_section(page, bridge, settings)

    if debug_dir is not None:
        viewport = (settings.viewport_width, settings.viewport_height)
        write_debug_captures(debug_dir, result.frames, strategy, viewport, final_buffer)

    nodes = deduplicate_persistent_nodes(result.text_nodes)
    evaluator = WcagEvaluator(settings)
    evaluation = evaluator.evaluate_text_nodes(nodes, result.frames, final_buffer, result.non_text)
    report.non_text = evaluator.evaluate_non_text(result.non_text, result.frames, final_buffer)
    report.total_text_nodes = len(nodes)
    report.contrast_issues = evaluation.issues
    report.backgrounds = rank_backgrounds(result.bg_counts, result.total_score, settings.top_backgrounds)
    report.images = rank_images(result.image_counts, settings.top_images_counted)
    report.colors = rank_text_colors(evaluation, settings.top_text_colors)
    report.fonts = rank_fonts(evaluation)

    report.site_logo = await capture_site_logo(page, bridge, strategy, settings)
    report.top_images = await collect_top_images(page, bridge, settings)

    failed_calls = sorted(fn for fn, count in bridge.failures.items() if count)
    if failed_calls:
        report.limits.append("Page calls without data: " + ", ".join(failed_calls))
    logger.info(
        "Finished %s: %d text nodes, %d issues, %d non-text elements",
        url, report.total_text_nodes, len(report.contrast_issues), len(report.non_text),
    )


async def analyze_batch(
    urls: List[str],
    options: Optional[AnalyzeOptions] = None,
    session: Optional[BrowserSessionManager] = None,
    settings: Optional[ScanSettings] = None,
) -> List[Dict[str, Any]]:
    """Analyze URLs concurrently; a failing URL yields ``{"url", "error"}``."""
    owns_session = session is None
    session = session or BrowserSessionManager(settings)
    try:
        outcomes = await asyncio.gather(
            *(analyze(url, options, session, settings) for url in urls),
            return_exceptions=True,
        )
    finally:
        if owns_session:
            await session.close()

    reports: List[Dict[str, Any]] = []
    for url, outcome in zip(urls, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Processing failed for %s: %s", url, outcome)
            reports.append({"url": url, "error": str(outcome) or outcome.__class__.__name__})
        else:
            reports.append(outcome.to_dict())
    return reports
