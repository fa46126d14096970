"""
Capture loop: scan, screenshot and advance until the page stops producing
new content or the iteration bound is reached.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .config import ScanSettings
from .models import Frame, NonTextCandidate, ScanChunkResult, Strategy, TextNode
from .nontext import NonTextPipeline
from .page_script import PageBridge
from .page_setup import advance_page, force_render_content, perform_cleanup, read_translate_x
from .scanner import ViewportScanner, merge_counts

logger = logging.getLogger(__name__)

IMAGE_BUCKET = "IMAGE/VIDEO"


class LoopState(str, Enum):
    SCANNING = "SCANNING"
    ADVANCING = "ADVANCING"
    DONE = "DONE"


@dataclass
class LoopResult:
    frames: List[Frame] = field(default_factory=list)
    bg_counts: Dict[str, int] = field(default_factory=dict)
    image_counts: Dict[str, int] = field(default_factory=dict)
    text_nodes: List[TextNode] = field(default_factory=list)
    non_text: List[NonTextCandidate] = field(default_factory=list)
    total_score: int = 0
    has_static_final_behind_main: bool = False
    loops: int = 0
    stop_reason: str = ""


class CaptureLoop:
    def __init__(
        self,
        page,
        bridge: PageBridge,
        strategy: Strategy,
        settings: Optional[ScanSettings] = None,
        keep_cookies: bool = False,
        scanner: Optional[ViewportScanner] = None,
        nontext: Optional[NonTextPipeline] = None,
    ):
        self.page = page
        self.bridge = bridge
        self.strategy = strategy
        self.settings = settings or ScanSettings()
        self.keep_cookies = keep_cookies
        self.scanner = scanner or ViewportScanner(bridge, strategy, self.settings)
        self.nontext = nontext or NonTextPipeline(page, bridge, self.settings)
        self.state = LoopState.SCANNING
        self.history: List[LoopState] = []

    def _enter(self, state: LoopState) -> None:
        self.state = state
        self.history.append(state)

    async def run(self) -> LoopResult:
        result = LoopResult()
        await self.bridge.call("scrollTo", x=0, y=0)
        if self.strategy == Strategy.HORIZONTAL_APP:
            try:
                await self.page.mouse.click(self.settings.viewport_width / 2, self.settings.viewport_height / 2)
            except Exception as exc:
                logger.debug("focus click failed: %s", exc)

        previous_signature = ""
        reached_end = False
        while not reached_end and result.loops < self.settings.max_loops:
            if self.page.is_closed():
                result.stop_reason = "page closed"
                break
            result.loops += 1
            self._enter(LoopState.SCANNING)

            await perform_cleanup(self.bridge, initial=False, keep_cookies=self.keep_cookies)
            await force_render_content(self.page, self.bridge, self.settings)
            chunk = await self.scanner.scan(result.loops)

            if chunk is not None:
                await self.merge(chunk, result)
                signature = chunk.visual_signature
                if result.loops > 1 and signature == previous_signature and len(signature) > 5:
                    result.stop_reason = "content stabilized"
                    break
                previous_signature = signature

            buffer = await self.page.screenshot(type="jpeg", quality=self.settings.frame_jpeg_quality)
            offset_x = await read_translate_x(self.bridge) if self.strategy == Strategy.HORIZONTAL_APP else 0.0
            result.frames.append(Frame(index=result.loops, buffer=buffer, offset_x=offset_x))

            self._enter(LoopState.ADVANCING)
            if await advance_page(self.page, self.bridge, self.strategy, self.settings, result.loops):
                reached_end = True
                result.stop_reason = "end of page"

        if not result.stop_reason:
            result.stop_reason = "iteration bound"
        self._enter(LoopState.DONE)
        logger.info(
            "Capture loop finished after %d loops (%s), %d frames, %d text nodes",
            result.loops, result.stop_reason, len(result.frames), len(result.text_nodes),
        )
        return result

    async def merge(self, chunk: ScanChunkResult, result: LoopResult) -> None:
        for line in chunk.debug_log:
            logger.debug("[page] %s", line)
        result.total_score += chunk.total_score
        merge_counts(result.bg_counts, chunk.bg_counts)
        image_hits = sum(chunk.image_counts.values())
        if image_hits:
            result.bg_counts[IMAGE_BUCKET] = result.bg_counts.get(IMAGE_BUCKET, 0) + image_hits
        merge_counts(result.image_counts, chunk.image_counts)
        if chunk.has_static_final_behind_main:
            result.has_static_final_behind_main = True
        for node in chunk.text_nodes:
            node.final_in_viewport = chunk.has_final_section
        result.text_nodes.extend(chunk.text_nodes)
        if chunk.non_text:
            await self.nontext.merge(chunk.non_text, result.non_text)
