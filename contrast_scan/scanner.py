"""
Per-viewport scan: classify the visible area and collect text and non-text
candidates for the current frame.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from .colors import estimate_filtered_color, to_hex
from .config import ScanSettings
from .models import (
    IMAGE,
    NON_TEXT_TYPES,
    OVERLAY_ICON_TYPES,
    TRANSPARENT,
    NonTextCandidate,
    Rect,
    ScanChunkResult,
    Strategy,
    TextNode,
    parse_background,
)
from .page_script import PageBridge
from .resolver import BackgroundProbe, BackgroundResolver

logger = logging.getLogger(__name__)


def normalize_label(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip().lower()


class ViewportScanner:
    def __init__(self, bridge: PageBridge, strategy: Strategy, settings: ScanSettings,
                 resolver: Optional[BackgroundResolver] = None):
        self.bridge = bridge
        self.strategy = strategy
        self.settings = settings
        self.resolver = resolver or BackgroundResolver(strategy)

    async def scan(self, loop_index: int) -> Optional[ScanChunkResult]:
        """Scan the current viewport; ``None`` when the page could not be read."""
        payload = await self.bridge.call(
            "scanChunk",
            strategy=self.strategy.value,
            loopIndex=loop_index,
            gridStep=self.settings.grid_step,
            visibilityRatio=self.settings.visibility_ratio,
            minVisibleWidth=self.settings.min_visible_width,
            minVisibleHeight=self.settings.min_visible_height,
        )
        if not isinstance(payload, dict):
            return None
        return self.parse(payload)

    def parse(self, payload: Dict[str, Any]) -> ScanChunkResult:
        result = ScanChunkResult(
            bg_counts={k: int(v) for k, v in (payload.get("bgCounts") or {}).items()},
            image_counts={k: int(v) for k, v in (payload.get("imageCounts") or {}).items()},
            total_score=int(payload.get("totalScore") or 0),
            visual_signature=payload.get("signature") or "",
            has_final_section=bool(payload.get("hasFinalSection")),
            has_static_final_behind_main=bool(payload.get("hasStaticFinalBehindMain")),
            debug_log=list(payload.get("debug") or []),
        )

        accepted = set()
        for raw in payload.get("textNodes") or []:
            node = self._safe(self._resolved_text_node, raw)
            if node is not None:
                result.text_nodes.append(node)
                accepted.add(normalize_label(node.text))

        for raw in payload.get("fallbackLabels") or []:
            key = normalize_label(raw.get("text", "")) if isinstance(raw, dict) else ""
            if not key or key in accepted:
                continue
            node = self._safe(self._overlay_label_node, raw)
            if node is not None:
                result.text_nodes.append(node)
                accepted.add(key)

        for raw in payload.get("arrows") or []:
            node = self._safe(self._arrow_node, raw)
            if node is not None:
                result.text_nodes.append(node)

        for raw in payload.get("nonText") or []:
            candidate = self._safe(self._non_text, raw)
            if candidate is not None:
                result.non_text.append(candidate)

        if result.debug_log:
            logger.debug("scan %s: %d page-side skips", self.strategy.value, len(result.debug_log))
            for line in result.debug_log:
                logger.debug("page: %s", line)
        return result

    @staticmethod
    def _safe(build, raw):
        try:
            return build(raw)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.debug("skipping malformed scan record: %s", exc)
            return None

    def _resolved_text_node(self, raw: Dict[str, Any]) -> Optional[TextNode]:
        probe = BackgroundProbe.from_payload(raw.get("evidence"))
        return self._text_node(raw, self.resolver.resolve(probe))

    def _overlay_label_node(self, raw: Dict[str, Any]) -> Optional[TextNode]:
        evidence = raw.get("evidence")
        probe = BackgroundProbe.from_payload(evidence) if evidence else None
        bg = self.resolver.resolve_overlay_label(bool(raw.get("fullBleed")), bool(raw.get("mediaOverlap")), probe)
        return self._text_node(raw, bg)

    def _arrow_node(self, raw: Dict[str, Any]) -> TextNode:
        return TextNode(
            text="[Arrow Icon]",
            tag="icon",
            text_color="#FFFFFF",
            background=self.resolver.resolve_arrow(parse_background(raw.get("areaHit"))),
            font_family="",
            font_weight="400",
            font_size="0px",
            rect=Rect.from_dict(raw.get("rect")),
            capture_index=int(raw.get("captureIndex") or 0),
            is_arrow_icon=True,
            is_in_final_section=bool(raw.get("isInFinal")),
            is_static_behind_main=bool(raw.get("isStaticBehindMain")),
        )

    def _text_node(self, raw: Dict[str, Any], background) -> Optional[TextNode]:
        if background is None:
            return None
        return TextNode(
            text=raw.get("text") or "",
            tag=raw.get("tagName") or "",
            text_color=raw.get("textColor"),
            background=background,
            font_family=raw.get("fontFamily") or "",
            font_weight=str(raw.get("fontWeight") or "400"),
            font_size=str(raw.get("fontSize") or "16px"),
            rect=Rect.from_dict(raw.get("rect")),
            capture_index=int(raw.get("captureIndex") or 0),
            is_in_final_section=bool(raw.get("isInFinal")),
            is_static_behind_main=bool(raw.get("isStaticBehindMain")),
        )

    def _non_text(self, raw: Dict[str, Any]) -> Optional[NonTextCandidate]:
        kind = raw.get("type")
        if kind not in NON_TEXT_TYPES:
            return None
        background = parse_background(raw.get("bgColor"))
        if background is None:
            background = IMAGE if kind in OVERLAY_ICON_TYPES else TRANSPARENT
        css_filter = raw.get("cssFilter") or None
        fill = to_hex(raw.get("fillColor"))
        estimated = fill or estimate_filtered_color(css_filter)
        return NonTextCandidate(
            type=kind,
            label=(raw.get("label") or "").strip() or kind,
            tag=raw.get("tagName") or "",
            rect=Rect.from_dict(raw.get("rect")),
            capture_index=int(raw.get("captureIndex") or 0),
            background=background,
            src=raw.get("src") or "",
            alt=raw.get("alt") or "",
            css_filter=css_filter,
            estimated_color=estimated,
            href=raw.get("href") or None,
            is_svg=bool(raw.get("isSvg")),
        )


def merge_counts(target: Dict[str, int], source: Dict[str, int]) -> None:
    for key, value in source.items():
        target[key] = target.get(key, 0) + value
