"""
Cross-frame aggregation and WCAG evaluation.

Text nodes collected over all frames are deduplicated, classified against
their effective background and turned into ``ContrastIssue`` records;
non-text candidates are checked against the 1.4.11 thresholds.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from .colors import (
    NON_TEXT_ENHANCED,
    NON_TEXT_REQUIRED,
    contrast_ratio_hex,
    format_ratio,
    is_large_text,
    text_thresholds,
)
from .config import ScanSettings
from .imaging import (
    FINAL_SECTION,
    FrameCache,
    crop_preview,
    final_section_crop,
    infer_solid_background,
    non_text_crop,
    to_data_url,
    upscaled_png,
)
from .models import (
    IMAGE,
    OVERLAY_ICON_TYPES,
    ContrastIssue,
    ContrastVerdict,
    Frame,
    NonTextCandidate,
    NonTextResult,
    Solid,
    Status,
    TextNode,
    is_image,
)

logger = logging.getLogger(__name__)

TEXT_PREVIEW_PADS = [4, 10, 18, 30]
ARROW_PREVIEW_PADS = [10, 18, 26]

NOTE_VIOLATION = "WCAG Violation"
NOTE_AA_ONLY = "Passes AA, Fails AAA"
NOTE_SOLID_OVERLAY = "Solid overlay detected (not image background)."
NOTE_TEXT_OVER_IMAGE = "Text positioned over image/video."
NOTE_ICON_OVER_IMAGE = "Arrow/icon positioned over image."


def normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower())


def semantic_text(text: str, limit: int = 90) -> str:
    clean = re.sub(r"[^a-z0-9\s]", " ", normalize_text(text), flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", clean).strip()[:limit]


def deduplicate_persistent_nodes(nodes: List[TextNode]) -> List[TextNode]:
    """Collapse nodes of the persistent section that repeat in every frame.

    Keyed by text only; the last occurrence wins.
    """
    seen: Set[str] = set()
    kept: List[TextNode] = []
    for node in reversed(nodes):
        if node.is_in_final_section:
            key = "final_arrow" if node.is_arrow_icon else f"final_{node.text.strip().lower()}"
            if key in seen:
                continue
            seen.add(key)
        kept.append(node)
    kept.reverse()
    logger.debug("persistent dedupe: %d -> %d nodes", len(nodes), len(kept))
    return kept


def select_frame(node: TextNode, frames: List[Frame], final_buffer: Optional[bytes]) -> Optional[Tuple[Union[int, str], bytes]]:
    """Cache key and buffer of the capture a text node should be sampled from."""
    if node.is_in_final_section and node.is_static_behind_main and final_buffer:
        return FINAL_SECTION, final_buffer
    if node.is_in_final_section:
        return (frames[-1].index, frames[-1].buffer) if frames else None
    for frame in frames:
        if frame.index == node.capture_index:
            return frame.index, frame.buffer
    return None


def text_verdict(fg: str, bg: str, font_size: str, font_weight: str) -> Optional[ContrastVerdict]:
    ratio = contrast_ratio_hex(fg, bg)
    if ratio is None:
        return None
    aa_required, aaa_required = text_thresholds(is_large_text(font_size, font_weight))
    if ratio < aa_required:
        return ContrastVerdict(Status.FAIL, Status.FAIL, ratio, aa_required, aaa_required, NOTE_VIOLATION)
    if ratio < aaa_required:
        return ContrastVerdict(Status.PASS, Status.FAIL, ratio, aa_required, aaa_required, NOTE_AA_ONLY)
    return ContrastVerdict(Status.PASS, Status.PASS, ratio, aa_required, aaa_required)


def image_verdict(font_size: str, font_weight: str, icon: bool) -> ContrastVerdict:
    aa_required, aaa_required = text_thresholds(is_large_text(font_size, font_weight))
    note = NOTE_ICON_OVER_IMAGE if icon else NOTE_TEXT_OVER_IMAGE
    return ContrastVerdict(Status.WARNING, Status.FAIL, None, aa_required, aaa_required, note)


@dataclass
class TextEvaluation:
    issues: List[ContrastIssue] = field(default_factory=list)
    font_groups: Dict[str, Set[str]] = field(default_factory=dict)
    color_scores: Dict[str, int] = field(default_factory=dict)
    color_elements: Dict[str, List[str]] = field(default_factory=dict)


class WcagEvaluator:
    def __init__(self, settings: Optional[ScanSettings] = None, icon_fonts: Optional[List[str]] = None):
        self.settings = settings or ScanSettings()
        self.icon_fonts = icon_fonts or ["icon", "icomoon", "awesome"]
        self.frames = FrameCache()

    # ------------------------------------------------------------------ text

    def evaluate_text_nodes(
        self,
        nodes: List[TextNode],
        frames: List[Frame],
        final_buffer: Optional[bytes] = None,
        overlay_candidates: Optional[List[NonTextCandidate]] = None,
    ) -> TextEvaluation:
        self.frames = FrameCache()
        result = TextEvaluation()
        issues: Dict[str, ContrastIssue] = {}
        seen_semantic: Set[str] = set()

        for candidate in overlay_candidates or []:
            if candidate.type not in OVERLAY_ICON_TYPES:
                continue
            x, y = round(candidate.rect.x), round(candidate.rect.y)
            issues[f"overlay_{candidate.type}_{x}_{y}"] = self.overlay_icon_issue(candidate)

        for node in nodes:
            self._aggregate(node, result)
            if not node.text_color:
                continue
            family = (node.font_family or "").lower()
            if any(bad in family for bad in self.icon_fonts):
                continue

            was_image = is_image(node.background)
            issue = self._image_issue(node, frames, final_buffer) if was_image else self._solid_issue(node)
            if issue is None or (issue.aa_status == Status.PASS and issue.aaa_status == Status.PASS):
                continue

            prefix = "img" if was_image else "solid"
            text_key = f"{prefix}_{normalize_text(node.text)}_{node.text_color}_{node.background.to_wire()}"
            semantic_key = "_".join([
                semantic_text(node.text),
                issue.text_color,
                issue.background.to_wire(),
                issue.aa_status.value,
                issue.aaa_status.value,
            ])
            if semantic_key in seen_semantic:
                continue
            existing = issues.get(text_key)
            if existing is None or (was_image and not is_image(existing.background)):
                issues[text_key] = issue
                seen_semantic.add(semantic_key)

        result.issues = list(issues.values())
        return result

    def _aggregate(self, node: TextNode, result: TextEvaluation) -> None:
        family = (node.font_family or "").strip()
        if len(family) > 2:
            result.font_groups.setdefault(family, set()).add(node.font_weight or "400")
        if node.text_color:
            result.color_scores[node.text_color] = result.color_scores.get(node.text_color, 0) + len(node.text)
            elements = result.color_elements.setdefault(node.text_color, [])
            if node.tag not in elements:
                elements.append(node.tag)

    def _solid_issue(self, node: TextNode) -> Optional[ContrastIssue]:
        bg = node.background
        if not isinstance(bg, Solid):
            return None
        verdict = text_verdict(node.text_color, bg.hex, node.font_size, node.font_weight)
        if verdict is None:
            return None
        return self._issue(node, bg, verdict)

    def _image_issue(self, node: TextNode, frames: List[Frame], final_buffer: Optional[bytes]) -> Optional[ContrastIssue]:
        s = self.settings
        selected = select_frame(node, frames, final_buffer)
        image = self.frames.get(*selected) if selected else None
        preview = None
        if image is not None:
            inferred = infer_solid_background(
                image, node.rect, s.ring_pad, s.ring_thickness, s.min_ring_samples, s.border_uniformity
            )
            pads = ARROW_PREVIEW_PADS if node.is_arrow_icon else TEXT_PREVIEW_PADS
            preview = crop_preview(image, node.rect, pads, s.blank_crop_deviation)
            if inferred is not None:
                solid = Solid(inferred[0])
                verdict = text_verdict(node.text_color, solid.hex, node.font_size, node.font_weight)
                if verdict is not None:
                    if verdict.passes:
                        verdict.note = NOTE_SOLID_OVERLAY
                    logger.debug("ring on %r reads solid %s (dev %.1f)", node.text[:30], solid.hex, inferred[1])
                    return self._issue(node, solid, verdict, preview)
        if preview is None:
            # nothing reviewable to show for an image-backed node
            return None
        return self._issue(node, IMAGE, image_verdict(node.font_size, node.font_weight, node.is_arrow_icon), preview)

    @staticmethod
    def _issue(node: TextNode, bg, verdict: ContrastVerdict, preview: Optional[str] = None) -> ContrastIssue:
        return ContrastIssue(
            text=node.text,
            text_color=node.text_color,
            background=bg,
            contrast_used="Image BG" if verdict.ratio is None else f"{verdict.ratio:.2f}",
            aa_required=format_ratio(verdict.aa_required),
            aa_status=verdict.aa,
            aaa_required=format_ratio(verdict.aaa_required),
            aaa_status=verdict.aaa,
            note=verdict.note,
            preview=preview,
        )

    def overlay_icon_issue(self, candidate: NonTextCandidate) -> ContrastIssue:
        hamburger = candidate.type == "hamburger-icon"
        preview = None
        if candidate.element_screenshot:
            try:
                preview = upscaled_png(candidate.element_screenshot, self.settings.min_preview_px)
            except Exception as exc:
                logger.debug("overlay preview failed for %s: %s", candidate.label, exc)
        return ContrastIssue(
            text=candidate.label or ("[Menu Icon]" if hamburger else "[SVG Logo]"),
            text_color=candidate.estimated_color or "#FFFFFF",
            background=IMAGE,
            contrast_used="Image BG",
            aa_required=format_ratio(NON_TEXT_REQUIRED),
            aa_status=Status.WARNING,
            aaa_required=format_ratio(7.0),
            aaa_status=Status.FAIL,
            note=NOTE_ICON_OVER_IMAGE if hamburger else NOTE_TEXT_OVER_IMAGE,
            preview=preview,
        )

    # -------------------------------------------------------------- non-text

    def evaluate_non_text(
        self,
        candidates: List[NonTextCandidate],
        frames: List[Frame],
        final_buffer: Optional[bytes] = None,
    ) -> List[NonTextResult]:
        results: List[NonTextResult] = []
        seen: Set[str] = set()
        self.frames = FrameCache()
        final_image = self.frames.get(FINAL_SECTION, final_buffer) if final_buffer else None

        for candidate in candidates:
            if candidate.type in OVERLAY_ICON_TYPES:
                continue
            key = f"{candidate.src}_{round(candidate.rect.x / 10)}_{round(candidate.rect.y / 10)}"
            if key in seen:
                continue
            seen.add(key)
            result = self.non_text_verdict(candidate)
            result.preview = self._non_text_preview(candidate, frames, final_image)
            if candidate.sticky_screenshot:
                result.sticky_preview = self._safe_png(candidate.sticky_screenshot)
            results.append(result)

        logger.info("Found %d non-text elements", len(results))
        return results

    @staticmethod
    def non_text_verdict(candidate: NonTextCandidate) -> NonTextResult:
        fg = candidate.estimated_color
        bg = candidate.background
        result = NonTextResult(candidate=candidate, status=Status.WARNING, note="")
        if fg and isinstance(bg, Solid):
            ratio = contrast_ratio_hex(fg, bg.hex)
            if ratio is None:
                result.note = "Could not compute contrast"
            else:
                result.contrast_ratio = ratio
                result.status = Status.PASS if ratio >= NON_TEXT_REQUIRED else Status.FAIL
                result.enhanced_status = Status.PASS if ratio >= NON_TEXT_ENHANCED else Status.FAIL
                if result.status == Status.PASS:
                    result.note = "Meets WCAG 1.4.11 (3:1)"
                else:
                    result.note = f"WCAG 1.4.11 violation: {ratio:.2f}:1 < 3.0:1"
        elif is_image(bg):
            result.note = "Element over image background, manual review needed"
        elif fg:
            result.note = "Could not compute contrast"
        elif candidate.css_filter:
            result.note = "Has CSS filter but color could not be computed"
        elif candidate.type == "partner-logo":
            result.note = "Raster image, contrast depends on image content"
        else:
            result.note = "Icon color could not be determined"

        if fg and candidate.sticky_bg_color:
            sticky = contrast_ratio_hex(fg, candidate.sticky_bg_color)
            if sticky is not None:
                result.sticky_ratio = sticky
                result.sticky_status = Status.PASS if sticky >= NON_TEXT_REQUIRED else Status.FAIL
                result.sticky_enhanced_status = Status.PASS if sticky >= NON_TEXT_ENHANCED else Status.FAIL
        return result

    def _safe_png(self, buffer: bytes) -> Optional[str]:
        try:
            return upscaled_png(buffer, self.settings.min_preview_px)
        except Exception as exc:
            logger.debug("could not encode element capture: %s", exc)
            return None

    def _non_text_preview(self, candidate: NonTextCandidate, frames: List[Frame], final_image) -> Optional[str]:
        if candidate.element_screenshot:
            preview = self._safe_png(candidate.element_screenshot)
            if preview:
                return preview
        frame = next((f for f in frames if f.index == candidate.capture_index), None)
        if frame is None:
            logger.debug("no frame %d for %s", candidate.capture_index, candidate.label)
            return None
        image = self.frames.get(frame.index, frame.buffer)
        if image is None:
            return None
        viewport = (self.settings.viewport_width, self.settings.viewport_height)
        crop, blank, pad = non_text_crop(image, candidate.rect, viewport)
        if blank and final_image is not None:
            fallback = final_section_crop(final_image, candidate.rect, pad, viewport)
            if fallback is not None:
                return to_data_url(fallback, "PNG")
        if crop is not None and crop.width > 5 and crop.height > 5:
            return to_data_url(crop, "PNG")
        return None


# ---------------------------------------------------------------- rankings

def rank_backgrounds(bg_counts: Dict[str, int], total_score: int, top: int = 8) -> List[Dict[str, Any]]:
    total = total_score or 1
    ranked = sorted(bg_counts.items(), key=lambda kv: kv[1], reverse=True)[:top]
    return [
        {"color": color, "surface": score, "percentage": round(score / total * 100, 2), "type": "color"}
        for color, score in ranked
    ]


def rank_images(image_counts: Dict[str, int], top: int = 15) -> List[Dict[str, Any]]:
    return [{"src": src, "type": "image", "areaPercent": "N/A"} for src in list(image_counts)[:top]]


def rank_text_colors(evaluation: TextEvaluation, top: int = 5) -> List[Dict[str, Any]]:
    ranked = sorted(evaluation.color_scores.items(), key=lambda kv: kv[1], reverse=True)[:top]
    return [
        {"color": color, "score": score, "elements": list(evaluation.color_elements.get(color, []))}
        for color, score in ranked
    ]


def _weight_key(weight: str) -> float:
    try:
        return float(weight)
    except ValueError:
        return 0.0


def rank_fonts(evaluation: TextEvaluation) -> List[Dict[str, Any]]:
    ranked = sorted(evaluation.font_groups.items(), key=lambda kv: len(kv[1]), reverse=True)
    return [{"font": name, "weights": sorted(weights, key=_weight_key)} for name, weights in ranked]
