"""
Effective-background resolution for text nodes.

The page script reports the raw hit-test tag for a text node plus the
structural evidence around it (``BackgroundProbe``). ``BackgroundResolver``
turns that into a final ``Background`` with two ordered rule lists:

* hit rules: the first rule returning a result wins;
* refine rules: applied in sequence to the chosen result.

A rule returning ``None`` passes; ``UNRESOLVED`` means "drop the node".
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from .models import (
    IMAGE,
    Background,
    Image,
    Occluded,
    Solid,
    Strategy,
    Transparent,
    WHITE,
    is_image,
    is_solid,
    parse_background,
)


class _Unresolved:
    def __repr__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = _Unresolved()

RuleResult = Union[Background, _Unresolved, None]


@dataclass
class BackgroundProbe:
    hit: Optional[Background]
    in_cookie_modal: bool = False
    opaque_modal: bool = False
    modal_color: Optional[Background] = None
    full_bleed: bool = False
    pseudo_overlay: bool = False
    viewport_visible: bool = False
    overlay_like: bool = False
    media_siblings: bool = False
    overlay_like_near: bool = False
    media_overlap: bool = False
    structural_image: bool = False
    structural_color: Optional[Background] = None
    area_hit: Optional[Background] = None

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> "BackgroundProbe":
        data = data or {}
        return cls(
            hit=parse_background(data.get("hit")),
            in_cookie_modal=bool(data.get("inCookieModal")),
            opaque_modal=bool(data.get("opaqueModal")),
            modal_color=parse_background(data.get("modalColor")),
            full_bleed=bool(data.get("fullBleed")),
            pseudo_overlay=bool(data.get("pseudoOverlay")),
            viewport_visible=bool(data.get("viewportVisible")),
            overlay_like=bool(data.get("overlayLike")),
            media_siblings=bool(data.get("mediaSiblings")),
            overlay_like_near=bool(data.get("overlayLikeNear")),
            media_overlap=bool(data.get("mediaOverlap")),
            structural_image=bool(data.get("structuralImage")),
            structural_color=parse_background(data.get("structuralColor")),
            area_hit=parse_background(data.get("areaHit")),
        )

    def horizontal_overlay(self) -> bool:
        """Text floating over media in a horizontally scrolled layout."""
        return (
            (self.full_bleed or self.pseudo_overlay)
            and self.viewport_visible
            and self.overlay_like
            and self.media_siblings
        )


HitRule = Callable[[BackgroundProbe, Strategy], RuleResult]
RefineRule = Callable[[Optional[Background], BackgroundProbe, Strategy], Optional[Background]]


def modal_surface(probe: BackgroundProbe, strategy: Strategy) -> RuleResult:
    # Text in an opaque dialog sits on the dialog surface, not on what the
    # hit test saw through a transparent wrapper.
    if not (probe.in_cookie_modal or probe.opaque_modal) or probe.modal_color is None:
        return None
    bg = probe.hit
    if bg is None or isinstance(bg, (Image, Transparent)) or is_solid(bg, WHITE.hex):
        return probe.modal_color
    return None


def occluded_hit(probe: BackgroundProbe, strategy: Strategy) -> RuleResult:
    if not isinstance(probe.hit, Occluded):
        return None
    if strategy == Strategy.HORIZONTAL_APP and probe.horizontal_overlay():
        return IMAGE
    return UNRESOLVED


def horizontal_solid_promotion(probe: BackgroundProbe, strategy: Strategy) -> RuleResult:
    if strategy != Strategy.HORIZONTAL_APP or not isinstance(probe.hit, Solid):
        return None
    if probe.horizontal_overlay():
        return IMAGE
    return None


def structural_fallback(probe: BackgroundProbe, strategy: Strategy) -> RuleResult:
    bg = probe.hit
    weak_white = is_solid(bg, WHITE.hex) and strategy != Strategy.HORIZONTAL_APP
    if not (isinstance(bg, Transparent) or weak_white):
        return None
    structural = probe.structural_color
    if probe.opaque_modal and structural is not None and not is_image(structural):
        return structural
    if probe.structural_image or is_image(structural):
        return IMAGE
    if isinstance(bg, Transparent):
        return structural if structural is not None else UNRESOLVED
    return None


def area_fallback(current: Optional[Background], probe: BackgroundProbe, strategy: Strategy) -> Optional[Background]:
    if current is None and probe.area_hit is not None and not isinstance(probe.area_hit, Transparent):
        return probe.area_hit
    return current


def full_bleed_promotion(current: Optional[Background], probe: BackgroundProbe, strategy: Strategy) -> Optional[Background]:
    if probe.full_bleed:
        return IMAGE
    return current


def horizontal_image_guardrail(current: Optional[Background], probe: BackgroundProbe, strategy: Strategy) -> Optional[Background]:
    if strategy != Strategy.HORIZONTAL_APP or not is_image(current):
        return current
    if probe.full_bleed or (probe.overlay_like_near and probe.media_overlap):
        return current
    return None


def drop_transparent(current: Optional[Background], probe: BackgroundProbe, strategy: Strategy) -> Optional[Background]:
    if isinstance(current, (Transparent, Occluded)):
        return None
    return current


DEFAULT_HIT_RULES: List[HitRule] = [
    modal_surface,
    occluded_hit,
    horizontal_solid_promotion,
    structural_fallback,
]

DEFAULT_REFINE_RULES: List[RefineRule] = [
    area_fallback,
    full_bleed_promotion,
    horizontal_image_guardrail,
    drop_transparent,
]


class BackgroundResolver:
    def __init__(
        self,
        strategy: Strategy = Strategy.STANDARD,
        hit_rules: Optional[List[HitRule]] = None,
        refine_rules: Optional[List[RefineRule]] = None,
    ):
        self.strategy = strategy
        self.hit_rules = list(DEFAULT_HIT_RULES if hit_rules is None else hit_rules)
        self.refine_rules = list(DEFAULT_REFINE_RULES if refine_rules is None else refine_rules)

    def resolve_hit(self, probe: BackgroundProbe) -> Optional[Background]:
        """First matching hit rule, or the raw hit when none applies."""
        for rule in self.hit_rules:
            result = rule(probe, self.strategy)
            if result is UNRESOLVED:
                return None
            if result is not None:
                return result
        return probe.hit

    def resolve(self, probe: BackgroundProbe) -> Optional[Background]:
        """Final background for a text node; ``None`` drops the node.

        Never returns ``Transparent`` or ``Occluded``.
        """
        current = self.resolve_hit(probe)
        for rule in self.refine_rules:
            current = rule(current, probe, self.strategy)
        return current

    def resolve_overlay_label(self, full_bleed: bool, media_overlap: bool, probe: Optional[BackgroundProbe]) -> Optional[Background]:
        """Labels found by the horizontal fallback pass count only over imagery."""
        if full_bleed:
            return IMAGE
        if not media_overlap or probe is None:
            return None
        return IMAGE if is_image(self.resolve_hit(probe)) else None

    @staticmethod
    def resolve_arrow(area_hit: Optional[Background]) -> Background:
        # Pseudo-element arrows are drawn over whatever is behind the link.
        if area_hit is None or isinstance(area_hit, (Transparent, Occluded)) or is_solid(area_hit, WHITE.hex):
            return IMAGE
        return area_hit
