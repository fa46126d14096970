"""
Data model shared by the classifier, the capture loop and the report builder.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .colors import to_hex


# Wire tags used by the page script for non-solid backgrounds.
WIRE_IMAGE = "IMAGE"
WIRE_OCCLUDED = "OCCLUDED"
WIRE_TRANSPARENT = "TRANSPARENT"
IMAGE_WIRE_ALIASES = {"IMAGE", "IMAGE_STACKED", "IMAGE_COMPLEX", "IMAGE_CSS"}


class Strategy(str, Enum):
    STANDARD = "STANDARD"
    VERTICAL_SNAP = "VERTICAL_SNAP"
    HORIZONTAL_APP = "HORIZONTAL_APP"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Strategy":
        try:
            return cls(str(value))
        except ValueError:
            return cls.STANDARD


@dataclass(frozen=True)
class Solid:
    hex: str

    def to_wire(self) -> str:
        return self.hex


@dataclass(frozen=True)
class Image:
    def to_wire(self) -> str:
        return WIRE_IMAGE


@dataclass(frozen=True)
class Occluded:
    def to_wire(self) -> str:
        return WIRE_OCCLUDED


@dataclass(frozen=True)
class Transparent:
    def to_wire(self) -> str:
        return WIRE_TRANSPARENT


Background = Union[Solid, Image, Occluded, Transparent]

IMAGE = Image()
OCCLUDED = Occluded()
TRANSPARENT = Transparent()
WHITE = Solid("#FFFFFF")


def parse_background(value: Any) -> Optional[Background]:
    """Map a page-side wire tag (or CSS color) onto the ``Background`` union."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    upper = text.upper()
    if upper in IMAGE_WIRE_ALIASES:
        return IMAGE
    if upper == WIRE_OCCLUDED:
        return OCCLUDED
    if upper == WIRE_TRANSPARENT:
        return TRANSPARENT
    hex_value = to_hex(text)
    if hex_value is None:
        return TRANSPARENT
    return Solid(hex_value)


def is_image(bg: Optional[Background]) -> bool:
    return isinstance(bg, Image)


def is_solid(bg: Optional[Background], hex_value: Optional[str] = None) -> bool:
    if not isinstance(bg, Solid):
        return False
    return hex_value is None or bg.hex == hex_value


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Rect":
        data = data or {}
        return cls(
            x=float(data.get("x") or 0),
            y=float(data.get("y") or 0),
            width=float(data.get("width") or 0),
            height=float(data.get("height") or 0),
        )

    @property
    def center(self):
        return self.x + self.width / 2, self.y + self.height / 2

    def padded(self, pad: float) -> "Rect":
        return Rect(self.x - pad, self.y - pad, self.width + pad * 2, self.height + pad * 2)

    def to_dict(self) -> Dict[str, float]:
        return {
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "width": round(self.width, 2),
            "height": round(self.height, 2),
        }


@dataclass(frozen=True)
class Frame:
    index: int
    buffer: bytes
    offset_x: float = 0.0


@dataclass
class TextNode:
    text: str
    tag: str
    text_color: Optional[str]
    background: Background
    font_family: str
    font_weight: str
    font_size: str
    rect: Rect
    capture_index: int
    is_arrow_icon: bool = False
    is_in_final_section: bool = False
    is_static_behind_main: bool = False
    final_in_viewport: bool = False


NON_TEXT_TYPES = (
    "icon-bg-image",
    "social-icon",
    "partner-logo",
    "ui-control",
    "inline-svg-icon",
    "hamburger-icon",
)

OVERLAY_ICON_TYPES = ("inline-svg-icon", "hamburger-icon")


@dataclass
class NonTextCandidate:
    type: str
    label: str
    tag: str
    rect: Rect
    capture_index: int
    background: Background
    src: str = ""
    alt: str = ""
    css_filter: Optional[str] = None
    estimated_color: Optional[str] = None
    href: Optional[str] = None
    is_svg: bool = False
    element_screenshot: Optional[bytes] = None
    sticky_screenshot: Optional[bytes] = None
    sticky_bg_color: Optional[str] = None
    normal_bg_color: Optional[str] = None

    @property
    def dedupe_key(self) -> str:
        return f"{self.type}_{self.label.lower()}_{self.href or self.src or ''}"


@dataclass
class ScanChunkResult:
    bg_counts: Dict[str, int] = field(default_factory=dict)
    image_counts: Dict[str, int] = field(default_factory=dict)
    text_nodes: List[TextNode] = field(default_factory=list)
    non_text: List[NonTextCandidate] = field(default_factory=list)
    total_score: int = 0
    visual_signature: str = ""
    has_final_section: bool = False
    has_static_final_behind_main: bool = False
    debug_log: List[str] = field(default_factory=list)


class Status(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARNING = "WARNING"


@dataclass
class ContrastVerdict:
    aa: Status
    aaa: Status
    ratio: Optional[float]
    aa_required: float
    aaa_required: float
    note: str = ""

    @property
    def passes(self) -> bool:
        return self.aa == Status.PASS and self.aaa == Status.PASS


@dataclass
class ContrastIssue:
    text: str
    text_color: str
    background: Background
    contrast_used: str
    aa_required: str
    aa_status: Status
    aaa_required: str
    aaa_status: Status
    note: str
    preview: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "text": self.text,
            "textColor": self.text_color,
            "effectiveBg": self.background.to_wire(),
            "contrastUsed": self.contrast_used,
            "AA": {"required": self.aa_required, "status": self.aa_status.value},
            "AAA": {"required": self.aaa_required, "status": self.aaa_status.value},
            "note": self.note,
        }
        if self.preview:
            data["previewBase64"] = self.preview
        return data


@dataclass
class NonTextResult:
    candidate: NonTextCandidate
    status: Status
    note: str
    contrast_ratio: Optional[float] = None
    enhanced_status: Optional[Status] = None
    preview: Optional[str] = None
    sticky_preview: Optional[str] = None
    sticky_ratio: Optional[float] = None
    sticky_status: Optional[Status] = None
    sticky_enhanced_status: Optional[Status] = None

    def to_dict(self) -> Dict[str, Any]:
        c = self.candidate
        data: Dict[str, Any] = {
            "type": c.type,
            "label": c.label,
            "tagName": c.tag,
            "src": c.src,
            "alt": c.alt,
            "bgColor": c.background.to_wire(),
            "wcag1411": {"required": "3.0:1", "status": self.status.value},
            "rect": c.rect.to_dict(),
            "note": self.note,
        }
        optional = {
            "cssFilter": c.css_filter,
            "estimatedColor": c.estimated_color,
            "href": c.href,
            "contrastRatio": None if self.contrast_ratio is None else f"{self.contrast_ratio:.2f}",
            "previewBase64": self.preview,
            "stickyPreviewBase64": self.sticky_preview,
            "stickyBgColor": c.sticky_bg_color,
            "normalBgColor": c.normal_bg_color,
            "stickyContrastRatio": None if self.sticky_ratio is None else f"{self.sticky_ratio:.2f}",
        }
        data.update({k: v for k, v in optional.items() if v})
        if self.enhanced_status is not None:
            data["enhanced"] = {"required": "4.5:1", "status": self.enhanced_status.value}
        if self.sticky_status is not None:
            data["stickyWcag1411"] = {"required": "3.0:1", "status": self.sticky_status.value}
        if self.sticky_enhanced_status is not None:
            data["stickyEnhanced"] = {"required": "4.5:1", "status": self.sticky_enhanced_status.value}
        return data


@dataclass
class AnalyzeOptions:
    keep_cookies: bool = False
    prefers_color_scheme: str = "light"
    debug_dir: Optional[str] = None


@dataclass
class AnalysisReport:
    url: str
    backgrounds: List[Dict[str, Any]] = field(default_factory=list)
    images: List[Dict[str, Any]] = field(default_factory=list)
    colors: List[Dict[str, Any]] = field(default_factory=list)
    fonts: List[Dict[str, Any]] = field(default_factory=list)
    total_text_nodes: int = 0
    contrast_issues: List[ContrastIssue] = field(default_factory=list)
    surfaced_issues: int = 10
    retained_issues: int = 50
    non_text: List[NonTextResult] = field(default_factory=list)
    site_logo: Optional[Dict[str, Any]] = None
    top_images: List[Dict[str, Any]] = field(default_factory=list)
    strategy: Strategy = Strategy.STANDARD
    frames_captured: int = 0
    limits: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        issues = [issue.to_dict() for issue in self.contrast_issues]
        data = {
            "url": self.url,
            "strategy": self.strategy.value,
            "framesCaptured": self.frames_captured,
            "backgrounds": self.backgrounds,
            "images": self.images,
            "colors": self.colors,
            "textColors": self.colors,
            "fonts": self.fonts,
            "accessibility": {
                "summary": {
                    "totalTextNodes": self.total_text_nodes,
                    "issuesAA": sum(1 for i in self.contrast_issues if i.aa_status == Status.FAIL),
                    "issuesAAA": sum(1 for i in self.contrast_issues if i.aaa_status == Status.FAIL),
                },
                "contrastIssues": issues[: self.retained_issues],
                "topIssues": issues[: self.surfaced_issues],
            },
            "nonTextElements": [r.to_dict() for r in self.non_text],
            "siteLogo": self.site_logo,
            "topImages": self.top_images,
            "notes": self.limits,
        }
        if self.error:
            data["error"] = self.error
        return data
