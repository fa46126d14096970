"""
Selector heuristics for specific page patterns.

The page script never hardcodes site ids or classes; it receives the merged
``SiteRules`` payload as data. A new site pattern is one more ``SiteRule``
appended to the list, each key's selectors are concatenated in rule order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class SiteRule:
    name: str
    selectors: Dict[str, List[str]] = field(default_factory=dict)
    words: Dict[str, List[str]] = field(default_factory=dict)


GENERIC = SiteRule(
    name="generic",
    selectors={
        "skipContainers": ["[pnl]", "#booking", "#menu", "#mobile"],
        "skipChrome": ["#scrollbar", "header", "nav"],
        "scrollContainer": ["#scroller", "[data-scroll-container]", ".scroll-container"],
        "translateTargets": ["#main", "#scroller > main", "[data-scroll-container]", "main"],
        "snapMarkers": [".swiper-wrapper", ".fp-section", "[data-scroll-container]", ".snap-container"],
        "swiper": [".swiper-container", ".swiper", ".swiper-wrapper"],
        "mobileBars": ["#mobile", '[id="mobile"]', '[class*="mobile-bar"]', '[class*="mobile-nav"]'],
        "popups": ["#popup", ".popup", '[class*="newsletter"]', '[id*="newsletter"]'],
        "overlayLabels": ["section p", "section a", "section span", "section button"],
        "hamburger": [
            ".hamburger",
            ".hamburger-container",
            '[class*="hamburger"]',
            '[class*="nav-toggle"]',
            "button.menu-toggle",
        ],
        "brandSvg": ["header svg", ".logo svg", "nav svg", ".navbar-brand svg"],
        "partnerLists": [".logos", ".partners", "footer ul", "footer"],
        "logoImages": [
            "header .logo img",
            "header .brand img",
            "#logo img",
            ".logo:not(.logos) img",
            "a.logo img",
            "header a:first-child img",
            "nav .logo img",
            'header img[alt*="logo" i]',
            "header img:first-of-type",
            ".navbar-brand img",
        ],
        "logoSvgs": [
            "header .logo a svg",
            "header .logo svg",
            ".logo a svg",
            "#logo svg",
            "header svg:first-of-type",
            "nav .logo svg",
            ".navbar-brand svg",
            "a.logo svg",
        ],
        "logoBackgrounds": ["header a.logo", "a.logo", ".logo a", "#logo a", "header .logo"],
        "contentImageSkip": ["[pnl]", "#booking", "#menu", "#mobile", ".pnl", ".swiper-slide-duplicate"],
        "stickyMarkers": ["[data-sticky]"],
    },
    words={
        "dismissKeywords": ["ENTER", "SKIP", "EXPLORE", "CLOSE", "Enter", "Skip", "ACCEPT", "Accept", "AGREE", "Agree"],
        "uiControlClassHints": ["season", "toggle"],
        "stickyClasses": ["sticky", "in", "scrolled"],
        "nonTrivialStopTags": ["main", "body", "html"],
        "iconFonts": ["icon", "icomoon", "awesome"],
        "contentImageExcludes": [
            "icon", "logo", "pixel", "tracking", "1x1", "spacer", "favicon", "facebook.", "tr?", ".svg",
        ],
    },
)

CONSENT_PLATFORMS = SiteRule(
    name="consent-platforms",
    selectors={
        "consentDialog": [
            "#CybotCookiebotDialog",
            '[id*="onetrust" i][role="dialog"]',
            '[id*="usercentrics" i]',
            '[id*="cookie" i][role="dialog"]',
            '[id*="consent" i][role="dialog"]',
        ],
        "consentContainer": [
            "#CybotCookiebotDialog",
            '[id*="onetrust" i]',
            '[id*="usercentrics" i]',
            '[id*="cookie" i][role="dialog"]',
            '[id*="consent" i][role="dialog"]',
        ],
        "cookieModal": [
            "#CybotCookiebotDialog",
            '[id*="CybotCookiebotDialog" i]',
            '[class*="CybotCookiebot" i]',
            '[id*="cookiebot" i]',
            '[class*="cookiebot" i]',
        ],
        "consentSliders": [
            "#CybotCookiebotDialog .CybotCookiebotDialogBodyLevelButtonSlider",
            '[id*="cookiebot" i] .CybotCookiebotDialogBodyLevelButtonSlider',
        ],
        "consentSliderWrapper": [".CybotCookiebotDialogBodyLevelButtonWrapper"],
        "consentClickRemove": [
            "#onetrust-accept-btn-handler",
            ".cc-btn",
            '[class*="cookie"]',
            "#usercentrics-root",
            '[id*="popup"]',
            '[class*="consent"]',
        ],
        "consentRemove": [
            '[id*="cookie" i]', '[class*="cookie" i]',
            '[id*="consent" i]', '[class*="consent" i]',
            '[id*="onetrust" i]', '[class*="onetrust" i]',
            '[id*="usercentrics" i]', '[class*="usercentrics" i]',
            '[id*="privacy" i]', '[class*="privacy" i]',
            '[aria-label*="cookie" i]', '[aria-label*="consent" i]',
        ],
        "consentHide": [
            '[id*="cookie" i]', '[class*="cookie" i]',
            '[id*="consent" i]', '[class*="consent" i]',
            '[id*="onetrust" i]', '[class*="onetrust" i]',
            '[id*="usercentrics" i]', '[class*="usercentrics" i]',
            '[id*="cookiebot" i]', '[class*="cookiebot" i]',
            'iframe[src*="consent" i]', 'iframe[src*="cookie" i]',
        ],
    },
    words={
        "modalWords": ["cookie", "consent", "cybot", "cookiebot", "onetrust", "usercentrics"],
        "bannerWords": ["cookie", "consent", "privacy", "gdpr", "onetrust", "usercentrics", "tracking"],
    },
)

# Transformed #main layer scrolled horizontally with a static #final section
# rendered behind it, plus a sticky top #bar whose booking links stay in scope.
PERSISTENT_FINAL_LAYER = SiteRule(
    name="persistent-final-layer",
    selectors={
        "finalSection": ["#final"],
        "mainLayer": ["#main"],
        "topBar": ["#bar"],
        "topBarTargets": ["a.book", "a.info"],
        "finalHide": ["#bar", "#mobile", "#scrollbar", ".cursor"],
        "logoImages": ["#bar .logo img", "#bar a.logo img"],
        "logoBackgrounds": ["#bar a.logo", "#bar .logo"],
    },
    words={
        "nonTrivialStopIds": ["scroller", "main"],
        "stickyIds": ["bar"],
    },
)

# Footer links whose node-mode resolution is unreliable; fall back to area mode.
FOOTER_AREA_FALLBACK = SiteRule(
    name="footer-area-fallback",
    selectors={"footerFallback": [".footer-desktop", ".footer-desktop-home", ".footer-item"]},
)

DEFAULT_RULES: List[SiteRule] = [GENERIC, CONSENT_PLATFORMS, PERSISTENT_FINAL_LAYER, FOOTER_AREA_FALLBACK]


class SiteRules:
    """Ordered rule list merged into one payload for the page script."""

    def __init__(self, rules: Optional[Iterable[SiteRule]] = None):
        self.rules: List[SiteRule] = list(DEFAULT_RULES if rules is None else rules)

    def add(self, rule: SiteRule) -> "SiteRules":
        self.rules.append(rule)
        return self

    def names(self) -> List[str]:
        return [r.name for r in self.rules]

    def selector_list(self, key: str) -> List[str]:
        merged: List[str] = []
        for rule in self.rules:
            for sel in rule.selectors.get(key, []):
                if sel not in merged:
                    merged.append(sel)
        return merged

    def word_list(self, key: str) -> List[str]:
        merged: List[str] = []
        for rule in self.rules:
            for word in rule.words.get(key, []):
                if word not in merged:
                    merged.append(word)
        return merged

    def selector(self, key: str) -> str:
        return ", ".join(self.selector_list(key))

    def to_payload(self) -> Dict[str, Any]:
        selector_keys: List[str] = []
        word_keys: List[str] = []
        for rule in self.rules:
            selector_keys.extend(k for k in rule.selectors if k not in selector_keys)
            word_keys.extend(k for k in rule.words if k not in word_keys)
        payload: Dict[str, Any] = {k: self.selector(k) for k in selector_keys}
        payload["lists"] = {k: self.selector_list(k) for k in selector_keys}
        payload["words"] = {k: self.word_list(k) for k in word_keys}
        return payload
