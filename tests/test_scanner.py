import pytest

from contrast_scan.config import ScanSettings
from contrast_scan.models import IMAGE, TRANSPARENT, Solid, Strategy
from contrast_scan.scanner import ViewportScanner, merge_counts, normalize_label

from conftest import FakeBridge


def text_record(text, hit, **extra):
    record = {
        "text": text,
        "tagName": "P",
        "textColor": "#111111",
        "fontFamily": "Inter",
        "fontWeight": "400",
        "fontSize": "16px",
        "rect": {"x": 10, "y": 20, "width": 100, "height": 18},
        "captureIndex": 1,
        "evidence": {"hit": hit},
    }
    record.update(extra)
    return record


def make_scanner(strategy=Strategy.STANDARD, responses=None):
    return ViewportScanner(FakeBridge(responses), strategy, ScanSettings())


def test_solid_text_node_is_kept():
    chunk = make_scanner().parse({"textNodes": [text_record("Hello", "#FFFFFF")]})
    assert len(chunk.text_nodes) == 1
    node = chunk.text_nodes[0]
    assert node.background == Solid("#FFFFFF")
    assert node.rect.width == 100
    assert node.capture_index == 1


def test_unresolvable_background_drops_node():
    chunk = make_scanner().parse({"textNodes": [text_record("Lost", "TRANSPARENT")]})
    assert chunk.text_nodes == []


def test_malformed_record_is_skipped():
    chunk = make_scanner().parse(
        {"textNodes": [text_record("Broken", "#000000", rect="oops"), text_record("Fine", "#000000")]}
    )
    assert [n.text for n in chunk.text_nodes] == ["Fine"]


def test_fallback_labels_are_deduped_against_main_walk():
    payload = {
        "textNodes": [text_record("Discover more", "IMAGE")],
        "fallbackLabels": [
            {"text": "  discover   MORE ", "fullBleed": True, "rect": {"x": 1, "y": 1, "width": 50, "height": 10}},
            {"text": "Book now", "fullBleed": True, "rect": {"x": 1, "y": 1, "width": 50, "height": 10}},
            {"text": "Book now", "fullBleed": True, "rect": {"x": 1, "y": 1, "width": 50, "height": 10}},
            {"text": "Plain", "fullBleed": False, "mediaOverlap": False},
        ],
    }
    chunk = make_scanner(Strategy.STANDARD).parse(payload)
    texts = [n.text for n in chunk.text_nodes]
    assert texts == ["Discover more", "Book now"]
    assert chunk.text_nodes[1].background == IMAGE


def test_arrow_records_become_icon_nodes():
    chunk = make_scanner().parse({"arrows": [{"rect": {"x": 5, "y": 5, "width": 20, "height": 20}, "areaHit": None}]})
    arrow = chunk.text_nodes[0]
    assert arrow.is_arrow_icon
    assert arrow.text == "[Arrow Icon]"
    assert arrow.background == IMAGE
    assert arrow.font_size == "0px"


def test_non_text_backgrounds_are_never_null():
    payload = {
        "nonText": [
            {"type": "inline-svg-icon", "label": "Logo", "fillColor": "rgb(255, 255, 255)"},
            {"type": "social-icon", "label": "", "src": "/fb.png", "cssFilter": "invert(1)"},
            {"type": "partner-logo", "label": "Partner", "bgColor": "#000000"},
            {"label": "no type"},
        ]
    }
    candidates = make_scanner().parse(payload).non_text
    assert [c.type for c in candidates] == ["inline-svg-icon", "social-icon", "partner-logo"]
    svg, social, partner = candidates
    assert svg.background == IMAGE
    assert svg.estimated_color == "#FFFFFF"
    assert social.background == TRANSPARENT
    assert social.label == "social-icon"
    assert social.estimated_color == "#FFFFFF"
    assert partner.background == Solid("#000000")


def test_chunk_metadata():
    chunk = make_scanner().parse(
        {
            "bgCounts": {"#FFFFFF": 12},
            "imageCounts": {"hero.jpg": 3},
            "totalScore": 15,
            "signature": "IMG|Hello",
            "hasFinalSection": True,
            "debug": ["skip hidden"],
        }
    )
    assert chunk.bg_counts == {"#FFFFFF": 12}
    assert chunk.total_score == 15
    assert chunk.visual_signature == "IMG|Hello"
    assert chunk.has_final_section
    assert chunk.debug_log == ["skip hidden"]


@pytest.mark.asyncio
async def test_scan_returns_none_without_page_data():
    assert await make_scanner(responses={"scanChunk": None}).scan(1) is None


@pytest.mark.asyncio
async def test_scan_sends_classifier_parameters():
    scanner = make_scanner(Strategy.VERTICAL_SNAP, responses={"scanChunk": {"signature": "abc"}})
    chunk = await scanner.scan(3)
    args = scanner.bridge.called("scanChunk")[0]
    assert args["strategy"] == "VERTICAL_SNAP"
    assert args["loopIndex"] == 3
    assert args["gridStep"] == 150
    assert chunk.visual_signature == "abc"


def test_merge_counts_and_labels():
    target = {"a": 1}
    merge_counts(target, {"a": 2, "b": 1})
    assert target == {"a": 3, "b": 1}
    assert normalize_label("  Hello \n World ") == "hello world"
