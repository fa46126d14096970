import pytest

from contrast_scan.models import IMAGE, TRANSPARENT, NonTextCandidate, Rect, Solid
from contrast_scan.nontext import NonTextPipeline, clamp_clip, render_size, safe_filename

from conftest import FakeBridge, FakePage


def candidate(type_="social-icon", label="Facebook", **extra):
    values = dict(type=type_, label=label, tag="IMG", rect=Rect(20, 20, 24, 24), capture_index=1,
                  background=TRANSPARENT)
    values.update(extra)
    return NonTextCandidate(**values)


def test_render_size_reaches_minimum_footprint():
    assert render_size(Rect(0, 0, 24, 20), 60) == (72, 60)
    assert render_size(Rect(0, 0, 80, 70), 60) == (80, 70)


def test_clamp_clip():
    assert clamp_clip(Rect(-4, 90, 30, 30), {"width": 200, "height": 100}) == {"x": 0, "y": 90, "width": 30, "height": 10}


def test_safe_filename():
    assert safe_filename("Logo / Home?") == "Logo___Home_"


@pytest.mark.asyncio
async def test_merge_dedupes_by_type_label_and_target(settings):
    pipeline = NonTextPipeline(FakePage(), FakeBridge(), settings)
    merged = []
    first = [candidate(src="/fb.png"), candidate(src="/fb.png", rect=Rect(90, 20, 24, 24))]
    assert await pipeline.merge(first, merged) == 1
    assert await pipeline.merge([candidate(src="/fb.png"), candidate(label="Twitter", src="/tw.png")], merged) == 1
    assert [c.label for c in merged] == ["Facebook", "Twitter"]


@pytest.mark.asyncio
async def test_overlay_icon_uses_fresh_rect_and_direct_clip(settings):
    page = FakePage()
    bridge = FakeBridge({"refreshRect": {"x": 30, "y": 30, "width": 20, "height": 20}})
    svg = candidate("inline-svg-icon", label="[SVG Logo]", background=IMAGE)
    await NonTextPipeline(page, bridge, settings).capture(svg)
    assert svg.element_screenshot
    assert svg.rect == Rect(30, 30, 20, 20)
    assert page.screenshots[-1]["clip"] == {"x": 10, "y": 10, "width": 60, "height": 60}
    assert bridge.called("refreshRect")[0]["type"] == "inline-svg-icon"


@pytest.mark.asyncio
async def test_source_asset_rendered_over_background_and_sticky_variant(settings):
    page = FakePage()
    bridge = FakeBridge({
        "candidateBackground": {"bg": "rgb(0, 0, 0)", "sticky": {"normalBg": "rgb(0, 0, 0)", "stickyBg": "#ffffff"}},
        "mountIsolated": {"width": 92, "height": 92},
        "isolatedReady": True,
    })
    item = candidate(src="https://x.test/img/fb.svg?v=1", css_filter="invert(1)")
    await NonTextPipeline(page, bridge, settings).capture(item)
    assert item.background == Solid("#000000")
    assert item.sticky_bg_color == "#FFFFFF"
    assert item.normal_bg_color == "#000000"
    assert item.element_screenshot and item.sticky_screenshot
    mounts = bridge.called("mountIsolated")
    assert [m["background"] for m in mounts] == ["#000000", "#FFFFFF"]
    assert mounts[0]["renderWidth"] == 72 and mounts[0]["width"] == 92
    assert mounts[0]["filter"] == "invert(1)"
    assert bridge.called("candidateBackground")[0]["src"] == "fb.svg?v=1"
    assert len(bridge.called("unmountIsolated")) == 2


@pytest.mark.asyncio
async def test_white_container_keeps_unresolved_background(settings):
    bridge = FakeBridge({"candidateBackground": {"bg": "#ffffff"}, "mountIsolated": None})
    item = candidate(src="/icon.png")
    await NonTextPipeline(FakePage(), bridge, settings).capture(item)
    assert item.background == TRANSPARENT
    assert item.element_screenshot is None


@pytest.mark.asyncio
async def test_debug_crops_are_written(settings, tmp_path):
    bridge = FakeBridge({"refreshRect": None})
    icon = candidate("hamburger-icon", label="Menu", background=IMAGE)
    await NonTextPipeline(FakePage(), bridge, settings, debug_dir=tmp_path).capture(icon)
    assert (tmp_path / "nontext_crops" / "Menu_ELEM.png").exists()
