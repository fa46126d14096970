import pytest

from contrast_scan.brand import capture_site_logo, collect_top_images, fit_to_viewport
from contrast_scan.config import ScanSettings
from contrast_scan.models import Strategy

from conftest import FakeBridge, FakePage


def test_fit_to_viewport():
    assert fit_to_viewport(4000, 2000, 1920, 1080) == (1920, 960)
    assert fit_to_viewport(300, 200, 1920, 1080) == (300, 200)
    assert fit_to_viewport(0, 0, 1920, 1080) == (800, 600)


@pytest.mark.asyncio
async def test_img_logo_is_clipped_with_padding():
    page = FakePage()
    bridge = FakeBridge({"findLogo": {"kind": "img", "src": "https://x.test/logo.png", "x": 2, "y": 10,
                                      "width": 120, "height": 40}})
    logo = await capture_site_logo(page, bridge, Strategy.STANDARD, ScanSettings())
    assert logo["base64"].startswith("data:image/png;base64,")
    assert (logo["width"], logo["height"]) == (120, 40)
    assert page.screenshots[-1]["clip"] == {"x": 0.0, "y": 4.0, "width": 132.0, "height": 52.0}
    assert bridge.called("scrollTo") == [{"x": 0, "y": 0}]


@pytest.mark.asyncio
async def test_light_svg_logo_renders_on_dark_background():
    page = FakePage()
    bridge = FakeBridge({
        "findLogo": {"kind": "svg", "src": "data:image/svg+xml;base64,AAA", "fill": "#ffffff",
                     "x": 0, "y": 0, "width": 100, "height": 30},
        "mountIsolated": {"width": 112, "height": 42},
    })
    logo = await capture_site_logo(page, bridge, Strategy.HORIZONTAL_APP, ScanSettings())
    assert bridge.called("mountIsolated")[0]["background"] == "#333"
    assert bridge.called("unmountIsolated") == [{"id": "__logo_temp"}]
    assert bridge.called("scrollTo") == []
    assert logo["width"] == 100


@pytest.mark.asyncio
async def test_text_logo_reports_content_size():
    bridge = FakeBridge({
        "findLogo": {"kind": "text-logo", "selector": ".brand", "x": 0, "y": 0, "width": 90, "height": 20},
        "cloneTextLogo": {"width": 102, "height": 32},
    })
    logo = await capture_site_logo(FakePage(), bridge, Strategy.STANDARD, ScanSettings())
    assert (logo["width"], logo["height"]) == (90, 20)
    assert bridge.called("cloneTextLogo")[0]["selector"] == ".brand"


@pytest.mark.asyncio
async def test_missing_or_offscreen_logo():
    assert await capture_site_logo(FakePage(), FakeBridge(), Strategy.STANDARD, ScanSettings()) is None
    bridge = FakeBridge({"findLogo": {"kind": "img", "x": 50, "y": 5000, "width": 100, "height": 40}})
    assert await capture_site_logo(FakePage(), bridge, Strategy.STANDARD, ScanSettings()) is None


@pytest.mark.asyncio
async def test_top_images_skip_unloaded_and_restore_consent():
    page = FakePage()
    loaded = iter([True, False])
    bridge = FakeBridge({
        "contentImages": [
            {"src": "https://x.test/a.jpg", "alt": "A", "naturalWidth": 400, "naturalHeight": 300},
            {"src": "https://x.test/b.jpg", "alt": "B", "naturalWidth": 400, "naturalHeight": 300},
        ],
        "mountIsolated": {"width": 400, "height": 300},
        "isolatedReady": lambda id: next(loaded),
    })
    images = await collect_top_images(page, bridge, ScanSettings(max_content_images=4))
    assert [img["alt"] for img in images] == ["A"]
    assert images[0]["width"] == 400
    assert bridge.called("contentImages") == [{"limit": 4}]
    assert len(bridge.called("unmountIsolated")) == 2
    assert bridge.calls[0][0] == "hideConsent"
    assert bridge.calls[-1][0] == "restoreConsent"
