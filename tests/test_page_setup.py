import pytest

from contrast_scan.config import ScanSettings
from contrast_scan.models import Strategy
from contrast_scan.page_setup import (
    advance_horizontal,
    advance_page,
    advance_snap,
    calibrated_delta,
    detect_strategy,
    dismiss_overlays,
    force_render_content,
    read_translate_x,
)

from conftest import FakeBridge, FakePage


@pytest.mark.parametrize(
    "moved,expected",
    [
        (10, None),    # ignored probe, handled by the weak fallback
        (700, None),   # already at the target
        (900, None),
        (100, 72),     # 600px left at 8.33px per delta unit
        (21, 220),     # clamped to the maximum step
        (690, 8),      # clamped to the minimum step
    ],
)
def test_calibrated_delta(moved, expected):
    assert calibrated_delta(moved, ScanSettings()) == expected


class TranslateSequence:
    def __init__(self, values):
        self.values = list(values)

    def __call__(self):
        return self.values.pop(0) if len(self.values) > 1 else self.values[0]


@pytest.mark.asyncio
async def test_weak_wheel_response_uses_fallback_delta():
    page = FakePage()
    bridge = FakeBridge({"readTranslateX": TranslateSequence([0, -5, -130])})
    assert await advance_horizontal(page, bridge, ScanSettings()) is False
    assert page.mouse.wheels == [(0, 12), (0, 120)]


@pytest.mark.asyncio
async def test_calibrated_second_wheel_step():
    page = FakePage()
    bridge = FakeBridge({"readTranslateX": TranslateSequence([0, -100, -700])})
    await advance_horizontal(page, bridge, ScanSettings())
    assert page.mouse.wheels == [(0, 12), (0, 72)]


@pytest.mark.asyncio
async def test_snap_advance_is_bounded():
    page = FakePage()
    bridge = FakeBridge()
    assert await advance_snap(page, bridge, ScanSettings(), 3) is False
    assert await advance_snap(page, bridge, ScanSettings(), 21) is True
    assert page.keyboard.pressed == ["PageDown", "PageDown"]
    assert len(bridge.called("snapNext")) == 2


@pytest.mark.asyncio
async def test_standard_advance_scrolls_one_viewport():
    page = FakePage()
    bridge = FakeBridge({"isAtEnd": True})
    settings = ScanSettings(viewport_height=900)
    assert await advance_page(page, bridge, Strategy.STANDARD, settings, 1) is True
    assert bridge.called("scrollBy") == [{"dy": 900}]
    assert bridge.called("isAtEnd") == [{"margin": 50}]


@pytest.mark.asyncio
async def test_unknown_strategy_defaults_to_standard():
    assert await detect_strategy(FakeBridge({"detectStrategy": "SOMETHING"})) == Strategy.STANDARD
    assert await detect_strategy(FakeBridge({"detectStrategy": None})) == Strategy.STANDARD
    assert await detect_strategy(FakeBridge({"detectStrategy": "VERTICAL_SNAP"})) == Strategy.VERTICAL_SNAP


@pytest.mark.asyncio
async def test_missing_page_data_degrades_to_defaults():
    bridge = FakeBridge()
    assert await read_translate_x(bridge) == 0.0
    assert await dismiss_overlays(bridge) == 0
    page = FakePage()
    await force_render_content(page, bridge, ScanSettings(render_settle_ms=5))
    assert page.waits == [5]
