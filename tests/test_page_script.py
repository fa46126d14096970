import pytest

from contrast_scan.page_script import (
    CONFIGURE,
    DISPATCH,
    FUNCTION_IDS,
    PAGE_SCRIPT,
    PAGE_SCRIPT_VERSION,
    PageBridge,
)
from contrast_scan.site_rules import SiteRule, SiteRules

from conftest import FakePage


class ScriptedPage(FakePage):
    """Answers dispatch requests like the installed page script would."""

    def __init__(self, results=None, installed=True):
        super().__init__()
        self.results = results or {}
        self.installed = installed
        self.installs = 0
        self.configured_with = None
        self.evaluate_handler = self.handle

    def handle(self, expression, arg):
        if expression == PAGE_SCRIPT:
            self.installs += 1
            return PAGE_SCRIPT_VERSION
        if expression == CONFIGURE:
            self.configured_with = arg
            self.installed = True
            return None
        if expression == DISPATCH:
            if not self.installed:
                return {"ok": False, "missing": True}
            value = self.results.get(arg["fn"])
            if isinstance(value, Exception):
                raise value
            if isinstance(value, dict) and "error" in value:
                return {"ok": False, "error": value["error"]}
            return {"ok": True, "result": value}
        raise AssertionError("unexpected expression")


def test_script_is_versioned_and_exposes_every_function():
    assert "__VERSION__" not in PAGE_SCRIPT
    assert f"'{PAGE_SCRIPT_VERSION}'" in PAGE_SCRIPT or f'"{PAGE_SCRIPT_VERSION}"' in PAGE_SCRIPT
    for fn_id in FUNCTION_IDS:
        assert fn_id in PAGE_SCRIPT


@pytest.mark.asyncio
async def test_call_returns_result():
    page = ScriptedPage({"isAtEnd": True})
    bridge = PageBridge(page)
    assert await bridge.call("isAtEnd", margin=50) is True
    expression, request = page.evaluations[-1]
    assert request == {"fn": "isAtEnd", "args": {"margin": 50}, "version": PAGE_SCRIPT_VERSION}


@pytest.mark.asyncio
async def test_missing_script_is_reinstalled_once():
    rules = SiteRules([SiteRule(name="only", selectors={"logo": [".brand"]})])
    page = ScriptedPage({"readTranslateX": -120}, installed=False)
    bridge = PageBridge(page, rules)
    assert await bridge.call("readTranslateX") == -120
    assert page.installs == 1
    assert page.configured_with["logo"] == ".brand"


@pytest.mark.asyncio
async def test_evaluation_error_degrades_to_none():
    bridge = PageBridge(ScriptedPage({"scanChunk": RuntimeError("Execution context was destroyed")}))
    assert await bridge.call("scanChunk") is None
    assert bridge.failures == {"scanChunk": 1}


@pytest.mark.asyncio
async def test_page_side_error_degrades_to_none():
    bridge = PageBridge(ScriptedPage({"findLogo": {"error": "TypeError: x is null"}}))
    assert await bridge.call("findLogo") is None
    assert bridge.failures == {"findLogo": 1}


@pytest.mark.asyncio
async def test_closed_page_returns_none_without_evaluating():
    page = ScriptedPage({"isAtEnd": True})
    page.closed = True
    assert await PageBridge(page).call("isAtEnd") is None
    assert page.evaluations == []


@pytest.mark.asyncio
async def test_unknown_function_is_a_programming_error():
    with pytest.raises(ValueError):
        await PageBridge(ScriptedPage()).call("eval")
