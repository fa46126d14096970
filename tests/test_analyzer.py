import asyncio
from contextlib import asynccontextmanager

import pytest

from contrast_scan import analyzer
from contrast_scan.analyzer import analyze, analyze_batch, clean_url, parse_url_list
from contrast_scan.config import ScanSettings
from contrast_scan.models import AnalysisReport, AnalyzeOptions, ContrastIssue, Solid, Status, Strategy
from contrast_scan.page_script import CONFIGURE, DISPATCH, PAGE_SCRIPT, PAGE_SCRIPT_VERSION
from contrast_scan.session import SessionLaunchError

from conftest import FakePage

SCAN_PAYLOAD = {
    "bgCounts": {"#FFFFFF": 8, "#222222": 2},
    "imageCounts": {},
    "totalScore": 10,
    "signature": "Welcome|Low co",
    "textNodes": [
        {
            "text": "Low contrast caption",
            "tagName": "P",
            "textColor": "#AAAAAA",
            "fontFamily": "Inter",
            "fontWeight": "400",
            "fontSize": "14px",
            "rect": {"x": 10, "y": 10, "width": 120, "height": 16},
            "captureIndex": 1,
            "evidence": {"hit": "#FFFFFF"},
        }
    ],
    "nonText": [
        {"type": "social-icon", "label": "Instagram", "src": "https://x.test/ig.svg", "fillColor": "#000000",
         "bgColor": "#FFFFFF", "rect": {"x": 150, "y": 40, "width": 24, "height": 24}, "captureIndex": 1}
    ],
}


class SitePage(FakePage):
    """A page whose installed script serves canned answers per function id."""

    def __init__(self, results, navigation_error=None):
        super().__init__(size=(200, 100))
        self.results = results
        self.navigation_error = navigation_error
        self.evaluate_handler = self.handle

    async def goto(self, url, wait_until=None, timeout=None):
        self.url = url
        if self.navigation_error:
            raise self.navigation_error

    def handle(self, expression, arg):
        if expression == PAGE_SCRIPT:
            return PAGE_SCRIPT_VERSION
        if expression == CONFIGURE:
            return True
        if expression == DISPATCH:
            value = self.results.get(arg["fn"])
            return {"ok": True, "result": value(arg["args"]) if callable(value) else value}
        raise AssertionError(expression)


class FakeSession:
    def __init__(self, page_factory=None, error=None):
        self.settings = ScanSettings(viewport_width=200, viewport_height=100)
        self.page_factory = page_factory
        self.error = error
        self.opened = 0

    @asynccontextmanager
    async def new_page(self, options=None):
        if self.error:
            raise self.error
        self.opened += 1
        yield self.page_factory()


def site_results():
    return {
        "detectStrategy": "STANDARD",
        "scanChunk": SCAN_PAYLOAD,
        "isAtEnd": True,
        "candidateBackground": {"bg": "#ffffff"},
        "mountIsolated": {"width": 92, "height": 92},
        "isolatedReady": True,
    }


def test_parse_url_list():
    raw = "https://a.test\nnot a url, http://b.test ,\n\n ftp://c.test,https://d.test/path"
    assert parse_url_list(raw) == ["https://a.test", "http://b.test", "https://d.test/path"]
    assert parse_url_list("") == []


def test_clean_url():
    assert clean_url("https://example.com/a?b=c") == "https___example_com_a_b_c"
    assert len(clean_url("https://" + "x" * 100)) == 50


@pytest.mark.asyncio
async def test_analyze_end_to_end(tmp_path):
    session = FakeSession(lambda: SitePage(site_results()))
    report = await analyze("https://site.test", AnalyzeOptions(debug_dir=str(tmp_path)), session)
    assert report.error is None
    assert report.strategy == Strategy.STANDARD
    assert report.frames_captured == 1
    assert report.total_text_nodes == 1

    data = report.to_dict()
    issue = data["accessibility"]["contrastIssues"][0]
    assert issue["text"] == "Low contrast caption"
    assert issue["AA"]["status"] == "FAIL"
    assert data["accessibility"]["summary"]["issuesAA"] == 1
    assert data["backgrounds"][0] == {"color": "#FFFFFF", "surface": 8, "percentage": 80.0, "type": "color"}
    assert data["textColors"] == data["colors"]
    assert data["nonTextElements"][0]["wcag1411"]["status"] == "PASS"
    assert data["siteLogo"] is None
    assert data["topImages"] == []
    assert (tmp_path / clean_url("https://site.test") / "FULL_PAGE_CAPTURE.jpg").exists()


@pytest.mark.asyncio
async def test_navigation_timeout_is_recovered():
    page_results = site_results()
    session = FakeSession(lambda: SitePage(page_results, navigation_error=TimeoutError("Timeout 60000ms exceeded")))
    report = await analyze("https://slow.test", AnalyzeOptions(), session)
    assert report.error is None
    assert any("Navigation timed out" in note for note in report.limits)


@pytest.mark.asyncio
async def test_page_failure_becomes_error_report():
    session = FakeSession(error=RuntimeError("context crashed"))
    report = await analyze("https://broken.test", AnalyzeOptions(), session)
    assert report.error == "context crashed"
    assert report.to_dict()["accessibility"]["contrastIssues"] == []


def test_report_caps_retained_issues_but_counts_all():
    issues = [
        ContrastIssue(f"t{i}", "#777777", Solid("#FFFFFF"), "4.48", "4.5:1", Status.FAIL, "7.0:1", Status.FAIL, "")
        for i in range(60)
    ]
    data = AnalysisReport(url="u", contrast_issues=issues).to_dict()
    assert len(data["accessibility"]["contrastIssues"]) == 50
    assert len(data["accessibility"]["topIssues"]) == 10
    assert data["accessibility"]["summary"]["issuesAA"] == 60


@pytest.mark.asyncio
async def test_batch_isolates_failures(monkeypatch):
    async def fake_analyze(url, options, session, settings=None):
        await asyncio.sleep(0)
        if "bad" in url:
            raise SessionLaunchError("browser launch failed: no chromium")
        return AnalysisReport(url=url)

    monkeypatch.setattr(analyzer, "analyze", fake_analyze)
    reports = await analyze_batch(["https://good.test", "https://bad.test"], AnalyzeOptions(), session=object())
    assert reports[0]["url"] == "https://good.test"
    assert "error" not in reports[0]
    assert reports[1] == {"url": "https://bad.test", "error": "browser launch failed: no chromium"}


@pytest.mark.asyncio
async def test_launch_error_propagates_from_analyze():
    with pytest.raises(SessionLaunchError):
        await analyze("https://x.test", AnalyzeOptions(), FakeSession(error=SessionLaunchError("nope")))
