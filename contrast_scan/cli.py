"""
Command line entry point: analyze one or more URLs and write the reports as
a JSON array.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from .analyzer import analyze_batch, parse_url_list
from .config import COLOR_SCHEMES, load_settings
from .logging_config import configure_logging
from .models import AnalyzeOptions
from .session import BrowserSessionManager


def collect_urls(args: argparse.Namespace) -> List[str]:
    urls = parse_url_list(",".join(args.urls))
    if args.urls_file:
        urls.extend(parse_url_list(Path(args.urls_file).read_text(encoding="utf-8")))
    seen = set()
    return [u for u in urls if not (u in seen or seen.add(u))]


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def print_summary(reports: List[Dict[str, Any]], output: Path) -> None:
    print("\n✅ Analysis complete")
    for report in reports:
        if report.get("error"):
            print(f"❌ {report['url']}: {report['error']}")
            continue
        summary = report.get("accessibility", {}).get("summary", {})
        print(
            f"• {report['url']}: {summary.get('totalTextNodes', 0)} text nodes, "
            f"{summary.get('issuesAA', 0)} AA / {summary.get('issuesAAA', 0)} AAA failures, "
            f"{len(report.get('nonTextElements', []))} non-text elements"
        )
        for note in report.get("notes", []):
            print(f"    note: {note}")
    print(f"Report: {output}")


async def main_async(args: argparse.Namespace) -> int:
    urls = collect_urls(args)
    if not urls:
        print("❌ No valid URL given (URLs must start with http)")
        return 2

    try:
        settings = load_settings(max_loops=args.max_loops, headless=False if args.headed else None)
    except ValidationError as exc:
        print(f"❌ Invalid settings: {exc}")
        return 2

    options = AnalyzeOptions(
        keep_cookies=args.keep_cookies,
        prefers_color_scheme=args.color_scheme,
        debug_dir=args.debug_dir,
    )
    async with BrowserSessionManager(settings) as session:
        reports = await analyze_batch(urls, options, session)

    output = Path(args.output)
    write_json(output, reports)
    print_summary(reports, output)
    return 1 if all(r.get("error") for r in reports) else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Audit background colors, fonts and WCAG contrast of live pages")
    parser.add_argument("urls", nargs="*", help="Target URLs (comma separated lists are accepted)")
    parser.add_argument("--urls-file", help="File with URLs separated by newlines or commas")
    parser.add_argument(
        "--keep-cookies",
        action="store_true",
        help="Leave cookie/consent dialogs in place and audit them as part of the page",
    )
    parser.add_argument(
        "--color-scheme",
        default="light",
        choices=COLOR_SCHEMES + ["none"],
        help="Emulated prefers-color-scheme value",
    )
    parser.add_argument("--output", "-o", default="./contrast-report.json", help="Output JSON file")
    parser.add_argument("--debug-dir", help="Write stitched captures and non-text crops under this directory")
    parser.add_argument("--max-loops", type=int, help="Override the capture frame bound")
    parser.add_argument("--headed", action="store_true", help="Run the browser with a visible window")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING)")

    args = parser.parse_args()
    configure_logging(args.log_level)
    raise SystemExit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()
