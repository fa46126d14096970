"""Visual and WCAG contrast auditing of live, rendered web pages."""

from .analyzer import analyze, analyze_batch, parse_url_list
from .config import ScanSettings, load_settings
from .models import AnalysisReport, AnalyzeOptions, Strategy
from .session import BrowserSessionManager, SessionLaunchError

__version__ = "0.3.0"

__all__ = [
    "AnalysisReport",
    "AnalyzeOptions",
    "BrowserSessionManager",
    "ScanSettings",
    "SessionLaunchError",
    "Strategy",
    "analyze",
    "analyze_batch",
    "load_settings",
    "parse_url_list",
]
