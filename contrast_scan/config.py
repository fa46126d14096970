"""
Tunable constants for the capture loop, the classifier and the report.

Every value can be overridden per run through ``ScanSettings.with_overrides``
(CLI flags) or through ``CONTRAST_SCAN_<FIELD>`` environment variables.
Malformed environment values raise ``pydantic.ValidationError``.
"""

from typing import Any, Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

COLOR_SCHEMES = ["light", "dark", "no-preference"]

ENV_PREFIX = "CONTRAST_SCAN_"


class ScanSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, case_sensitive=False)

    viewport_width: int = 1920
    viewport_height: int = 1080

    # navigation and settle delays (milliseconds)
    navigation_timeout_ms: int = 60000
    initial_settle_ms: int = 8000
    post_dismiss_ms: int = 3000
    render_settle_ms: int = 1500

    # capture loop
    max_loops: int = 25
    max_snap_loops: int = 20
    grid_step: int = 150
    frame_jpeg_quality: int = 80
    final_jpeg_quality: int = 85

    # horizontal wheel calibration
    horizontal_target_px: int = 700
    horizontal_probe_delta: int = 12
    horizontal_weak_delta: int = 120
    horizontal_min_delta: int = 8
    horizontal_max_delta: int = 220

    # text visibility
    visibility_ratio: float = 0.35
    min_visible_width: int = 12
    min_visible_height: int = 10

    # raster heuristics
    border_uniformity: float = 18.0
    ring_thickness: int = 3
    ring_pad: int = 10
    min_ring_samples: int = 30
    blank_crop_deviation: float = 18.0
    min_preview_px: int = 60

    # report caps
    top_backgrounds: int = 8
    top_text_colors: int = 5
    top_images_counted: int = 15
    max_contrast_issues: int = 50
    surfaced_issues: int = 10
    max_content_images: int = 10

    # browser session
    idle_seconds: float = 60.0
    headless: bool = True

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    def with_overrides(self, **overrides: Any) -> "ScanSettings":
        """Copy with the given fields replaced; unknown names and ``None`` values are ignored."""
        clean = {k: v for k, v in overrides.items() if k in type(self).model_fields and v is not None}
        return type(self).model_validate({**self.model_dump(), **clean})


def load_settings(**overrides: Any) -> ScanSettings:
    """Defaults, then ``CONTRAST_SCAN_*`` environment variables, then explicit overrides."""
    return ScanSettings().with_overrides(**overrides)
