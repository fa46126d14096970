import pytest
from pydantic import ValidationError

from contrast_scan.config import ScanSettings, load_settings


def test_defaults():
    settings = ScanSettings()
    assert settings.viewport == {"width": 1920, "height": 1080}
    assert settings.max_loops == 25
    assert settings.visibility_ratio == 0.35
    assert settings.border_uniformity == 18.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CONTRAST_SCAN_MAX_LOOPS", "5")
    monkeypatch.setenv("CONTRAST_SCAN_HEADLESS", "false")
    monkeypatch.setenv("CONTRAST_SCAN_VISIBILITY_RATIO", "0.5")
    settings = load_settings()
    assert settings.max_loops == 5
    assert settings.headless is False
    assert settings.visibility_ratio == 0.5
    assert settings.grid_step == 150


@pytest.mark.parametrize(
    "name, value",
    [
        ("CONTRAST_SCAN_MAX_LOOPS", "25x"),
        ("CONTRAST_SCAN_HEADLESS", "flase"),
        ("CONTRAST_SCAN_GRID_STEP", "abc"),
    ],
)
def test_malformed_environment_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        load_settings()


def test_explicit_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("CONTRAST_SCAN_MAX_LOOPS", "5")
    settings = load_settings(max_loops=7, headless=None, unknown=1)
    assert settings.max_loops == 7
    assert settings.headless is True


def test_overrides_are_validated():
    with pytest.raises(ValidationError):
        ScanSettings().with_overrides(max_loops="many")
    assert ScanSettings().with_overrides(max_loops="3").max_loops == 3
