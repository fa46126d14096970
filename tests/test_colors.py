import pytest

from contrast_scan.colors import (
    contrast_ratio_hex,
    estimate_filtered_color,
    format_ratio,
    is_large_text,
    is_light_fill,
    parse_color,
    text_thresholds,
    to_hex,
)


def test_black_on_white_is_21():
    assert contrast_ratio_hex("#000000", "#FFFFFF") == pytest.approx(21.0)


def test_ratio_is_symmetric():
    assert contrast_ratio_hex("#336699", "#EEEEEE") == pytest.approx(contrast_ratio_hex("#EEEEEE", "#336699"))


def test_grey_777_fails_normal_text_aa():
    ratio = contrast_ratio_hex("#777777", "#FFFFFF")
    aa, _ = text_thresholds(large=False)
    assert ratio < aa
    assert ratio == pytest.approx(4.48, abs=0.01)


def test_same_color_is_one():
    assert contrast_ratio_hex("#123456", "#123456") == pytest.approx(1.0)


def test_unparseable_color_gives_none():
    assert contrast_ratio_hex("not-a-color", "#FFFFFF") is None


@pytest.mark.parametrize(
    "value,expected",
    [
        ("rgb(255, 0, 0)", "#FF0000"),
        ("rgba(0, 0, 0, 0.5)", "#000000"),
        ("#abc", "#AABBCC"),
        ("white", "#FFFFFF"),
        ("rgba(0, 0, 0, 0)", None),
        ("transparent", None),
        ("", None),
    ],
)
def test_to_hex(value, expected):
    assert to_hex(value) == expected


def test_parse_color_space_syntax():
    assert parse_color("rgb(10 20 30 / 50%)") == (10, 20, 30, 0.5)


@pytest.mark.parametrize(
    "size,weight,large",
    [("24px", "400", True), ("19px", "700", True), ("19px", "bold", True), ("18px", "700", False), ("16px", "400", False)],
)
def test_large_text(size, weight, large):
    assert is_large_text(size, weight) is large


def test_large_text_thresholds():
    assert text_thresholds(True) == (3.0, 4.5)
    assert text_thresholds(False) == (4.5, 7.0)


def test_format_ratio():
    assert format_ratio(4.5) == "4.5:1"


def test_invert_filter_turns_black_icon_white():
    assert estimate_filtered_color("invert(1)") == "#FFFFFF"
    assert estimate_filtered_color("brightness(0) invert(100%)") == "#FFFFFF"


def test_no_filter_has_no_estimate():
    assert estimate_filtered_color(None) is None
    assert estimate_filtered_color("none") is None
    assert estimate_filtered_color("blur(2px)") is None


def test_light_fill():
    assert is_light_fill("#fdfdfd")
    assert is_light_fill("white")
    assert not is_light_fill("#f0f0f0")
    assert not is_light_fill(None)
