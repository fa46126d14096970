import io

from PIL import Image as PILImage

from contrast_scan.imaging import (
    FINAL_SECTION,
    FrameCache,
    clamp_crop,
    crop_preview,
    infer_solid_background,
    is_blank_crop,
    stitch_frames,
    upscaled_png,
    write_debug_captures,
)
from contrast_scan.models import Frame, Rect, Strategy

from conftest import png_bytes, striped_bytes


def decode(data_url):
    import base64

    return PILImage.open(io.BytesIO(base64.b64decode(data_url.split(",", 1)[1])))


def test_blank_detection():
    assert is_blank_crop(PILImage.new("RGB", (50, 50), (240, 240, 240)))
    assert not is_blank_crop(PILImage.open(io.BytesIO(striped_bytes((50, 50)))).convert("RGB"))
    assert is_blank_crop(PILImage.new("RGB", (4, 4), (0, 0, 0)))


def test_uniform_ring_is_inferred_as_solid():
    image = PILImage.new("RGB", (200, 100), (20, 40, 60))
    hex_value, uniformity = infer_solid_background(image, Rect(50, 30, 60, 20))
    assert hex_value == "#14283C"
    assert uniformity == 0


def test_ring_with_text_inside_is_still_solid():
    image = PILImage.new("RGB", (200, 100), (255, 255, 255))
    image.paste((0, 0, 0), (60, 40, 100, 50))
    assert infer_solid_background(image, Rect(60, 40, 40, 10))[0] == "#FFFFFF"


def test_busy_ring_is_not_solid():
    image = PILImage.open(io.BytesIO(striped_bytes((200, 100)))).convert("RGB")
    assert infer_solid_background(image, Rect(50, 30, 60, 20)) is None


def test_tiny_box_yields_no_ring():
    image = PILImage.new("RGB", (200, 100), (255, 255, 255))
    assert infer_solid_background(image, Rect(0, 0, 2, 2), pad=1) is None


def test_crop_preview_grows_pad_until_not_blank():
    image = PILImage.new("RGB", (200, 100), (255, 255, 255))
    image.paste((0, 0, 0), (0, 70, 200, 75))
    preview = crop_preview(image, Rect(90, 40, 20, 10), [4, 30])
    assert preview.startswith("data:image/jpeg;base64,")
    assert decode(preview).size == (80, 70)


def test_crop_preview_none_when_everything_blank():
    image = PILImage.new("RGB", (200, 100), (255, 255, 255))
    assert crop_preview(image, Rect(90, 40, 20, 10), [4, 10]) is None


def test_clamp_crop_stays_in_bounds():
    assert clamp_crop(Rect(-5, 90, 50, 30), 10, (200, 100)) == (0, 80, 70, 20)


def test_upscale_small_capture():
    image = decode(upscaled_png(png_bytes(size=(20, 10)), 60))
    assert image.size == (120, 60)


def test_large_capture_is_not_resized():
    image = decode(upscaled_png(png_bytes(size=(80, 70)), 60))
    assert image.size == (80, 70)


def test_vertical_stitch():
    frames = [Frame(index=i, buffer=png_bytes(size=(100, 50))) for i in range(3)]
    assert stitch_frames(frames, Strategy.STANDARD, (100, 50)).size == (100, 150)


def test_horizontal_stitch_overlaps():
    frames = [Frame(index=i, buffer=png_bytes(size=(300, 50))) for i in range(3)]
    assert stitch_frames(frames, Strategy.HORIZONTAL_APP, (300, 50)).size == (500, 50)


def test_stitch_size_cap():
    frames = [Frame(index=i, buffer=b"") for i in range(30)]
    assert stitch_frames(frames, Strategy.STANDARD, (100, 1000)) is None
    assert stitch_frames([], Strategy.STANDARD, (100, 1000)) is None


def test_debug_writer(tmp_path):
    frames = [Frame(index=1, buffer=png_bytes(size=(100, 50)))]
    written = write_debug_captures(tmp_path / "site", frames, Strategy.STANDARD, (100, 50), png_bytes(size=(100, 50)))
    assert sorted(p.name for p in written) == ["FINAL_SECTION_CAPTURE.jpg", "FULL_PAGE_CAPTURE.jpg"]
    assert all(p.exists() for p in written)


def test_frame_cache_decodes_once_per_key_and_survives_garbage():
    cache = FrameCache()
    buffer = png_bytes()
    assert cache.get(1, buffer) is cache.get(1, buffer)
    assert cache.get(FINAL_SECTION, png_bytes(size=(10, 10))).size == (10, 10)
    assert cache.get(1, buffer).size == (200, 100)
    assert cache.get(2, b"not an image") is None
