import io

import pytest
from PIL import Image as PILImage

from contrast_scan.config import ScanSettings


def png_bytes(color=(255, 255, 255), size=(200, 100), fmt="PNG"):
    out = io.BytesIO()
    PILImage.new("RGB", size, color).save(out, format=fmt)
    return out.getvalue()


def striped_bytes(size=(200, 100), stripe=4, fmt="PNG"):
    image = PILImage.new("RGB", size, (255, 255, 255))
    pixels = image.load()
    for x in range(size[0]):
        for y in range(size[1]):
            if (x // stripe + y // stripe) % 2:
                pixels[x, y] = (0, 0, 0)
    out = io.BytesIO()
    image.save(out, format=fmt)
    return out.getvalue()


class FakeMouse:
    def __init__(self):
        self.wheels = []
        self.clicks = []

    async def wheel(self, delta_x, delta_y):
        self.wheels.append((delta_x, delta_y))

    async def click(self, x, y):
        self.clicks.append((x, y))


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    async def press(self, key):
        self.pressed.append(key)


class FakePage:
    """Stands in for a Playwright page; screenshots are flat PNG/JPEG images."""

    def __init__(self, color=(255, 255, 255), size=(200, 100)):
        self.mouse = FakeMouse()
        self.keyboard = FakeKeyboard()
        self.color = color
        self.size = size
        self.closed = False
        self.waits = []
        self.screenshots = []
        self.evaluations = []
        self.evaluate_handler = None

    def is_closed(self):
        return self.closed

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)

    async def screenshot(self, type="png", quality=None, clip=None):
        self.screenshots.append({"type": type, "quality": quality, "clip": clip})
        size = self.size
        if clip:
            size = (max(1, int(clip["width"])), max(1, int(clip["height"])))
        return png_bytes(self.color, size, "JPEG" if type == "jpeg" else "PNG")

    async def evaluate(self, expression, arg=None):
        self.evaluations.append((expression, arg))
        if self.evaluate_handler is None:
            return None
        return self.evaluate_handler(expression, arg)


class FakeBridge:
    """Scripted ``PageBridge``: values may be constants or callables taking the call args."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.failures = {}

    async def call(self, fn_id, **args):
        self.calls.append((fn_id, args))
        value = self.responses.get(fn_id)
        if callable(value):
            return value(**args)
        return value

    def called(self, fn_id):
        return [args for fn, args in self.calls if fn == fn_id]


@pytest.fixture
def settings():
    return ScanSettings(viewport_width=200, viewport_height=100)


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def bridge():
    return FakeBridge()
