from io import BytesIO
import threading

import numpy as np
import pytest
from PIL import Image as PILImage

from washed.models.image import Image
from washed.models.output_image import OutputImage
from washed.services.compositor_service import CompositorService
from washed.services.image_service import ImageService


def encode(pil_img: PILImage.Image, fmt: str = "PNG", **params) -> bytes:
    buffer = BytesIO()
    pil_img.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def decode_output(data: bytes) -> PILImage.Image:
    pil_img = PILImage.open(BytesIO(data))
    pil_img.load()
    return pil_img


class BlockingCompositor:
    """Stands in for CompositorService; the first call waits for `release`."""

    def __init__(self):
        self.image_service = ImageService()
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def composite(self, source):
        with self._lock:
            self.calls += 1
            call = self.calls
        if call == 1:
            self.started.set()
            assert self.release.wait(timeout=10)
        return OutputImage(data=f"call-{call}".encode(), width=source.width, height=source.height)


@pytest.fixture
def solid_png():
    """Factory: PNG bytes of a single-colour image."""
    def _make(width=600, height=400, color=(128, 128, 128), mode="RGB"):
        return encode(PILImage.new(mode, (width, height), color))
    return _make


@pytest.fixture
def solid_image():
    """Factory: decoded RGBA Image of a single colour."""
    def _make(width=600, height=400, color=(128, 128, 128, 255)):
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        pixels[...] = color
        return Image(pixels=pixels)
    return _make


@pytest.fixture
def image_service():
    return ImageService()


@pytest.fixture
def compositor(image_service):
    return CompositorService(image_service=image_service)


@pytest.fixture
def api_client():
    from washed.api_server import app
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
