import numpy as np
import pytest

from washed.errors import DecodeError, SurfaceError
from washed.models.output_image import DOWNLOAD_FILENAME
from washed.services.compositor_service import CompositorService
from tests.conftest import decode_output


def _luminance(rgb):
    r, g, b = (float(c) for c in rgb[:3])
    return 0.299 * r + 0.587 * g + 0.114 * b


def _ink_box(pixels, background, tol=3):
    """Bounding box (x0, y0, x1, y1) of pixels that differ from the flat background."""
    diff = np.abs(pixels[..., :3].astype(int) - np.array(background)[None, None, :]).max(axis=2)
    ys, xs = np.nonzero(diff > tol)
    return xs.min(), ys.min(), xs.max() + 1, ys.max() + 1


@pytest.mark.parametrize("size", [(600, 400), (360, 360), (1, 1), (7, 3), (1200, 50)])
def test_output_keeps_source_dimensions(compositor, solid_image, size):
    out = compositor.composite(solid_image(*size))
    assert (out.width, out.height) == size
    assert decode_output(out.data).size == size


def test_output_is_png(compositor, solid_image):
    out = compositor.composite(solid_image())
    assert out.data.startswith(b"\x89PNG\r\n\x1a\n")
    assert out.mime_type == "image/png"
    assert out.filename == DOWNLOAD_FILENAME


def test_overlay_darkens_to_sixty_percent(compositor, solid_image):
    out = decode_output(compositor.composite(solid_image(800, 600, (200, 100, 50, 255))).data)
    corner = out.getpixel((5, 5))
    assert corner[:3] == (120, 60, 30)
    assert _luminance(corner) == pytest.approx(0.6 * _luminance((200, 100, 50)), abs=1)


def test_overlay_on_transparent_pixels(compositor, solid_image):
    out = decode_output(compositor.composite(solid_image(400, 300, (0, 0, 0, 0))).data)
    assert out.mode == "RGBA"
    assert out.getpixel((2, 2)) == (0, 0, 0, 102)


def test_overlay_on_translucent_pixels(compositor, solid_image):
    out = decode_output(compositor.composite(solid_image(400, 300, (255, 0, 0, 128))).data)
    r, g, b, a = out.getpixel((2, 2))
    assert r == pytest.approx(110, abs=1)
    assert (g, b) == (0, 0)
    assert a == pytest.approx(179, abs=1)


def test_caption_is_drawn_in_white_and_black(compositor, solid_image):
    pixels = np.array(decode_output(compositor.composite(solid_image(600, 400)).data))
    assert (pixels[..., :3] == 255).all(axis=2).any()
    assert (pixels[..., :3] == 0).all(axis=2).any()


@pytest.mark.parametrize("size", [(600, 400), (451, 901), (1500, 300)])
def test_caption_is_centred(compositor, solid_image, size):
    width, height = size
    pixels = np.array(decode_output(compositor.composite(solid_image(width, height)).data))
    x0, y0, x1, y1 = _ink_box(pixels, background=(77, 77, 77))
    assert (x0 + x1) / 2 == pytest.approx(width / 2, abs=3)
    assert (y0 + y1) / 2 == pytest.approx(height / 2, abs=3)


def test_caption_scales_with_width(compositor, solid_image):
    narrow = np.array(decode_output(compositor.composite(solid_image(600, 400)).data))
    wide = np.array(decode_output(compositor.composite(solid_image(1800, 400)).data))
    nx0, _, nx1, _ = _ink_box(narrow, (77, 77, 77))
    wx0, _, wx1, _ = _ink_box(wide, (77, 77, 77))
    assert (wx1 - wx0) == pytest.approx(3 * (nx1 - nx0), rel=0.1)


def test_caption_geometry(compositor):
    assert compositor.caption_geometry(600) == (40, 2)
    assert compositor.caption_geometry(100) == (24, 1)
    size, radius = compositor.caption_geometry(3000)
    assert size == 200 and radius == 8


def test_composite_is_deterministic(compositor, solid_image):
    source = solid_image(500, 300, (30, 140, 220, 255))
    assert compositor.composite(source).data == compositor.composite(source).data


def test_composite_does_not_modify_source(compositor, solid_image):
    source = solid_image(50, 40, (30, 140, 220, 255))
    before = source.pixels.copy()
    compositor.composite(source)
    assert np.array_equal(source.pixels, before)


def test_recompositing_output_darkens_again(compositor, solid_image):
    first = compositor.composite(solid_image(800, 600, (200, 200, 200, 255)))
    second = compositor.composite_bytes(first.data)
    assert first.data != second.data
    assert decode_output(second.data).getpixel((5, 5))[:3] == (72, 72, 72)


def test_composite_bytes_rejects_non_image(compositor):
    with pytest.raises(DecodeError):
        compositor.composite_bytes(b"<html>not a picture</html>")


def test_surface_limit_raises_surface_error(image_service, solid_image):
    compositor = CompositorService(image_service=image_service, max_surface_pixels=100)
    with pytest.raises(SurfaceError):
        compositor.composite(solid_image(11, 10))


def test_surface_limit_from_env(monkeypatch, image_service, solid_image):
    monkeypatch.setenv("MAX_SURFACE_PIXELS", "50")
    compositor = CompositorService(image_service=image_service)
    assert compositor.max_surface_pixels == 50
    with pytest.raises(SurfaceError):
        compositor.composite(solid_image(10, 10))


def test_empty_surface_raises_surface_error(compositor, solid_image):
    with pytest.raises(SurfaceError):
        compositor.composite(solid_image(0, 10))
