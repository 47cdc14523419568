from io import BytesIO
from pathlib import Path
from typing import Union
import logging

import numpy as np
from PIL import Image as PILImage, ImageOps, UnidentifiedImageError

from ..errors import DecodeError, EncodeError
from ..models.image import Image

logger = logging.getLogger(__name__)

# Pillow raises a grab bag of exception types for broken input.
_DECODE_FAILURES = (
    UnidentifiedImageError,
    PILImage.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)

# Single-channel modes wider than 8 bits.
_WIDE_MODES = {"I;16", "I;16B", "I;16L", "I;16N", "I", "F"}


class ImageRepository:
    """
    Handles byte/file I/O for Image entities.
    Decoding sniffs content; file extensions and MIME types are never consulted.
    """

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def retrieve_image_dimensions(img: Image):
        return img.pixels.shape[:2]

    @staticmethod
    def decode(data: bytes, path: Union[str, Path] = None) -> Image:
        """
        Decode arbitrary image bytes into an RGBA Image.

        EXIF orientation is applied so the raster matches what a browser
        would display. Animated formats contribute their first frame.
        """
        if not data:
            raise DecodeError("Empty image payload")

        try:
            with PILImage.open(BytesIO(data)) as pil_img:
                pil_img.load()
                oriented = ImageOps.exif_transpose(pil_img)
                rgba = ImageRepository._to_8bit(oriented).convert("RGBA")
        except _DECODE_FAILURES as err:
            raise DecodeError(f"Could not decode image: {err}") from err

        pixels = np.array(rgba, dtype=np.uint8)
        return ImageRepository.create_image(pixels, path)

    @staticmethod
    def _to_8bit(pil_img: PILImage.Image) -> PILImage.Image:
        """
        Rescale high bit-depth single-channel rasters to 8 bits.
        Pillow's own convert() clips these at 255 instead of scaling.
        """
        if pil_img.mode not in _WIDE_MODES:
            return pil_img
        values = np.asarray(pil_img).astype("float64")
        if pil_img.mode == "F" and values.size and values.max() <= 1.0:
            values = values * 255.0                # float rasters in [0, 1]
        else:
            values = values / 257.0                # 0..65535 -> 0..255
        return PILImage.fromarray(np.clip(np.rint(values), 0, 255).astype(np.uint8))

    @staticmethod
    def load(path: Union[str, Path]) -> Image:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return ImageRepository.decode(path.read_bytes(), path)

    @staticmethod
    def encode_png(pixels: np.ndarray) -> bytes:
        """
        Serialize an (H, W, 4) RGBA array as PNG.
        Fully opaque rasters are written as RGB.
        """
        if pixels.ndim == 3 and pixels.shape[2] == 4 and bool((pixels[..., 3] == 255).all()):
            pixels = pixels[..., :3]
        pixels = np.ascontiguousarray(pixels)

        buffer = BytesIO()
        try:
            PILImage.fromarray(pixels).save(buffer, format="PNG")
        except (OSError, ValueError, TypeError) as err:
            raise EncodeError(f"PNG encoding failed: {err}") from err
        return buffer.getvalue()

    @staticmethod
    def save(data: bytes, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path
