from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image as PILImage

from ..models.image import Image
from ..repositories.image_repository import ImageRepository


class ImageService:
    """I/O helpers.  No drawing logic here."""

    def __init__(self):
        self.image_repository = ImageRepository()

    def decode(self, data: bytes, path: Union[str, Path] = None) -> Image:
        """Decode uploaded bytes into an Image; raises DecodeError on garbage."""
        return self.image_repository.decode(data, path)

    def load(self, path: str | Path) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def encode_png(self, pixels: np.ndarray) -> bytes:
        return self.image_repository.encode_png(pixels)

    def save_bytes(self, data: bytes, path: Union[str, Path]) -> Path:
        return self.image_repository.save(data, path)

    def get_image_dimensions(self, img: Image):
        """Returns (height, width)."""
        return self.image_repository.retrieve_image_dimensions(img)

    def to_pil_image(self, pixels: np.ndarray) -> PILImage.Image:
        """
        Convert an RGBA pixel array → PIL Image object.
        Ensures the NumPy array is C-contiguous.
        """
        if not pixels.flags['C_CONTIGUOUS']:
            pixels = np.ascontiguousarray(pixels)
        return PILImage.fromarray(pixels)
