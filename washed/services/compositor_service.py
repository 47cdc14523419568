from __future__ import annotations

from typing import Tuple
import logging
import os

import cv2
import numpy as np
from dotenv import load_dotenv
from PIL import ImageDraw

from ..errors import SurfaceError
from ..models.caption_style import CaptionStyle, DEFAULT_CAPTION_STYLE
from ..models.image import Image
from ..models.output_image import OutputImage
from ..repositories.font_repository import FontRepository
from .image_service import ImageService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def font_size_for(width: int, style: CaptionStyle = DEFAULT_CAPTION_STYLE) -> float:
    """Caption font size in pixels: max(width / 15, 24)."""
    return style.font_size_for(width)


def stroke_width_for(font_size: float, style: CaptionStyle = DEFAULT_CAPTION_STYLE) -> float:
    """Outline line width in pixels: font_size / 12."""
    return style.stroke_width_for(font_size)


class CompositorService:
    """
    Turns a decoded source image into the captioned PNG.

    • Allocates a private RGBA surface the size of the source (no scaling).
    • Darkens it with the overlay colour using "over" blending.
    • Draws the caption centred on its glyph box: outline first, fill on top.
    • Encodes the surface as PNG.

    Each call owns its surface; the service keeps no per-call state, so one
    instance can be shared between sessions.
    """

    def __init__(self,
                 style: CaptionStyle = DEFAULT_CAPTION_STYLE,
                 font_repository: FontRepository = None,
                 image_service: ImageService = None,
                 max_surface_pixels: int = None):
        self.style = style
        self.font_repository = font_repository or FontRepository()
        self.image_service = image_service or ImageService()
        self.max_surface_pixels = max_surface_pixels or int(
            os.getenv("MAX_SURFACE_PIXELS", "100000000"))

    # ─── Public API ────────────────────────────────────────────────
    def composite(self, source: Image) -> OutputImage:
        """
        Args:
            source (Image): decoded RGBA source.

        Returns:
            OutputImage: PNG bytes with the same width and height as `source`.

        Raises:
            SurfaceError: the render surface could not be allocated.
            EncodeError: PNG serialization failed.
        """
        height, width = self.image_service.get_image_dimensions(source)

        surface = self._allocate_surface(width, height)
        surface[...] = source.pixels                       # blit at (0, 0)
        surface = self._apply_overlay(surface)
        surface = self._draw_caption(surface)

        data = self.image_service.encode_png(surface)
        logger.info(f"Composited {width}x{height} image → {len(data)} PNG bytes")
        return OutputImage(data=data, width=width, height=height)

    def composite_bytes(self, data: bytes) -> OutputImage:
        """Decode uploaded bytes and composite them. Raises DecodeError on garbage."""
        return self.composite(self.image_service.decode(data))

    # ─── Internal helpers ──────────────────────────────────────────
    def _allocate_surface(self, width: int, height: int) -> np.ndarray:
        if width <= 0 or height <= 0:
            raise SurfaceError(f"Invalid surface size {width}x{height}")
        if width * height > self.max_surface_pixels:
            raise SurfaceError(
                f"Surface {width}x{height} exceeds limit of {self.max_surface_pixels} pixels")
        try:
            return np.empty((height, width, 4), dtype=np.uint8)
        except MemoryError as err:
            raise SurfaceError(f"Could not allocate {width}x{height} surface") from err

    def _apply_overlay(self, surface: np.ndarray) -> np.ndarray:
        """
        Porter-Duff "over" of a uniform colour with opacity `overlay_alpha`.

        out_a   = a + base_a * (1 - a)
        out_rgb = (colour * a + base_rgb * base_a * (1 - a)) / out_a

        For opaque pixels this reduces to base_rgb * (1 - a).
        """
        alpha = float(self.style.overlay_alpha)
        base_alpha = surface[..., 3].astype("float32") / 255.0
        out_alpha = alpha + base_alpha * (1.0 - alpha)

        base_weight = base_alpha * (1.0 - alpha) / out_alpha
        color_weight = alpha / out_alpha
        base_weight = cv2.merge([base_weight, base_weight, base_weight])     # (H,W,3)
        color_weight = cv2.merge([color_weight, color_weight, color_weight])

        color = np.array(self.style.overlay_color, dtype="float32")
        rgb = surface[..., :3].astype("float32") * base_weight + color * color_weight

        surface[..., :3] = np.clip(np.rint(rgb), 0, 255).astype("uint8")
        surface[..., 3] = np.clip(np.rint(out_alpha * 255.0), 0, 255).astype("uint8")
        return surface

    def caption_geometry(self, width: int) -> Tuple[float, int]:
        """
        Returns (font_size, stroke_radius).

        Pillow grows the outline outward by `stroke_width`, while the outline
        line is centred on the glyph edge with the fill covering its inner half,
        so the outward radius is half the line width.
        """
        font_size = self.style.font_size_for(width)
        line_width = self.style.stroke_width_for(font_size)
        return font_size, max(1, int(round(line_width / 2.0)))

    def _draw_caption(self, surface: np.ndarray) -> np.ndarray:
        height, width = surface.shape[:2]
        font_size, stroke_radius = self.caption_geometry(width)
        font = self.font_repository.get_font(font_size)

        canvas = self.image_service.to_pil_image(surface)
        draw = ImageDraw.Draw(canvas)

        # Centre on the inked box (outline included), not on the font metrics.
        left, top, right, bottom = draw.textbbox(
            (0, 0), self.style.text, font=font, anchor="ls", stroke_width=stroke_radius)
        x = width / 2.0 - (left + right) / 2.0
        y = height / 2.0 - (top + bottom) / 2.0

        draw.text(
            (x, y),
            self.style.text,
            font=font,
            anchor="ls",
            fill=self.style.fill,
            stroke_width=stroke_radius,
            stroke_fill=self.style.stroke_fill,
        )
        logger.debug(f"Caption at ({x:.1f}, {y:.1f}) size={font_size:.2f} stroke={stroke_radius}")
        return np.array(canvas, dtype=np.uint8)
