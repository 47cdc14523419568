from __future__ import annotations
from typing import List, Optional
import functools
import logging
import os

from dotenv import load_dotenv
from PIL import ImageFont

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Bold sans-serif faces in rough order of preference. Bare names are
# looked up in the platform font directories by Pillow.
BOLD_SANS_CANDIDATES: List[str] = [
    "arialbd.ttf",
    "Arial Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
]


FONT_CACHE_SIZE = 32


class FontRepository:
    """
    Resolves the caption typeface once, then serves cached sizes of it.

    Order: CAPTION_FONT_PATH env var, BOLD_SANS_CANDIDATES, Pillow's
    bundled scalable default.
    """

    def __init__(self, font_path: Optional[str] = None, candidates: Optional[List[str]] = None,
                 cache_size: int = FONT_CACHE_SIZE):
        self.font_path = font_path or os.getenv("CAPTION_FONT_PATH") or None
        self.candidates = candidates if candidates is not None else BOLD_SANS_CANDIDATES
        self._resolved: Optional[str] = None
        self._resolved_once = False
        # Bounded: every distinct upload width maps to its own size.
        self._cached_font = functools.lru_cache(maxsize=cache_size)(self._load_font)

    def _resolve(self, size: float) -> Optional[str]:
        if self._resolved_once:
            return self._resolved

        search = ([self.font_path] if self.font_path else []) + list(self.candidates)
        for name in search:
            try:
                ImageFont.truetype(name, size)
            except OSError:
                if name == self.font_path:
                    logger.warning(f"CAPTION_FONT_PATH not loadable, ignoring: {name}")
                continue
            self._resolved = name
            break

        if self._resolved is None:
            logger.warning("No bold sans-serif font found, using Pillow's default font")
        else:
            logger.info(f"Caption font: {self._resolved}")
        self._resolved_once = True
        return self._resolved

    @property
    def resolved_font(self) -> Optional[str]:
        return self._resolved

    def get_font(self, size: float) -> ImageFont.ImageFont:
        return self._cached_font(size)

    def _load_font(self, size: float) -> ImageFont.ImageFont:
        name = self._resolve(size)
        if name is None:
            return ImageFont.load_default(size=size)
        return ImageFont.truetype(name, size)
