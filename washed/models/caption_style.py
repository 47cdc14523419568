from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class CaptionStyle:
    """
    Value-object holding the fixed caption look.

    Sizes are in raster pixels: the font scales with image width and never
    drops below `min_font_size`; the stroke is a line of width
    font_size / stroke_divisor centred on the glyph outline.
    """
    text: str = "I'M WASHED"
    fill: Tuple[int, int, int, int] = (255, 255, 255, 255)
    stroke_fill: Tuple[int, int, int, int] = (0, 0, 0, 255)
    overlay_color: Tuple[int, int, int] = (0, 0, 0)
    overlay_alpha: float = 0.4
    font_size_divisor: float = 15.0
    min_font_size: float = 24.0
    stroke_divisor: float = 12.0

    def font_size_for(self, width: int) -> float:
        return max(width / self.font_size_divisor, self.min_font_size)

    def stroke_width_for(self, font_size: float) -> float:
        return font_size / self.stroke_divisor


DEFAULT_CAPTION_STYLE = CaptionStyle()
