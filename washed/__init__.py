"""
I'M WASHED meme generator.

Darkens an uploaded image, stamps the fixed "I'M WASHED" caption in the
centre and hands the result back as PNG bytes.
"""

from .errors import WashedError, DecodeError, ProcessingError, SurfaceError, EncodeError

__version__ = "1.0.0"

__all__ = [
    "WashedError",
    "DecodeError",
    "ProcessingError",
    "SurfaceError",
    "EncodeError",
]
