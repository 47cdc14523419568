class WashedError(Exception):
    """
    Base class for every failure raised while producing a washed image.
    `user_message` is what the UI shows; `str(err)` keeps the detail for logs.
    """
    user_message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(message or self.user_message)


class DecodeError(WashedError):
    """Input bytes are not a decodable raster image."""
    user_message = "Please select an image file"


class ProcessingError(WashedError):
    """Rendering backend failed after the input decoded fine."""
    user_message = "Error processing image"


class SurfaceError(ProcessingError):
    """A render surface of the requested size could not be allocated."""


class EncodeError(ProcessingError):
    """The finished surface could not be serialized as PNG."""
