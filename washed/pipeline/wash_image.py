# pipeline/wash_image.py
import logging

from ..models.output_image import OutputImage
from ..services.compositor_service import CompositorService
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def wash_image(
    data: bytes,
    *,
    filename: str | None = None,
    compositor_service: CompositorService = None,
    image_service: ImageService = None,
) -> OutputImage:
    """
    One upload → one washed PNG:
        • decode the bytes (content-sniffed; `filename` is only for logs)
        • darken + caption on a private surface
        • encode as PNG
    DecodeError / SurfaceError / EncodeError propagate untouched.
    """
    image_service = image_service or ImageService()
    compositor_service = compositor_service or CompositorService(image_service=image_service)

    source = image_service.decode(data, filename)
    logger.info(f"Decoded {filename or 'upload'}: {source.width}x{source.height}")

    return compositor_service.composite(source)
