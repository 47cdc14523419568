"""
Wash a single image from the command line.

    washed photo.jpg                 # writes ./im-washed.png
    washed photo.jpg -o out/meme.png
"""

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from ..errors import DecodeError, ProcessingError
from ..models.output_image import DOWNLOAD_FILENAME
from ..services.compositor_service import CompositorService
from ..services.image_service import ImageService

EXIT_OK = 0
EXIT_PROCESSING_ERROR = 1
EXIT_DECODE_ERROR = 2

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="washed",
        description="Darken an image and stamp \"I'M WASHED\" across it.")
    ap.add_argument("input", help="image file to wash (any format Pillow can decode)")
    ap.add_argument("-o", "--output", default=DOWNLOAD_FILENAME,
                    help=f"where to write the PNG (default: {DOWNLOAD_FILENAME})")
    ap.add_argument("--log-level", default=None,
                    help="DEBUG, INFO, WARNING... (default: $LOG_LEVEL or INFO)")
    return ap


def main(argv=None) -> int:
    # Load environment variables first
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    image_service = ImageService()
    try:
        source = image_service.load(args.input)
        output = CompositorService(image_service=image_service).composite(source)
    except FileNotFoundError:
        logger.error(f"No such file: {args.input}")
        return EXIT_DECODE_ERROR
    except DecodeError as e:
        logger.error(f"{e.user_message}: {e}")
        return EXIT_DECODE_ERROR
    except ProcessingError as e:
        logger.error(f"{e.user_message}: {e}")
        return EXIT_PROCESSING_ERROR

    path = image_service.save_bytes(output.data, args.output)
    print(f"Wrote {output.width}x{output.height} image to {path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
