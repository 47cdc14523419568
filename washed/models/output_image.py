from __future__ import annotations
from dataclasses import dataclass
import base64

DOWNLOAD_FILENAME = "im-washed.png"
PNG_MIME = "image/png"


@dataclass(frozen=True)
class OutputImage:
    """
    Encoded result of one composite operation.
    Owned by the caller once returned; the compositor keeps no reference.
    """
    data: bytes            # PNG-encoded bytes
    width: int
    height: int
    mime_type: str = PNG_MIME
    filename: str = DOWNLOAD_FILENAME

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"
