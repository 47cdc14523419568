from __future__ import annotations
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class PlatformCapabilities:
    """
    What the requesting client can do with a finished image.
    Resolved once per session, never re-sniffed per request.
    """
    is_mobile: bool = False
    can_share_files: bool = False   # native share sheet with file payloads
    can_copy_image: bool = True     # image/png clipboard writes

    def to_dict(self) -> dict:
        return asdict(self)
