from __future__ import annotations
import threading
from typing import Optional

from .output_image import OutputImage
from .platform_capabilities import PlatformCapabilities


class WashSession:
    """
    Holds state for a single user's upload.

    Only the newest upload counts: every upload takes a fresh token and a
    result is accepted only while its token is still current, so a slow
    earlier operation can never overwrite a newer one.
    """

    def __init__(self, session_id: str, capabilities: PlatformCapabilities):
        self.session_id = session_id
        self.capabilities = capabilities
        self.source_filename: Optional[str] = None
        self.output: Optional[OutputImage] = None
        self._token = 0
        self._lock = threading.Lock()

    def begin_upload(self, filename: str | None = None) -> int:
        """Start a new upload, dropping the previous result. Returns its token."""
        with self._lock:
            self._token += 1
            self.source_filename = filename
            self.output = None
            return self._token

    def complete(self, token: int, output: OutputImage) -> bool:
        """Store `output` if `token` is still current. Returns False for stale results."""
        with self._lock:
            if token != self._token:
                return False
            self.output = output
            return True

    def clear(self):
        """Clear the result and invalidate any in-flight upload."""
        with self._lock:
            self._token += 1
            self.source_filename = None
            self.output = None
