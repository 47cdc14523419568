from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Optional, Tuple
import logging
import os
import threading
import uuid

from dotenv import load_dotenv

from ..models.output_image import OutputImage
from ..models.wash_session import WashSession
from ..pipeline.wash_image import wash_image
from .compositor_service import CompositorService
from .platform_service import PlatformService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class SessionService:
    """
    In-memory registry of WashSessions.

    • Capabilities are resolved once, when the session is created.
    • A new upload supersedes the previous one: its pending future is
      cancelled if it has not started, and its result is ignored otherwise.
    """

    def __init__(self,
                 compositor_service: CompositorService = None,
                 platform_service: PlatformService = None,
                 max_workers: int = None):
        self.compositor_service = compositor_service or CompositorService()
        self.platform_service = platform_service or PlatformService()
        self.max_workers = max_workers or int(os.getenv("SESSION_WORKERS", "2"))
        self._sessions: Dict[str, WashSession] = {}
        self._pending: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    # ─── Registry ──────────────────────────────────────────────────
    def get_or_create(self, session_id: str = None, user_agent: str = None) -> WashSession:
        """Get existing session or create new one."""
        with self._lock:
            if session_id and session_id in self._sessions:
                return self._sessions[session_id]
            session_id = session_id or str(uuid.uuid4())
            session = WashSession(session_id, self.platform_service.detect(user_agent))
            self._sessions[session_id] = session
            logger.info(f"Created session {session_id} (mobile={session.capabilities.is_mobile})")
            return session

    def get(self, session_id: str) -> Optional[WashSession]:
        return self._sessions.get(session_id)

    def clear(self, session_id: str) -> bool:
        """Drop a session and invalidate anything still running for it."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            pending = self._pending.pop(session_id, None)
        if pending is not None:
            pending.cancel()
        if session is None:
            return False
        session.clear()
        return True

    def __len__(self) -> int:
        return len(self._sessions)

    # ─── Work ──────────────────────────────────────────────────────
    def wash(self, session: WashSession, data: bytes,
             filename: str = None) -> Tuple[OutputImage, bool]:
        """
        Run one upload synchronously.
        Returns (output, accepted); accepted is False when a newer upload
        arrived while this one was running.
        """
        token = session.begin_upload(filename)
        return self._run(session, token, data, filename)

    def submit(self, session: WashSession, data: bytes, filename: str = None) -> Future:
        """Run one upload on the worker pool; resolves to (output, accepted)."""
        token = session.begin_upload(filename)
        with self._lock:
            previous = self._pending.get(session.session_id)
            future = self._get_executor().submit(self._run, session, token, data, filename)
            self._pending[session.session_id] = future

        # Callbacks take the lock, and cancel() runs them inline.
        if previous is not None and previous.cancel():
            logger.info(f"Cancelled pending upload for session {session.session_id}")
        future.add_done_callback(
            lambda done, session_id=session.session_id: self._forget(session_id, done))
        return future

    def pending_count(self) -> int:
        return len(self._pending)

    def _forget(self, session_id: str, future: Future):
        """Drop a finished future unless a newer one has replaced it."""
        with self._lock:
            if self._pending.get(session_id) is future:
                del self._pending[session_id]

    def shutdown(self, wait: bool = True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                thread_name_prefix="washed")
        return self._executor

    def _run(self, session: WashSession, token: int, data: bytes,
             filename: str = None) -> Tuple[OutputImage, bool]:
        output = wash_image(data, filename=filename,
                            compositor_service=self.compositor_service,
                            image_service=self.compositor_service.image_service)
        accepted = session.complete(token, output)
        if not accepted:
            logger.info(f"Ignoring superseded result for session {session.session_id}")
        return output, accepted
