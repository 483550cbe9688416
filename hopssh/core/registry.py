"""
Session registry for hopssh.

Tracks every session the orchestrator opened, keyed by a stable handle, plus
the single forwarding listener slot. close_all() is the bulk teardown used by
shutdown.
"""

import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owned, insertion-ordered collection of live sessions."""

    def __init__(self) -> None:
        self._sessions: Dict[int, Any] = {}
        self._handles = itertools.count(1)
        self._listener: Optional[Any] = None

    def register(self, session: Any) -> int:
        handle = next(self._handles)
        self._sessions[handle] = session
        logger.debug("[Registry] registered session handle=%d total=%d", handle, len(self._sessions))
        return handle

    def discard(self, handle: int) -> Optional[Any]:
        return self._sessions.pop(handle, None)

    def handle_of(self, session: Any) -> Optional[int]:
        for handle, candidate in self._sessions.items():
            if candidate is session:
                return handle
        return None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session: Any) -> bool:
        return self.handle_of(session) is not None

    @property
    def listener(self) -> Optional[Any]:
        return self._listener

    def attach_listener(self, listener: Any) -> None:
        if self._listener is not None:
            raise RuntimeError("A forwarding listener is already active")
        self._listener = listener

    async def close_all(self, end_session: Callable[[Any], Awaitable[None]]) -> int:
        """End every session in registration order, then close the listener.

        Never raises; failures are logged and teardown continues.

        Returns the number of sessions that were ended.
        """
        sessions = list(self._sessions.items())
        self._sessions.clear()
        for handle, session in sessions:
            try:
                await end_session(session)
            except Exception as e:
                logger.warning(f"[Registry] Failed to end session {handle}: {e}")

        listener, self._listener = self._listener, None
        if listener is not None:
            try:
                listener.close()
                await listener.wait_closed()
            except Exception as e:
                logger.warning(f"[Registry] Failed to close forwarding listener: {e}")

        logger.info("[Registry] close_all complete: sessions=%d listener=%s", len(sessions), listener is not None)
        return len(sessions)
