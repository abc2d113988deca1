import logging
import threading
import uuid
from typing import Callable, Optional

from toolrelay.core.push_channel import PushChannel

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return uuid.uuid4().hex


class TransportRegistry:
    """Maps session ids to open push channels.

    One instance per server. Registration, lookup and removal happen under a
    lock so the map stays consistent if it is ever touched off the event loop.
    The registry's size is the number of live sessions.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_session_id):
        self._channels: dict[str, PushChannel] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory

    def open(self, channel: PushChannel) -> str:
        """Register a channel under a fresh session id and announce it on the channel."""
        with self._lock:
            session_id = self._id_factory()
            while session_id in self._channels:
                session_id = self._id_factory()
            self._channels[session_id] = channel
        channel.open(session_id)
        logger.info(f"Push channel opened: {session_id} (live={len(self)})")
        return session_id

    def lookup(self, session_id: Optional[str]) -> Optional[PushChannel]:
        if not session_id:
            return None
        with self._lock:
            return self._channels.get(session_id)

    def close(self, session_id: Optional[str]) -> bool:
        """Remove and close a session's channel. Unknown or already-closed ids are a no-op."""
        if not session_id:
            return False
        with self._lock:
            channel = self._channels.pop(session_id, None)
        if channel is None:
            return False
        channel.close()
        logger.info(f"Push channel closed: {session_id} (live={len(self)})")
        return True

    def close_all(self) -> int:
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
        for channel in channels:
            channel.close()
        if channels:
            logger.info(f"Closed {len(channels)} push channels")
        return len(channels)

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)
