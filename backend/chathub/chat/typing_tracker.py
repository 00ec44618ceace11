"""Typing tracker: per-room set of sessions currently signalling typing.

There is no expiry timer. A flag stays until the session turns it off,
switches rooms or disconnects, so callers must invoke :meth:`clear_session`
on both of the latter.
"""
import threading
from typing import Dict, List, Optional


class TypingTracker:

    def __init__(self) -> None:
        # room -> {session_id -> username}
        self._typing: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def _room(self, room: str) -> Dict[str, str]:
        """Get-or-create accessor (empty mapping); caller must hold the lock."""
        return self._typing.setdefault(room, {})

    def set_typing(
        self, room: str, session_id: str, username: str, is_typing: bool
    ) -> None:
        with self._lock:
            if is_typing:
                self._room(room)[session_id] = username
            else:
                entries = self._typing.get(room)
                if entries is not None:
                    entries.pop(session_id, None)
                    if not entries:
                        del self._typing[room]

    def get_typing_users(self, room: str, excluding: Optional[str] = None) -> List[str]:
        """Usernames typing in ``room``, leaving out session ``excluding``."""
        with self._lock:
            entries = self._typing.get(room, {})
            return [name for sid, name in entries.items() if sid != excluding]

    def typing_sessions(self, room: str) -> List[str]:
        with self._lock:
            return list(self._typing.get(room, {}))

    def clear_session(self, session_id: str) -> List[str]:
        """Remove ``session_id`` from every room.

        Returns:
            Rooms whose typing set actually changed.
        """
        affected = []
        with self._lock:
            for room in list(self._typing):
                entries = self._typing[room]
                if session_id in entries:
                    del entries[session_id]
                    affected.append(room)
                    if not entries:
                        del self._typing[room]
        return affected

    def clear(self) -> None:
        with self._lock:
            self._typing.clear()
