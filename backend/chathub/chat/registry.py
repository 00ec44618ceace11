"""Session registry: identity and current room of each live connection."""
import logging
import threading
from typing import Dict, List, Optional

from .errors import SessionNotFound
from .models import Session

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps session ids to :class:`Session` records.

    Iteration order is registration order (dict insertion order), which stays
    stable for as long as a session is registered.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def register(self, session_id: str, username: str, room: str) -> Session:
        """Create or overwrite the session for ``session_id``.

        A repeated join for the same id replaces username and room but keeps
        the original registration order.
        """
        session = Session(id=session_id, username=username, currentRoom=room)
        with self._lock:
            self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def lookup(self, session_id: str) -> Session:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def change_room(self, session_id: str, new_room: str) -> Session:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFound(session_id)
            updated = current.model_copy(update={"currentRoom": new_room})
            self._sessions[session_id] = updated
        return updated

    def remove(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def list_all(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def in_room(self, room: str) -> List[str]:
        """Ids of sessions whose current room is ``room``."""
        with self._lock:
            return [s.id for s in self._sessions.values() if s.currentRoom == room]

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
