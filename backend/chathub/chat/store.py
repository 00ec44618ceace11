"""Room message store: bounded, ordered message log per room.

Each room keeps at most ``capacity`` messages in a ``deque(maxlen=...)``;
appending to a full log silently evicts the oldest entry. Message ids come
from one process-wide counter, so they are unique across rooms and increase
in append order. They double as the ordering field for pagination.

All operations run under a single lock. Reads return fresh lists and
messages are frozen, so a reader never observes a half-evicted log or a
half-updated reaction map.
"""
import bisect
import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional

from .errors import DuplicateMessageId, MessageNotFound
from .models import Message

logger = logging.getLogger(__name__)

DEFAULT_ROOM_CAPACITY = 500


class RoomMessageStore:
    """Per-room bounded message logs with reaction toggling."""

    def __init__(
        self,
        capacity: int = DEFAULT_ROOM_CAPACITY,
        default_room: Optional[str] = "general",
    ) -> None:
        self.capacity = capacity
        self._logs: Dict[str, Deque[Message]] = {}
        self._last_id = 0
        self._lock = threading.Lock()
        if default_room:
            self.ensure_room(default_room)

    # =========================================================================
    # Rooms
    # =========================================================================

    def _log_for(self, room: str) -> Deque[Message]:
        """Get-or-create accessor; caller must hold the lock."""
        log = self._logs.get(room)
        if log is None:
            log = deque(maxlen=self.capacity)
            self._logs[room] = log
        return log

    def ensure_room(self, room: str) -> None:
        with self._lock:
            self._log_for(room)

    def rooms(self) -> List[str]:
        with self._lock:
            return list(self._logs.keys())

    # =========================================================================
    # Ids and appends
    # =========================================================================

    def next_id(self) -> int:
        """Reserve the next message id."""
        with self._lock:
            self._last_id += 1
            return self._last_id

    def append(self, room: str, message: Message) -> Message:
        """Store ``message`` at the end of ``room``'s log.

        Messages without an id get the next counter value. A supplied id must
        be greater than every id the store has issued or accepted; anything
        else is a collision and raises :class:`DuplicateMessageId`.

        Returns:
            The stored message (with its id and room set).
        """
        with self._lock:
            if message.id is None:
                self._last_id += 1
                message_id = self._last_id
            else:
                if message.id <= self._last_id:
                    raise DuplicateMessageId(room, message.id)
                message_id = self._last_id = message.id

            stored = message.model_copy(update={"id": message_id, "room": room})
            log = self._log_for(room)
            log.append(stored)
        return stored

    # =========================================================================
    # Reads
    # =========================================================================

    def get_history(self, room: str) -> List[Message]:
        """Full current log for ``room``, oldest first."""
        with self._lock:
            return list(self._logs.get(room, ()))

    def message_count(self, room: str) -> int:
        with self._lock:
            return len(self._logs.get(room, ()))

    def find(self, room: str, message_id: int) -> Optional[Message]:
        with self._lock:
            index = self._index_of(room, message_id)
            return None if index is None else self._logs[room][index]

    def _index_of(self, room: str, message_id: int) -> Optional[int]:
        for index, message in enumerate(self._logs.get(room, ())):
            if message.id == message_id:
                return index
        return None

    def get_older(
        self,
        room: str,
        before_id: Optional[int] = None,
        limit: int = 20,
    ) -> List[Message]:
        """Page backwards through a room's log.

        Args:
            room: Room to read.
            before_id: Cursor. Without it the last ``limit`` messages are
                returned. With it, up to ``limit`` messages strictly before the
                cursor are returned; an unknown cursor yields an empty page.
            limit: Maximum page size.

        Returns:
            Messages oldest first.
        """
        if limit <= 0:
            return []
        with self._lock:
            messages = list(self._logs.get(room, ()))
            if before_id is None:
                return messages[-limit:]
            index = self._index_of(room, before_id)
        if index is None:
            logger.debug(f"[Store] Unknown cursor {before_id} for room {room}")
            return []
        return messages[max(0, index - limit):index]

    def has_older(self, room: str, message_id: int) -> bool:
        """True if ``room`` holds a message older than ``message_id``."""
        with self._lock:
            index = self._index_of(room, message_id)
        return bool(index)

    def search(self, room: str, query: str) -> List[Message]:
        """Case-insensitive substring match on body or sender name."""
        needle = query.casefold()
        with self._lock:
            messages = list(self._logs.get(room, ()))
        return [
            m for m in messages
            if needle in m.body.casefold() or needle in m.senderName.casefold()
        ]

    # =========================================================================
    # Reactions
    # =========================================================================

    def toggle_reaction(
        self, room: str, message_id: int, emoji: str, username: str
    ) -> Message:
        """Add ``username`` to ``reactions[emoji]``, or remove it if present.

        The emoji key is created with its first username and removed with its
        last, so an empty reaction list never exists. Usernames are kept
        sorted, so toggling twice restores the previous map exactly.

        Raises:
            MessageNotFound: if the message is not in the room's current log.
        """
        with self._lock:
            index = self._index_of(room, message_id)
            if index is None:
                raise MessageNotFound(room, message_id)
            log = self._logs[room]
            current = log[index]

            reactions = {e: list(users) for e, users in current.reactions.items()}
            users = reactions.get(emoji, [])
            if username in users:
                users.remove(username)
            else:
                bisect.insort(users, username)
            if users:
                reactions[emoji] = users
            else:
                reactions.pop(emoji, None)

            updated = current.model_copy(update={"reactions": reactions})
            log[index] = updated
        return updated

    def clear(self) -> None:
        """Drop every room's messages (keeps room names)."""
        with self._lock:
            for log in self._logs.values():
                log.clear()
