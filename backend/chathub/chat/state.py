"""HubState: the single owner of all shared chat state.

Components guard their own single operations. ``lock`` serializes the
compound sequences the hub runs per event (for example an append followed by
the unread fan-out), so no event ever observes another event half-applied.
Lock order is always hub lock first, then a component lock.
"""
import threading
from typing import Optional

from .registry import SessionRegistry
from .store import DEFAULT_ROOM_CAPACITY, RoomMessageStore
from .typing_tracker import TypingTracker
from .unread import UnreadCounter


class HubState:

    def __init__(
        self,
        room_log_capacity: int = DEFAULT_ROOM_CAPACITY,
        default_room: Optional[str] = "general",
    ) -> None:
        self.lock = threading.RLock()
        self.sessions = SessionRegistry()
        self.messages = RoomMessageStore(room_log_capacity, default_room)
        self.typing = TypingTracker()
        self.unread = UnreadCounter()

    def reset(self) -> None:
        """Wipe everything; rooms survive, messages do not."""
        with self.lock:
            self.sessions.clear()
            self.messages.clear()
            self.typing.clear()
            self.unread.clear()
