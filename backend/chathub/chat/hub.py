"""Broadcast router for the chat hub.

The hub consumes inbound events, mutates :class:`HubState` in a fixed order
and returns the outbound events each one produces. It performs no I/O:
every handler runs under the state lock, computes recipients and payloads,
and hands back a list of :class:`Outbound` records. The transport delivers
them after the lock is released, so a slow recipient can never stall state
mutation or delivery to anyone else.

Inbound events (``type`` field of each WebSocket frame):
    - user_join: register under a display name and enter a room
    - join_room: switch rooms
    - send_message: post to a room
    - private_message: direct message to one session
    - typing: start/stop typing indicator
    - add_reaction: toggle an emoji on a message
    - mark_read: reset an unread bucket
    - search_messages: substring search in a room
    - get_older_messages: page backwards through a room

Disconnect is not a wire event; the transport calls :meth:`ChatHub.disconnect`.

Events from sessions that have not joined are dropped silently. Invalid
payloads and unknown event types produce an ``error`` event for the
requester only.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from chathub.config import HubSettings, get_config

from .errors import HubError, MessageNotFound, MessageValidationError, SessionNotFound
from .models import PRIVATE_BUCKET, Message, Session
from .schemas import (
    AddReactionPayload,
    JoinRoomPayload,
    MarkReadPayload,
    OlderMessagesPayload,
    PrivateMessagePayload,
    SearchPayload,
    SendMessagePayload,
    TypingPayload,
    UserJoinPayload,
)
from .state import HubState

logger = logging.getLogger(__name__)

MAX_EMOJI_LENGTH = 32


@dataclass(frozen=True)
class Outbound:
    """One outbound event addressed to a set of sessions."""
    event: str
    payload: Dict[str, Any]
    targets: Tuple[str, ...]

    def frame(self) -> Dict[str, Any]:
        """JSON frame sent over the wire."""
        return {"type": self.event, **self.payload}


class ChatHub:
    """Routes inbound chat events through :class:`HubState`.

    Args:
        state: Shared state to operate on.
        settings: Hub limits (body length, page sizes, default room).
    """

    def __init__(self, state: HubState, settings: Optional[HubSettings] = None) -> None:
        self.state = state
        self.settings = settings or HubSettings()

    @classmethod
    def from_settings(cls, settings: HubSettings) -> "ChatHub":
        state = HubState(
            room_log_capacity=settings.room_log_capacity,
            default_room=settings.default_room,
        )
        return cls(state, settings)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, session_id: str, event_type: Optional[str], data: Dict[str, Any]) -> List[Outbound]:
        """Run the handler registered for ``event_type``.

        Args:
            session_id: Connection the frame arrived on.
            event_type: The frame's ``type`` field.
            data: The whole frame; extra keys are ignored.

        Returns:
            Outbound events to deliver, in order.
        """
        entry = EVENT_HANDLERS.get(event_type or "")
        if entry is None:
            logger.warning(f"[Hub] Unknown event type from {session_id}: {event_type}")
            return [self._error(session_id, f"Unknown event type: {event_type}", "unknown_event")]

        schema, handler = entry
        try:
            payload = schema.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "payload"
            return [self._error(
                session_id,
                f"Invalid {event_type} payload: {field}: {first['msg']}",
                MessageValidationError.code,
            )]

        try:
            return handler(self, session_id, payload)
        except SessionNotFound as e:
            logger.debug(f"[Hub] Dropped {event_type}: {e}")
            return []
        except HubError as e:
            logger.info(f"[Hub] Rejected {event_type} from {session_id}: {e}")
            return [self._error(session_id, str(e), e.code)]

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    def join(self, session_id: str, username: str, room: Optional[str] = None) -> List[Outbound]:
        """Register a session and put it in ``room``.

        Emits the presence list to everyone, a join notice to the room and the
        room's history to the newcomer. A repeated join simply replaces the
        session's identity and room.
        """
        username = self._clean_username(username)
        room = self._clean_room(room)

        with self.state.lock:
            outbound: List[Outbound] = []
            previous = self.state.sessions.get(session_id)
            if previous is not None and previous.currentRoom != room:
                outbound.extend(self._clear_typing(session_id))

            session = self.state.sessions.register(session_id, username, room)
            self.state.messages.ensure_room(room)

            outbound.append(self._presence())
            outbound.append(Outbound(
                "user_joined",
                self._notice(session, room),
                tuple(self.state.sessions.in_room(room)),
            ))
            outbound.append(self._history(session_id, room))

        logger.info(f"[Hub] {username} ({session_id}) joined room: {room}")
        return outbound

    def switch_room(self, session_id: str, room: str) -> List[Outbound]:
        """Move a session to another room.

        Typing flags are cleared, the old room gets a leave notice, the new
        room a join notice, the requester the new history, and everyone the
        presence list. Unread counters are left alone. Switching to the room
        the session is already in only resends history.
        """
        room = self._clean_room(room)

        with self.state.lock:
            session = self._sender(session_id, "join_room")
            if session is None:
                return []
            previous_room = session.currentRoom
            if previous_room == room:
                return [self._history(session_id, room)]

            session = self.state.sessions.change_room(session_id, room)
            self.state.messages.ensure_room(room)

            outbound = self._clear_typing(session_id)
            if previous_room is not None:
                outbound.append(Outbound(
                    "user_left_room",
                    self._notice(session, previous_room),
                    tuple(self.state.sessions.in_room(previous_room)),
                ))
            outbound.append(Outbound(
                "user_joined_room",
                self._notice(session, room),
                tuple(self.state.sessions.in_room(room)),
            ))
            outbound.append(self._history(session_id, room))
            outbound.append(self._presence())

        logger.info(f"[Hub] {session.username} switched {previous_room} -> {room}")
        return outbound

    def disconnect(self, session_id: str) -> List[Outbound]:
        """Forget a session entirely.

        Clears its typing flags (notifying every room that changed), discards
        its unread counters, tells its room it left and refreshes presence.
        Disconnecting an unknown session emits nothing.
        """
        with self.state.lock:
            try:
                session = self.state.sessions.remove(session_id)
            except SessionNotFound:
                logger.debug(f"[Hub] Disconnect for unregistered session {session_id}")
                return []

            outbound = self._clear_typing(session_id)
            self.state.unread.discard(session_id)
            if session.currentRoom is not None:
                outbound.append(Outbound(
                    "user_left",
                    self._notice(session, session.currentRoom),
                    tuple(self.state.sessions.in_room(session.currentRoom)),
                ))
            outbound.append(self._presence())

        logger.info(f"[Hub] {session.username} ({session_id}) left the chat")
        return outbound

    # =========================================================================
    # Messages
    # =========================================================================

    def post_message(self, session_id: str, body: str, room: Optional[str] = None) -> List[Outbound]:
        """Append a message to a room and fan it out.

        Every other session that is not in the room gets its unread counter
        for the room bumped and its own updated counters pushed.
        """
        with self.state.lock:
            sender = self._sender(session_id, "send_message")
            if sender is None:
                return []
            body = self._clean_body(body)
            room = self._clean_room(room) if room is not None else sender.currentRoom

            message = self.state.messages.append(room, Message(
                body=body,
                senderId=session_id,
                senderName=sender.username,
                room=room,
            ))
            outbound = [Outbound(
                "receive_message",
                message.model_dump(),
                tuple(self.state.sessions.in_room(room)),
            )]

            for other in self.state.sessions.list_all():
                if other.id == session_id or other.currentRoom == room:
                    continue
                self.state.unread.increment(other.id, room)
                outbound.append(self._unread_update(other.id))

        logger.debug(f"[Hub] Message {message.id} from {sender.username} in {room}")
        return outbound

    def post_private_message(self, session_id: str, recipient_id: str, body: str) -> List[Outbound]:
        """Send a direct message to exactly one other session.

        The message goes to the recipient and is echoed to the sender; it is
        never stored in a room log. The recipient's ``private`` counter is
        bumped. An unknown recipient drops the message.
        """
        with self.state.lock:
            sender = self._sender(session_id, "private_message")
            if sender is None:
                return []
            body = self._clean_body(body)
            if self.state.sessions.get(recipient_id) is None:
                logger.debug(f"[Hub] Dropped private message to unknown session {recipient_id}")
                return []

            message = Message(
                id=self.state.messages.next_id(),
                body=body,
                senderId=session_id,
                senderName=sender.username,
                recipientId=recipient_id,
                isPrivate=True,
            )
            targets = tuple(dict.fromkeys((recipient_id, session_id)))
            self.state.unread.increment(recipient_id, PRIVATE_BUCKET)
            outbound = [
                Outbound("private_message", message.model_dump(), targets),
                self._unread_update(recipient_id),
            ]

        logger.debug(f"[Hub] Private message {message.id} {session_id} -> {recipient_id}")
        return outbound

    def react(
        self, session_id: str, message_id: int, emoji: str, room: Optional[str] = None
    ) -> List[Outbound]:
        """Toggle the sender's ``emoji`` reaction on a message.

        The room receives the whole updated message. A message that is not in
        the room's current log is ignored.
        """
        with self.state.lock:
            sender = self._sender(session_id, "add_reaction")
            if sender is None:
                return []
            emoji = emoji.strip()
            if not emoji or len(emoji) > MAX_EMOJI_LENGTH:
                raise MessageValidationError(f"Emoji must be 1-{MAX_EMOJI_LENGTH} characters")
            room = self._clean_room(room) if room is not None else sender.currentRoom
            try:
                message = self.state.messages.toggle_reaction(
                    room, message_id, emoji, sender.username
                )
            except MessageNotFound as e:
                logger.debug(f"[Hub] Reaction ignored: {e}")
                return []
            return [Outbound(
                "message_updated",
                message.model_dump(),
                tuple(self.state.sessions.in_room(room)),
            )]

    # =========================================================================
    # Typing and unread
    # =========================================================================

    def set_typing(self, session_id: str, is_typing: bool, room: Optional[str] = None) -> List[Outbound]:
        """Set or clear the typing flag and notify the rest of the room."""
        with self.state.lock:
            sender = self._sender(session_id, "typing")
            if sender is None:
                return []
            room = self._clean_room(room) if room is not None else sender.currentRoom
            self.state.typing.set_typing(room, session_id, sender.username, is_typing)
            return self._typing_updates(room, exclude=session_id)

    def mark_read(self, session_id: str, bucket: str) -> List[Outbound]:
        """Reset one unread bucket (a room name or ``"private"``)."""
        with self.state.lock:
            if self._sender(session_id, "mark_read") is None:
                return []
            bucket = self._clean_room(bucket, allow_private=True)
            self.state.unread.reset(session_id, bucket)
            return [self._unread_update(session_id)]

    # =========================================================================
    # Reads
    # =========================================================================

    def search(self, session_id: str, query: str, room: Optional[str] = None) -> List[Outbound]:
        room = self._read_room(session_id, room)
        results = self.state.messages.search(room, query)
        return [Outbound(
            "search_results",
            {"room": room, "query": query, "results": [m.model_dump() for m in results]},
            (session_id,),
        )]

    def load_older(
        self,
        session_id: str,
        room: Optional[str] = None,
        before_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Outbound]:
        room = self._read_room(session_id, room)
        messages, has_more = self.older_page(room, before_id, limit)
        return [Outbound(
            "older_messages",
            {
                "room": room,
                "beforeId": before_id,
                "messages": [m.model_dump() for m in messages],
                "hasMore": has_more,
            },
            (session_id,),
        )]

    def older_page(
        self, room: str, before_id: Optional[int] = None, limit: Optional[int] = None
    ) -> Tuple[List[Message], bool]:
        """One page of history plus whether anything older remains.

        ``limit`` defaults to the configured page size and is capped at the
        maximum page size.

        Raises:
            MessageValidationError: if ``limit`` is below 1.
        """
        if limit is None:
            limit = self.settings.default_page_size
        if limit < 1:
            raise MessageValidationError("Page limit must be at least 1")
        limit = min(limit, self.settings.max_page_size)
        with self.state.lock:
            messages = self.state.messages.get_older(room, before_id, limit)
            has_more = bool(messages) and self.state.messages.has_older(room, messages[0].id)
        return messages, has_more

    def history(self, room: str) -> List[Message]:
        return self.state.messages.get_history(room)

    def users(self) -> List[Session]:
        return self.state.sessions.list_all()

    def rooms(self) -> List[str]:
        return self.state.messages.rooms()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _sender(self, session_id: str, event_type: str) -> Optional[Session]:
        session = self.state.sessions.get(session_id)
        if session is None:
            logger.debug(f"[Hub] Dropped {event_type} from unregistered session {session_id}")
        return session

    def _read_room(self, session_id: str, room: Optional[str]) -> str:
        if room is not None:
            return self._clean_room(room)
        session = self.state.sessions.get(session_id)
        if session is not None and session.currentRoom is not None:
            return session.currentRoom
        return self.settings.default_room

    def _clean_body(self, body: str) -> str:
        if not body or not body.strip():
            raise MessageValidationError("Message body cannot be empty")
        if len(body) > self.settings.max_message_length:
            raise MessageValidationError(
                f"Message body exceeds {self.settings.max_message_length} characters"
            )
        return body

    def _clean_username(self, username: str) -> str:
        username = username.strip()
        if not username:
            raise MessageValidationError("Username cannot be empty")
        if len(username) > self.settings.max_username_length:
            raise MessageValidationError(
                f"Username exceeds {self.settings.max_username_length} characters"
            )
        return username

    def _clean_room(self, room: Optional[str], allow_private: bool = False) -> str:
        if room is None:
            return self.settings.default_room
        room = room.strip()
        if not room:
            raise MessageValidationError("Room name cannot be empty")
        if len(room) > self.settings.max_room_name_length:
            raise MessageValidationError(
                f"Room name exceeds {self.settings.max_room_name_length} characters"
            )
        # "private" is the direct-message unread bucket, never a room
        if room == PRIVATE_BUCKET and not allow_private:
            raise MessageValidationError(f"'{PRIVATE_BUCKET}' is reserved and cannot be used as a room")
        return room

    def _presence(self) -> Outbound:
        sessions = self.state.sessions.list_all()
        return Outbound(
            "user_list",
            {"users": [s.model_dump() for s in sessions]},
            tuple(s.id for s in sessions),
        )

    def _history(self, session_id: str, room: str) -> Outbound:
        messages = self.state.messages.get_history(room)
        return Outbound(
            "message_history",
            {"room": room, "messages": [m.model_dump() for m in messages]},
            (session_id,),
        )

    def _unread_update(self, session_id: str) -> Outbound:
        return Outbound(
            "unread_update",
            {"counts": self.state.unread.snapshot(session_id)},
            (session_id,),
        )

    @staticmethod
    def _notice(session: Session, room: str) -> Dict[str, Any]:
        return {"id": session.id, "username": session.username, "room": room}

    @staticmethod
    def _error(session_id: str, error: str, code: str) -> Outbound:
        return Outbound("error", {"error": error, "code": code}, (session_id,))

    def _clear_typing(self, session_id: str) -> List[Outbound]:
        outbound: List[Outbound] = []
        for room in self.state.typing.clear_session(session_id):
            outbound.extend(self._typing_updates(room, exclude=session_id))
        return outbound

    def _typing_updates(self, room: str, exclude: str) -> List[Outbound]:
        """Typing lists for everyone in ``room`` except ``exclude``.

        Nobody sees themselves in their own list, so sessions that are typing
        get a personal copy; everyone else shares one event.
        """
        members = [sid for sid in self.state.sessions.in_room(room) if sid != exclude]
        typing_ids = set(self.state.typing.typing_sessions(room))

        outbound: List[Outbound] = []
        watchers = tuple(sid for sid in members if sid not in typing_ids)
        if watchers:
            outbound.append(Outbound(
                "typing_users",
                {"room": room, "users": self.state.typing.get_typing_users(room)},
                watchers,
            ))
        for sid in members:
            if sid in typing_ids:
                outbound.append(Outbound(
                    "typing_users",
                    {"room": room, "users": self.state.typing.get_typing_users(room, excluding=sid)},
                    (sid,),
                ))
        return outbound


Handler = Callable[[ChatHub, str, Any], List[Outbound]]

# Static dispatch table: wire event name -> (payload schema, handler)
EVENT_HANDLERS: Dict[str, Tuple[Type[BaseModel], Handler]] = {
    "user_join": (
        UserJoinPayload,
        lambda hub, sid, p: hub.join(sid, p.username, p.room),
    ),
    "join_room": (
        JoinRoomPayload,
        lambda hub, sid, p: hub.switch_room(sid, p.room),
    ),
    "send_message": (
        SendMessagePayload,
        lambda hub, sid, p: hub.post_message(sid, p.message, p.room),
    ),
    "private_message": (
        PrivateMessagePayload,
        lambda hub, sid, p: hub.post_private_message(sid, p.to, p.message),
    ),
    "typing": (
        TypingPayload,
        lambda hub, sid, p: hub.set_typing(sid, p.isTyping, p.room),
    ),
    "add_reaction": (
        AddReactionPayload,
        lambda hub, sid, p: hub.react(sid, p.messageId, p.emoji, p.room),
    ),
    "mark_read": (
        MarkReadPayload,
        lambda hub, sid, p: hub.mark_read(sid, p.room),
    ),
    "search_messages": (
        SearchPayload,
        lambda hub, sid, p: hub.search(sid, p.query, p.room),
    ),
    "get_older_messages": (
        OlderMessagesPayload,
        lambda hub, sid, p: hub.load_older(sid, p.room, p.beforeId, p.limit),
    ),
}


# Global singleton instance used by the WebSocket and REST routers
hub = ChatHub.from_settings(get_config().hub)
