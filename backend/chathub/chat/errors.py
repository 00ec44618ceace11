"""Exception taxonomy for the message hub."""


class HubError(Exception):
    """Base class for all hub errors."""

    code = "hub_error"


class SessionNotFound(HubError):
    """An operation referenced a session id that is not registered."""

    code = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class MessageNotFound(HubError):
    """A message id is not present in the room's current log."""

    code = "message_not_found"

    def __init__(self, room: str, message_id: int) -> None:
        super().__init__(f"Message {message_id} not found in room {room}")
        self.room = room
        self.message_id = message_id


class MessageValidationError(HubError):
    """Inbound data failed the hub's bounds or shape checks."""

    code = "validation_error"


class DuplicateMessageId(HubError):
    """A supplied message id collides with, or does not follow, the room's log."""

    code = "duplicate_message_id"

    def __init__(self, room: str, message_id: int) -> None:
        super().__init__(f"Message id {message_id} rejected for room {room}")
        self.room = room
        self.message_id = message_id
