"""Data models shared by the hub stores.

Records are frozen pydantic models. Stores never mutate a record in place;
they build a new one with ``model_copy(update=...)`` and swap it in under
their lock, so a snapshot handed to a reader never changes underneath it.
"""
import time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Unread bucket used for direct messages
PRIVATE_BUCKET = "private"


class Session(BaseModel):
    """One live connection and its identity.

    Attributes:
        id: Opaque id assigned by the server on connect (never reused).
        username: Display name chosen by the client; not unique, not verified.
        currentRoom: Room the session is in, or None before join.
        joinedAt: Unix timestamp of the join event.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Session ID")
    username: str = Field(..., description="Display name")
    currentRoom: Optional[str] = Field(default=None, description="Current room")
    joinedAt: float = Field(
        default_factory=time.time,
        description="Timestamp in seconds since epoch"
    )


class Message(BaseModel):
    """A room or private message.

    Attributes:
        id: Monotonic message id assigned by the store (None until stored).
        body: Message text.
        senderId: Session id of the sender.
        senderName: Sender's username at send time.
        room: Room the message belongs to (None for private messages).
        recipientId: Recipient session id (private messages only).
        isPrivate: True for direct messages.
        timestamp: Unix timestamp (seconds since epoch).
        reactions: emoji -> usernames that applied it.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = Field(default=None, description="Monotonic message ID")
    body: str = Field(..., description="Message content")
    senderId: str = Field(..., description="Session ID of the sender")
    senderName: str = Field(..., description="Sender's username at send time")
    room: Optional[str] = Field(default=None, description="Room (None if private)")
    recipientId: Optional[str] = Field(default=None, description="Recipient session ID")
    isPrivate: bool = Field(default=False, description="Direct message flag")
    timestamp: float = Field(
        default_factory=time.time,
        description="Timestamp in seconds since epoch"
    )
    reactions: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="emoji -> usernames"
    )
