"""Pydantic schemas for inbound WebSocket event payloads.

Field names match the wire protocol (camelCase). Bounds that depend on
configuration (body length, username length) are enforced by the hub, not
here; these models only check shape and types.
"""
from typing import Optional

from pydantic import BaseModel, Field


class UserJoinPayload(BaseModel):
    """``user_join``: register the connection under a display name."""
    username: str = Field(..., description="Display name")
    room: Optional[str] = Field(default=None, description="Room to join (default room if omitted)")


class JoinRoomPayload(BaseModel):
    """``join_room``: switch the session to another room."""
    room: str = Field(..., description="Room to switch to")


class SendMessagePayload(BaseModel):
    """``send_message``: post to a room."""
    message: str = Field(..., description="Message body")
    room: Optional[str] = Field(default=None, description="Target room (current room if omitted)")


class PrivateMessagePayload(BaseModel):
    """``private_message``: direct message to one session."""
    to: str = Field(..., description="Recipient session ID")
    message: str = Field(..., description="Message body")


class TypingPayload(BaseModel):
    """``typing``: start or stop the typing indicator."""
    isTyping: bool = Field(default=True)
    room: Optional[str] = None


class AddReactionPayload(BaseModel):
    """``add_reaction``: toggle an emoji reaction on a message."""
    messageId: int = Field(..., description="Message ID")
    emoji: str = Field(..., description="Emoji to toggle")
    room: Optional[str] = None


class MarkReadPayload(BaseModel):
    """``mark_read``: reset an unread bucket (room name or "private")."""
    room: str = Field(..., description="Unread bucket to reset")


class SearchPayload(BaseModel):
    """``search_messages``: substring search within one room."""
    query: str = Field(default="")
    room: Optional[str] = None


class OlderMessagesPayload(BaseModel):
    """``get_older_messages``: page backwards through a room's history."""
    room: Optional[str] = None
    beforeId: Optional[int] = Field(default=None, description="Cursor message ID")
    limit: Optional[int] = Field(default=None, description="Page size")
