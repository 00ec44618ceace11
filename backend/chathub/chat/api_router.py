"""Read-only REST views over the chat hub.

Endpoints:
    GET /api/messages                 - History of the default room
    GET /api/messages/{room}          - History of a room
    GET /api/messages/{room}/older    - One page of older history
    GET /api/users                    - Current presence list
    GET /api/rooms                    - Known room names
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from .hub import hub
from .models import Message, Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class MessagePage(BaseModel):
    """Response model for paginated history."""
    room: str
    messages: List[Message]
    hasMore: bool


@router.get("/messages", response_model=List[Message])
async def get_default_room_messages() -> List[Message]:
    """Get the full history of the default room."""
    return hub.history(hub.settings.default_room)


@router.get("/messages/{room}", response_model=List[Message])
async def get_room_messages(room: str) -> List[Message]:
    """Get the full current history of a room, oldest first.

    Args:
        room: The room name.

    Returns:
        Up to the room's capacity of messages. Unknown rooms return [].
    """
    return hub.history(room)


@router.get("/messages/{room}/older", response_model=MessagePage)
async def get_older_messages(
    room: str,
    beforeId: Optional[int] = Query(None, description="Cursor: return messages before this ID"),
    limit: Optional[int] = Query(None, ge=1, description="Number of messages to return"),
) -> MessagePage:
    """Get one page of history for lazy loading.

    Without ``beforeId`` the newest page is returned. An unknown ``beforeId``
    returns an empty page with ``hasMore`` false.

    Example:
        GET /api/messages/general/older?limit=20
        GET /api/messages/general/older?beforeId=42&limit=20
    """
    messages, has_more = hub.older_page(room, beforeId, limit)
    return MessagePage(room=room, messages=messages, hasMore=has_more)


@router.get("/users", response_model=List[Session])
async def get_users() -> List[Session]:
    """Get all connected sessions that have joined."""
    return hub.users()


@router.get("/rooms", response_model=List[str])
async def get_rooms() -> List[str]:
    """Get the names of all rooms that have a message log."""
    return hub.rooms()
