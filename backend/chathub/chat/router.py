"""Chat router providing the WebSocket endpoint.

This module provides:
    - WebSocket /ws: Real-time chat messaging

Protocol Flow:
    1. Client connects -> Server assigns a session id
       -> Server sends: {type: "connected", sessionId: "xxx"}
    2. Client sends: {type: "user_join", username, room}
       -> Server sends: user_list (everyone), user_joined (room),
          message_history (requester)
    3. Client sends any other event from the hub's catalog
       (send_message, private_message, typing, add_reaction, mark_read,
       join_room, search_messages, get_older_messages)
    4. On disconnect -> Server sends: typing_users (affected rooms),
       user_left (room), user_list (everyone)

Every frame is a JSON object whose ``type`` field names the event. Frames
that are not JSON objects get an ``error`` reply and are otherwise ignored.
"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .connections import connections
from .hub import hub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for one chat session.

    The backend assigns the session id; clients never supply their own.
    Inbound frames are dispatched to the hub and the resulting outbound
    events are queued for their recipients. Nothing here awaits another
    session's socket.

    Args:
        websocket: The WebSocket connection.
    """
    max_sessions = hub.settings.max_sessions
    if max_sessions > 0 and connections.get_connection_count() >= max_sessions:
        logger.warning(
            f"[WS] Hub is full ({max_sessions} sessions). Rejecting new connection."
        )
        await websocket.close(code=1008)  # 1008 = Policy Violation
        return

    session_id = await connections.connect(websocket)
    logger.info(
        f"[WS] Connection accepted. Assigned sessionId={session_id}. "
        f"{connections.get_connection_count()} connections open"
    )
    connections.send(session_id, {"type": "connected", "sessionId": session_id})

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            # Binary frames carry no "text" key and are rejected below
            raw = message.get("text")
            data = None
            if raw is not None:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    data = None
            if not isinstance(data, dict):
                connections.send(session_id, {
                    "type": "error",
                    "error": "Invalid frame: expected a JSON object",
                    "code": "validation_error",
                })
                continue

            event_type = data.get("type")
            logger.debug("[WS] Session %s received: type=%s", session_id, event_type)
            connections.deliver(hub.dispatch(session_id, event_type, data))

    except WebSocketDisconnect:
        logger.info(f"[WS] Session {session_id} disconnected")
    finally:
        # No awaits here: this also runs when the endpoint task is cancelled
        connections.disconnect(session_id)
        connections.deliver(hub.disconnect(session_id))
