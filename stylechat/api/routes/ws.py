"""WebSocket endpoint carrying chat session events.

Protocol
────────
Client connects to ``ws://.../ws/chat`` and sends JSON text frames:

    - ``{"event": "join_chat",    "session_id": "...", "user_id": "..."}``
    - ``{"event": "user_message", "session_id": "...", "user_id": "...", "message": "..."}``
    - ``{"event": "typing",       "session_id": "...", "is_typing": true}``

Server → client frames are ``{"event": name, "data": {...}}`` with names
``chat_history``, ``message_sent``, ``user_message``, ``assistant_typing``,
``assistant_message``, ``user_typing`` and ``error``.

``session_id``, ``user_id`` and ``message`` must be strings when present;
any other type is answered with an ``error`` frame and the frame is dropped.

Storefront widgets written against the Socket.IO chat events, which use
``bot_message`` and ``bot_typing`` with camelCase fields, map them as follows:

    - ``bot_message`` → ``assistant_message``
    - ``bot_typing`` → ``assistant_typing``
    - ``isTyping`` → ``is_typing``
    - ``messageId`` → ``message_id``
    - ``sessionId`` / ``userId`` → ``session_id`` / ``user_id``

Each ``user_message`` is handled in its own task so a connection keeps
receiving (typing, further messages) while a reply is being generated.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from stylechat.api.deps import get_services

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter()

# Frame fields that must be strings when present
TEXT_FIELDS = ("session_id", "user_id", "message")


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket) -> None:
    services = get_services(websocket)
    chat = services.chat
    hub = services.hub
    pending: Set[asyncio.Task] = set()

    await websocket.accept()
    logger.info("Chat client connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame: Dict[str, Any] = json.loads(raw)
            except json.JSONDecodeError:
                await hub.emit(websocket, "error", {"message": "Invalid JSON frame"})
                continue
            if not isinstance(frame, dict):
                await hub.emit(websocket, "error", {"message": "Invalid JSON frame"})
                continue

            invalid = [
                key for key in TEXT_FIELDS if not isinstance(frame.get(key), (str, type(None)))
            ]
            if invalid:
                await hub.emit(
                    websocket, "error", {"message": f"Fields must be strings: {', '.join(invalid)}"}
                )
                continue

            event = frame.get("event")
            session_id = frame.get("session_id")
            user_id = frame.get("user_id")

            if event == "join_chat":
                await chat.join(websocket, session_id, user_id)
            elif event == "user_message":
                task = asyncio.create_task(
                    chat.handle_user_message(websocket, session_id, frame.get("message"), user_id)
                )
                pending.add(task)
                task.add_done_callback(pending.discard)
            elif event == "typing":
                await chat.typing(websocket, session_id, frame.get("is_typing", False))
            else:
                await hub.emit(websocket, "error", {"message": f"Unknown event: {event}"})
    except WebSocketDisconnect:
        logger.info("Chat client disconnected")
    finally:
        hub.leave(websocket)
