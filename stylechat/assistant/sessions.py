"""Chat sessions: room fan-out and the handlers behind each chat event.

``SessionHub`` keeps the connections joined to each session and delivers
events as ``{"event": name, "data": payload}`` JSON frames. ``ChatService``
implements the events a chat widget sends (join, message, typing) on top of
a ``ChatStore`` and a ``Responder``.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Set

from stylechat.assistant.models import (
    SENDER_ASSISTANT,
    SENDER_USER,
    BotReply,
    ChatContext,
    ChatTurn,
    SessionSummary,
)
from stylechat.assistant.prompts import WELCOME_MESSAGE
from stylechat.assistant.responder import Responder
from stylechat.assistant.stores import ChatStore
from stylechat.exceptions import ValidationError

# Configure module logger
logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 1000
HISTORY_LIMIT = 50
CONTEXT_HISTORY_LIMIT = 10


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


class SessionHub:
    """Rooms of connections keyed by chat session id."""

    def __init__(self):
        self._rooms: Dict[str, Set[Connection]] = {}

    def join(self, conn: Connection, session_id: str) -> None:
        self._rooms.setdefault(session_id, set()).add(conn)

    def leave(self, conn: Connection, session_id: Optional[str] = None) -> None:
        """Remove ``conn`` from one room, or from every room."""
        room_ids = [session_id] if session_id else list(self._rooms)
        for room_id in room_ids:
            members = self._rooms.get(room_id)
            if members is None:
                continue
            members.discard(conn)
            if not members:
                del self._rooms[room_id]

    def members(self, session_id: str) -> Set[Connection]:
        return set(self._rooms.get(session_id, ()))

    async def emit(self, conn: Connection, event: str, data: Dict[str, Any]) -> None:
        try:
            await conn.send_json({"event": event, "data": data})
        except Exception as e:
            logger.warning(
                "Dropping connection after failed send",
                extra={"event_name": event, "error": str(e)},
            )
            self.leave(conn)

    async def emit_to_room(self, session_id: str, event: str, data: Dict[str, Any]) -> None:
        for conn in self.members(session_id):
            await self.emit(conn, event, data)

    async def broadcast_except(
        self, session_id: str, sender: Connection, event: str, data: Dict[str, Any]
    ) -> None:
        for conn in self.members(session_id):
            if conn is not sender:
                await self.emit(conn, event, data)


def turn_payload(turn: ChatTurn) -> Dict[str, Any]:
    return {
        "message": turn.message,
        "sender": turn.sender,
        "timestamp": turn.created_at.isoformat() if turn.created_at else None,
        "message_id": turn.id,
    }


class ChatService:
    """Handlers for the chat widget's events.

    Turns are appended, never rewritten, so concurrent messages in one
    session are all kept; their order is the order the writes complete.
    """

    def __init__(self, store: ChatStore, hub: SessionHub, responder: Responder):
        self.store = store
        self.hub = hub
        self.responder = responder

    async def history(
        self, session_id: str, user_id: Optional[str] = None, limit: int = HISTORY_LIMIT
    ) -> List[ChatTurn]:
        if not session_id:
            raise ValidationError("Session ID is required")
        return await self.store.history(session_id, user_id, limit)

    async def sessions_for_user(self, user_id: str) -> List[SessionSummary]:
        if not user_id:
            raise ValidationError("User ID is required")
        return await self.store.sessions_for_user(user_id)

    async def join(
        self, conn: Connection, session_id: Optional[str], user_id: Optional[str] = None
    ) -> None:
        """Join a session room, send its history and greet new sessions."""
        if not session_id:
            await self.hub.emit(conn, "error", {"message": "Session ID is required"})
            return

        try:
            self.hub.join(conn, session_id)
            logger.info("Client joined session", extra={"session_id": session_id})

            history = await self.store.history(session_id, user_id or None)
            await self.hub.emit(
                conn, "chat_history", {"messages": [t.to_dict() for t in history]}
            )

            if not history:
                welcome = await self.store.append(
                    ChatTurn(session_id=session_id, sender=SENDER_ASSISTANT, message=WELCOME_MESSAGE)
                )
                await self.hub.emit_to_room(session_id, "assistant_message", turn_payload(welcome))
        except Exception:
            logger.exception("Failed to join chat session", extra={"session_id": session_id})
            await self.hub.emit(conn, "error", {"message": "Failed to join chat session"})

    async def handle_user_message(
        self,
        conn: Connection,
        session_id: Optional[str],
        message: Optional[str],
        user_id: Optional[str] = None,
    ) -> Optional[BotReply]:
        """Persist a shopper message, answer it and fan both out to the room.

        Returns:
            The assistant's reply, or None when the message was rejected or
            processing failed (the sender gets an ``error`` event).
        """
        if not session_id or not message:
            await self.hub.emit(
                conn, "error", {"message": "Session ID and message are required"}
            )
            return None

        user_id = user_id or None
        try:
            text = message.strip()[:MAX_MESSAGE_CHARS]
            if not text:
                await self.hub.emit(conn, "error", {"message": "Message cannot be empty"})
                return None

            user_turn = await self.store.append(
                ChatTurn(session_id=session_id, user_id=user_id, sender=SENDER_USER, message=text)
            )
            await self.hub.emit(conn, "message_sent", turn_payload(user_turn))
            await self.hub.broadcast_except(session_id, conn, "user_message", turn_payload(user_turn))

            await self.hub.emit_to_room(session_id, "assistant_typing", {"is_typing": True})

            recent = await self.store.history(session_id, user_id, CONTEXT_HISTORY_LIMIT)
            reply = await self.responder.respond(
                text,
                ChatContext(session_id=session_id, user_id=user_id, recent_history=recent),
            )

            await self.hub.emit_to_room(session_id, "assistant_typing", {"is_typing": False})

            bot_turn = await self.store.append(
                ChatTurn(
                    session_id=session_id,
                    sender=SENDER_ASSISTANT,
                    message=reply.message,
                    product_ids=reply.product_ids,
                )
            )
            payload = turn_payload(bot_turn)
            payload["products"] = (
                [card.to_dict() for card in reply.products] if reply.products else None
            )
            await self.hub.emit_to_room(session_id, "assistant_message", payload)

            logger.info(
                "Assistant message sent",
                extra={"session_id": session_id, "products": len(reply.product_ids)},
            )
            return reply
        except Exception:
            logger.exception("Failed to process user message", extra={"session_id": session_id})
            await self.hub.emit(conn, "error", {"message": "Failed to process message"})
            await self.hub.emit(conn, "assistant_typing", {"is_typing": False})
            return None

    async def typing(self, conn: Connection, session_id: Optional[str], is_typing: bool) -> None:
        if isinstance(session_id, str) and session_id:
            await self.hub.broadcast_except(
                session_id, conn, "user_typing", {"is_typing": bool(is_typing)}
            )
