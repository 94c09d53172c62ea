"""Chat history endpoints for the StyleChat API.

Live chat runs over the ``/ws/chat`` WebSocket; these endpoints let a
storefront page load a session's history or list a shopper's sessions.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from stylechat.api.deps import Services, get_services

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
)


class ChatTurnResponse(BaseModel):
    """One message of a chat session."""

    message_id: Optional[str] = None
    session_id: str
    user_id: Optional[str] = None
    sender: str = Field(..., description="'user' or 'assistant'")
    message: str
    product_ids: List[str] = Field(default_factory=list)
    timestamp: Optional[datetime] = None


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: List[ChatTurnResponse]
    count: int


class SessionSummaryResponse(BaseModel):
    session_id: str
    last_message: str
    last_message_at: datetime
    message_count: int


class UserSessionsResponse(BaseModel):
    sessions: List[SessionSummaryResponse]
    count: int


@router.get("/history/{session_id}", response_model=ChatHistoryResponse)
async def get_chat_history(
    session_id: str,
    user_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
) -> ChatHistoryResponse:
    """Get the chat history of a session in chronological order.

    Args:
        session_id: Chat session identifier.
        user_id: Restrict to this shopper's turns plus the assistant's.
        limit: Maximum number of most recent turns to return.
    """
    turns = await services.chat.history(session_id, user_id, limit)
    messages = [
        ChatTurnResponse(
            message_id=t.id,
            session_id=t.session_id,
            user_id=t.user_id,
            sender=t.sender,
            message=t.message,
            product_ids=t.product_ids,
            timestamp=t.created_at,
        )
        for t in turns
    ]
    logger.info(
        "Chat history served",
        extra={"session_id": session_id, "count": len(messages)},
    )
    return ChatHistoryResponse(session_id=session_id, messages=messages, count=len(messages))


@router.get("/sessions", response_model=UserSessionsResponse)
async def get_user_sessions(
    user_id: str = "",
    services: Services = Depends(get_services),
) -> UserSessionsResponse:
    """List a shopper's chat sessions, most recently active first."""
    summaries = await services.chat.sessions_for_user(user_id)
    sessions = [
        SessionSummaryResponse(
            session_id=s.session_id,
            last_message=s.last_message,
            last_message_at=s.last_message_at,
            message_count=s.message_count,
        )
        for s in summaries
    ]
    return UserSessionsResponse(sessions=sessions, count=len(sessions))
