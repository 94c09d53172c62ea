"""Prompt text and the context block given to the language model."""

from typing import List, Optional, Sequence

from stylechat.assistant.models import (
    SENDER_USER,
    CatalogItem,
    ChatTurn,
    UserSummary,
)

STORE_NAME = "Jazzup Fashion"

HISTORY_TURNS_IN_CONTEXT = 4
DESCRIPTION_PREVIEW_CHARS = 100

SYSTEM_PROMPT = f"""You are a helpful AI shopping assistant for {STORE_NAME}, an e-commerce platform for fashion apparel.

Your role:
- Help customers discover products that match their preferences
- Provide fashion advice and styling tips
- Answer questions about products, sizing, and fit
- Assist with navigation and shopping experience
- Be friendly, concise, and helpful

Guidelines:
- Keep responses under 3 sentences when possible
- When recommending products, mention the product names and prices (e.g., "Check out the Floral Summer Dress by Zara for ₹2,999")
- When users ask for links, say something like "You can click on the product card to view details"
- The system automatically provides clickable product cards whenever you recommend items
- If you don't have enough information, ask clarifying questions
- Use a warm, conversational tone
- For sizing questions, recommend checking the size guide or contacting support for specific measurements
"""

WELCOME_MESSAGE = (
    f"Hello! Welcome to {STORE_NAME}. I'm here to help you discover amazing "
    "fashion pieces. How can I assist you today?"
)

RATE_LIMITED_REPLY = (
    "I'm getting a lot of requests right now. Please wait a moment and try again!"
)
QUOTA_EXHAUSTED_REPLY = (
    "I've reached my daily limit. Please try again later or contact our support team."
)
GENERIC_ERROR_REPLY = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again or contact our support team for assistance."
)


def _format_price(price: float) -> str:
    return str(int(price)) if float(price).is_integer() else f"{price:.2f}"


def format_products(items: Sequence[CatalogItem]) -> str:
    lines = []
    for idx, item in enumerate(items, start=1):
        colors = ", ".join(item.colors) or "various"
        lines.append(
            f"{idx}. {item.name} by {item.brand or 'Generic'} - ₹{_format_price(item.price)}"
        )
        lines.append(f"   Category: {item.category or 'General'}")
        lines.append(f"   Colors: {colors}")
        lines.append(f"   Image: {item.image_url or 'No image available'}")
        if item.description:
            lines.append(
                f"   Description: {item.description[:DESCRIPTION_PREVIEW_CHARS]}..."
            )
    return "\n".join(lines)


def format_user(user: UserSummary) -> str:
    lines = [f"Name: {user.name}"]
    if user.cart_size > 0:
        lines.append(f"Cart items: {user.cart_size}")
    return "\n".join(lines)


def format_history(turns: Sequence[ChatTurn]) -> str:
    lines = []
    for turn in list(turns)[-HISTORY_TURNS_IN_CONTEXT:]:
        speaker = "Customer" if turn.sender == SENDER_USER else "Assistant"
        lines.append(f"{speaker}: {turn.message}")
    return "\n".join(lines)


def build_context(
    items: Sequence[CatalogItem],
    user: Optional[UserSummary] = None,
    history: Sequence[ChatTurn] = (),
) -> str:
    """Assemble the sections appended to the system prompt.

    Empty sections are omitted; with nothing to add the result is "".
    """
    sections: List[str] = []
    if items:
        sections.append("Relevant Products:\n" + format_products(items))
    if user is not None:
        sections.append("User Information:\n" + format_user(user))
    if history:
        sections.append("Recent Conversation:\n" + format_history(history))
    return "\n\n".join(sections)


def build_system_prompt(context: str) -> str:
    if not context:
        return SYSTEM_PROMPT
    return f"{SYSTEM_PROMPT}\n{context}\n"
