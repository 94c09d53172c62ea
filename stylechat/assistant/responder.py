"""Reply composition for the chat assistant.

One reply is built from one similarity search: the same items feed the
prompt context and the product cards returned alongside the model's text.
"""

import logging
import time
from typing import Dict, Optional, Tuple

from stylechat.assistant.models import BotReply, ChatContext, ProductCard, UserSummary
from stylechat.assistant.prompts import (
    GENERIC_ERROR_REPLY,
    QUOTA_EXHAUSTED_REPLY,
    RATE_LIMITED_REPLY,
    build_context,
    build_system_prompt,
)
from stylechat.assistant.providers import (
    OTHER_ERROR,
    QUOTA_EXHAUSTED,
    RATE_LIMITED,
    LanguageModel,
    classify_provider_error,
)
from stylechat.assistant.similarity import SimilaritySearch
from stylechat.assistant.stores import UserDirectory
from stylechat.assistant.throttle import RequestThrottle
from stylechat.metrics import metrics_service

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_PRODUCTS = 3

FALLBACK_REPLIES: Dict[str, str] = {
    RATE_LIMITED: RATE_LIMITED_REPLY,
    QUOTA_EXHAUSTED: QUOTA_EXHAUSTED_REPLY,
    OTHER_ERROR: GENERIC_ERROR_REPLY,
}


class Responder:
    """Answers a shopper message with model text and product cards.

    Args:
        search: Product similarity search.
        llm: Language model used for the reply.
        throttle: Gate spacing the model calls.
        users: Optional profile lookup for signed-in shoppers.
        frontend_url: Storefront base URL for product links.
        context_products: Number of items retrieved per reply.
    """

    def __init__(
        self,
        search: SimilaritySearch,
        llm: LanguageModel,
        throttle: RequestThrottle,
        users: Optional[UserDirectory] = None,
        frontend_url: str = "http://localhost:5173",
        context_products: int = DEFAULT_CONTEXT_PRODUCTS,
    ):
        self.search = search
        self.llm = llm
        self.throttle = throttle
        self.users = users
        self.frontend_url = frontend_url.rstrip("/")
        self.context_products = context_products

    async def respond(self, user_message: str, context: ChatContext) -> BotReply:
        """Compose the assistant's reply to ``user_message``.

        Provider failures never reach the caller: they are mapped to one of
        three canned replies, with ``products`` set to None.
        """
        try:
            scored = await self.search.search(user_message, k=self.context_products)
            items = [s.item for s in scored]
            user = await self._user_summary(context.user_id)

            system_prompt = build_system_prompt(
                build_context(items, user, context.recent_history)
            )

            text, latency_ms = await self.throttle.call(
                self._complete, system_prompt, user_message
            )
        except Exception as e:
            kind = classify_provider_error(e)
            metrics_service.record_fallback(kind)
            logger.error(
                "Failed to generate assistant reply",
                extra={
                    "session_id": context.session_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "fallback": kind,
                },
                exc_info=True,
            )
            if kind == RATE_LIMITED:
                logger.warning(
                    "Provider rate limit hit despite throttling; "
                    "consider raising MIN_REQUEST_INTERVAL_MS"
                )
            return BotReply(message=FALLBACK_REPLIES[kind], products=None)

        cards = [ProductCard.from_item(item, self.frontend_url) for item in items]
        logger.info(
            "Assistant reply generated",
            extra={
                "session_id": context.session_id,
                "products": len(cards),
                "reply_chars": len(text),
                "llm_latency_ms": round(latency_ms, 2),
            },
        )
        return BotReply(message=text, products=cards or None)

    async def _complete(self, system_prompt: str, user_message: str) -> Tuple[str, float]:
        """Call the model and record its latency, excluding any throttle wait."""
        start_time = time.time()
        text = await self.llm.complete(system_prompt, user_message)
        latency_ms = (time.time() - start_time) * 1000
        metrics_service.record_llm_call(latency_ms)
        return text, latency_ms

    async def _user_summary(self, user_id: Optional[str]) -> Optional[UserSummary]:
        if not user_id or self.users is None:
            return None
        try:
            return await self.users.get_summary(user_id)
        except Exception as e:
            logger.warning(
                "User profile lookup failed, continuing without it",
                extra={"user_id": user_id, "error": str(e)},
            )
            return None
