"""Service wiring for the API.

``build_services`` assembles stores, providers, throttle, search, responder
and chat service from settings. Route handlers reach them through
``get_services``, which reads ``app.state.services``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from starlette.requests import HTTPConnection

from stylechat.assistant.providers import (
    EmbeddingProvider,
    GeminiChatModel,
    HuggingFaceEmbeddings,
    LanguageModel,
)
from stylechat.assistant.responder import Responder
from stylechat.assistant.sessions import ChatService, SessionHub
from stylechat.assistant.similarity import SimilaritySearch
from stylechat.assistant.stores import (
    CatalogStore,
    ChatStore,
    InMemoryCatalogStore,
    InMemoryChatStore,
    InMemoryUserDirectory,
    MongoCatalogStore,
    MongoChatStore,
    MongoUserDirectory,
    UserDirectory,
    get_database,
)
from stylechat.assistant.throttle import RequestThrottle
from stylechat.config import Settings, settings

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class Services:
    catalog: CatalogStore
    chat_store: ChatStore
    users: UserDirectory
    embedder: EmbeddingProvider
    llm: LanguageModel
    throttle: RequestThrottle
    search: SimilaritySearch
    responder: Responder
    hub: SessionHub
    chat: ChatService


def build_services(
    config: Settings = settings,
    catalog: Optional[CatalogStore] = None,
    chat_store: Optional[ChatStore] = None,
    users: Optional[UserDirectory] = None,
    embedder: Optional[EmbeddingProvider] = None,
    llm: Optional[LanguageModel] = None,
    throttle: Optional[RequestThrottle] = None,
) -> Services:
    """Assemble the assistant from settings; any part can be passed in."""
    if config.STORE_BACKEND == "mongo" and None in (catalog, chat_store, users):
        db = get_database(config)
        catalog = catalog or MongoCatalogStore(db)
        chat_store = chat_store or MongoChatStore(db)
        users = users or MongoUserDirectory(db)
    else:
        catalog = catalog or InMemoryCatalogStore()
        chat_store = chat_store or InMemoryChatStore()
        users = users or InMemoryUserDirectory()

    embedder = embedder or HuggingFaceEmbeddings.from_settings(config)
    llm = llm or GeminiChatModel.from_settings(config)
    throttle = throttle or RequestThrottle(config.MIN_REQUEST_INTERVAL_MS)

    search = SimilaritySearch(catalog, embedder)
    responder = Responder(
        search=search,
        llm=llm,
        throttle=throttle,
        users=users,
        frontend_url=config.FRONTEND_URL,
        context_products=config.CHAT_CONTEXT_PRODUCTS,
    )
    hub = SessionHub()
    chat = ChatService(chat_store, hub, responder)

    logger.info(
        "Services built",
        extra={
            "store_backend": config.STORE_BACKEND,
            "min_request_interval_ms": throttle.min_interval_ms,
        },
    )
    return Services(
        catalog=catalog,
        chat_store=chat_store,
        users=users,
        embedder=embedder,
        llm=llm,
        throttle=throttle,
        search=search,
        responder=responder,
        hub=hub,
        chat=chat,
    )


def get_services(conn: HTTPConnection) -> Services:
    return conn.app.state.services
