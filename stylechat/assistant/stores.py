"""Document-store access for catalog items, chat turns and user profiles.

Each store is a small protocol with two implementations: a MongoDB one
backed by ``motor`` (collections ``products``, ``chatmessages`` and
``users``, using the storefront's camelCase field names) and an in-memory
one used by tests and local runs.
"""

import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import motor.motor_asyncio
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from stylechat.assistant.models import CatalogItem, ChatTurn, SessionSummary, UserSummary
from stylechat.config import Settings, settings
from stylechat.exceptions import PersistenceError

# Configure module logger
logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class CatalogStore(Protocol):
    async def items_with_embeddings(self) -> List[CatalogItem]: ...

    async def products(self) -> List[Document]: ...

    async def set_embedding(
        self, product_id: str, embedding: List[float], embedding_text: str
    ) -> None: ...


class ChatStore(Protocol):
    async def append(self, turn: ChatTurn) -> ChatTurn: ...

    async def history(
        self, session_id: str, user_id: Optional[str] = None, limit: int = 50
    ) -> List[ChatTurn]: ...

    async def sessions_for_user(self, user_id: str) -> List[SessionSummary]: ...


class UserDirectory(Protocol):
    async def get_summary(self, user_id: str) -> Optional[UserSummary]: ...


def item_from_document(doc: Document) -> CatalogItem:
    """Map a stored product document to a ``CatalogItem``."""
    variants = doc.get("variants") or []
    first = variants[0] if variants else {}
    images = first.get("images") or []
    return CatalogItem(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        price=float(doc.get("price", 0)),
        brand=doc.get("brand"),
        description=doc.get("description"),
        category=doc.get("subCategory"),
        embedding=doc.get("embedding"),
        image_url=images[0] if images else None,
        color=first.get("color"),
        colors=[v["color"] for v in variants if v.get("color")],
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_object_id(value: Any) -> Any:
    """ObjectId for 24-hex strings, the value itself otherwise."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return value


# ══════════════════════════════════════════════════════════════════════
#  MONGODB
# ══════════════════════════════════════════════════════════════════════

_mongo_client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None


def get_database(config: Settings = settings) -> motor.motor_asyncio.AsyncIOMotorDatabase:
    """Return the database on the module-level async MongoDB client."""
    global _mongo_client
    if _mongo_client is None:
        uri = config.MONGO_URI.get_secret_value()
        if not uri:
            raise ValueError("MONGO_URI missing. Set it in .env or environment.")
        _mongo_client = motor.motor_asyncio.AsyncIOMotorClient(uri)
        logger.info("MongoDB async client created", extra={"db": config.MONGO_DB_NAME})
    return _mongo_client[config.MONGO_DB_NAME]


class MongoCatalogStore:
    """Reads products and writes their embeddings in ``products``."""

    _ITEM_PROJECTION = {
        "name": 1,
        "brand": 1,
        "price": 1,
        "description": 1,
        "subCategory": 1,
        "variants": 1,
        "embedding": 1,
    }

    def __init__(self, db: motor.motor_asyncio.AsyncIOMotorDatabase):
        self._collection = db["products"]

    async def items_with_embeddings(self) -> List[CatalogItem]:
        try:
            cursor = self._collection.find(
                {"embedding": {"$exists": True, "$ne": None}}, self._ITEM_PROJECTION
            )
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError("load catalog embeddings", e) from e
        return [item_from_document(doc) for doc in docs]

    async def products(self) -> List[Document]:
        try:
            return await self._collection.find({}).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError("load products", e) from e

    async def set_embedding(
        self, product_id: str, embedding: List[float], embedding_text: str
    ) -> None:
        try:
            await self._collection.update_one(
                {"_id": _as_object_id(product_id)},
                {"$set": {"embedding": embedding, "embeddingText": embedding_text}},
            )
        except PyMongoError as e:
            raise PersistenceError(f"store embedding for product {product_id}", e) from e


class MongoChatStore:
    """Append-only chat log in ``chatmessages``, one document per turn."""

    def __init__(self, db: motor.motor_asyncio.AsyncIOMotorDatabase):
        self._collection = db["chatmessages"]

    async def append(self, turn: ChatTurn) -> ChatTurn:
        now = _now()
        doc = {
            "sessionId": turn.session_id,
            "userId": _as_object_id(turn.user_id) if turn.user_id else None,
            "message": turn.message.strip(),
            "sender": turn.sender,
            "metadata": {"productContext": [_as_object_id(p) for p in turn.product_ids]},
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self._collection.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError("save chat message", e) from e
        turn.id = str(result.inserted_id)
        turn.message = doc["message"]
        turn.created_at = now
        return turn

    async def history(
        self, session_id: str, user_id: Optional[str] = None, limit: int = 50
    ) -> List[ChatTurn]:
        query: Document = {"sessionId": session_id}
        if user_id:
            # Assistant turns carry no user id and belong to every participant
            query["userId"] = {"$in": [_as_object_id(user_id), None]}
        try:
            cursor = self._collection.find(query).sort("createdAt", -1).limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise PersistenceError("fetch chat history", e) from e
        docs.reverse()
        return [self._turn(doc) for doc in docs]

    async def sessions_for_user(self, user_id: str) -> List[SessionSummary]:
        pipeline = [
            {"$match": {"userId": _as_object_id(user_id)}},
            {"$sort": {"createdAt": 1}},
            {
                "$group": {
                    "_id": "$sessionId",
                    "lastMessage": {"$last": "$message"},
                    "lastMessageTime": {"$last": "$createdAt"},
                    "messageCount": {"$sum": 1},
                }
            },
            {"$sort": {"lastMessageTime": -1}},
        ]
        try:
            rows = await self._collection.aggregate(pipeline).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError("fetch user sessions", e) from e
        return [
            SessionSummary(
                session_id=row["_id"],
                last_message=row["lastMessage"],
                last_message_at=row["lastMessageTime"],
                message_count=row["messageCount"],
            )
            for row in rows
        ]

    @staticmethod
    def _turn(doc: Document) -> ChatTurn:
        metadata = doc.get("metadata") or {}
        return ChatTurn(
            id=str(doc["_id"]),
            session_id=doc["sessionId"],
            user_id=str(doc["userId"]) if doc.get("userId") else None,
            sender=doc["sender"],
            message=doc["message"],
            product_ids=[str(p) for p in metadata.get("productContext", [])],
            created_at=doc.get("createdAt"),
        )


class MongoUserDirectory:
    """Looks up the name and cart of a storefront user in ``users``."""

    def __init__(self, db: motor.motor_asyncio.AsyncIOMotorDatabase):
        self._collection = db["users"]

    async def get_summary(self, user_id: str) -> Optional[UserSummary]:
        try:
            doc = await self._collection.find_one(
                {"_id": _as_object_id(user_id)}, {"name": 1, "cart": 1}
            )
        except PyMongoError as e:
            raise PersistenceError("fetch user profile", e) from e
        if doc is None:
            return None
        return UserSummary(name=doc.get("name", ""), cart_size=len(doc.get("cart") or []))


# ══════════════════════════════════════════════════════════════════════
#  IN-MEMORY
# ══════════════════════════════════════════════════════════════════════


class InMemoryCatalogStore:
    """Product documents kept in insertion order, shaped like the Mongo ones."""

    def __init__(self, products: Optional[List[Document]] = None):
        self._products: "OrderedDict[str, Document]" = OrderedDict()
        for doc in products or []:
            self.add(doc)

    def add(self, doc: Document) -> None:
        doc = dict(doc)
        doc.setdefault("_id", uuid.uuid4().hex)
        self._products[str(doc["_id"])] = doc

    async def items_with_embeddings(self) -> List[CatalogItem]:
        return [
            item_from_document(doc)
            for doc in self._products.values()
            if doc.get("embedding") is not None
        ]

    async def products(self) -> List[Document]:
        return [dict(doc) for doc in self._products.values()]

    async def set_embedding(
        self, product_id: str, embedding: List[float], embedding_text: str
    ) -> None:
        doc = self._products[str(product_id)]
        doc["embedding"] = list(embedding)
        doc["embeddingText"] = embedding_text

    def get(self, product_id: str) -> Document:
        return self._products[str(product_id)]


class InMemoryChatStore:
    """Chat turns in append order."""

    def __init__(self):
        self._turns: List[ChatTurn] = []

    async def append(self, turn: ChatTurn) -> ChatTurn:
        turn.id = uuid.uuid4().hex
        turn.message = turn.message.strip()
        turn.created_at = _now()
        self._turns.append(turn)
        return turn

    async def history(
        self, session_id: str, user_id: Optional[str] = None, limit: int = 50
    ) -> List[ChatTurn]:
        turns = [
            t
            for t in self._turns
            if t.session_id == session_id and (not user_id or t.user_id in (user_id, None))
        ]
        return turns[-limit:] if limit > 0 else []

    async def sessions_for_user(self, user_id: str) -> List[SessionSummary]:
        summaries: Dict[str, SessionSummary] = {}
        last_seen: Dict[str, int] = {}
        for index, turn in enumerate(self._turns):
            if turn.user_id != user_id:
                continue
            last_seen[turn.session_id] = index
            summary = summaries.get(turn.session_id)
            if summary is None:
                summaries[turn.session_id] = SessionSummary(
                    session_id=turn.session_id,
                    last_message=turn.message,
                    last_message_at=turn.created_at,
                    message_count=1,
                )
            else:
                summary.last_message = turn.message
                summary.last_message_at = turn.created_at
                summary.message_count += 1
        return sorted(
            summaries.values(), key=lambda s: last_seen[s.session_id], reverse=True
        )

    @property
    def turns(self) -> List[ChatTurn]:
        return list(self._turns)


class InMemoryUserDirectory:
    def __init__(self, users: Optional[Dict[str, UserSummary]] = None):
        self._users = dict(users or {})

    async def get_summary(self, user_id: str) -> Optional[UserSummary]:
        return self._users.get(user_id)
