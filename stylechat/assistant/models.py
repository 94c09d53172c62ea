"""Domain records shared by the search, reply and session modules."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

SENDER_USER = "user"
SENDER_ASSISTANT = "assistant"


@dataclass
class CatalogItem:
    """A product as seen by the search path.

    ``image_url`` and ``color`` come from the product's first variant;
    ``colors`` lists every variant color.
    """

    id: str
    name: str
    price: float
    brand: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    embedding: Optional[List[float]] = None
    image_url: Optional[str] = None
    color: Optional[str] = None
    colors: List[str] = field(default_factory=list)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


@dataclass(frozen=True)
class ScoredItem:
    item: CatalogItem
    score: float


@dataclass
class ProductCard:
    """Product summary sent to the chat widget next to a reply."""

    id: str
    name: str
    brand: Optional[str]
    price: float
    category: Optional[str]
    image: Optional[str]
    color: Optional[str]
    url: str

    @classmethod
    def from_item(cls, item: CatalogItem, frontend_url: str) -> "ProductCard":
        return cls(
            id=item.id,
            name=item.name,
            brand=item.brand,
            price=item.price,
            category=item.category,
            image=item.image_url,
            color=item.color,
            url=f"{frontend_url}/product/{item.id}",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChatTurn:
    """One persisted message of a chat session."""

    session_id: str
    sender: str
    message: str
    user_id: Optional[str] = None
    product_ids: List[str] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message_id": self.id,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "sender": self.sender,
            "message": self.message,
            "product_ids": list(self.product_ids),
            "timestamp": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class UserSummary:
    name: str
    cart_size: int = 0


@dataclass
class SessionSummary:
    session_id: str
    last_message: str
    last_message_at: datetime
    message_count: int


@dataclass
class ChatContext:
    """What the caller knows about the conversation a message belongs to."""

    session_id: str
    user_id: Optional[str] = None
    recent_history: List[ChatTurn] = field(default_factory=list)


@dataclass
class BotReply:
    message: str
    products: Optional[List[ProductCard]] = None

    @property
    def product_ids(self) -> List[str]:
        return [card.id for card in self.products or []]
