"""Shared fixtures and in-process fakes for the StyleChat tests."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from stylechat.assistant.responder import Responder
from stylechat.assistant.similarity import SimilaritySearch
from stylechat.assistant.stores import (
    InMemoryCatalogStore,
    InMemoryChatStore,
    InMemoryUserDirectory,
)
from stylechat.assistant.throttle import RequestThrottle
from stylechat.metrics import metrics_service


class FakeEmbedder:
    """Returns a fixed vector, or the vector mapped to the text's keyword."""

    def __init__(
        self,
        vector: Optional[List[float]] = None,
        by_keyword: Optional[Dict[str, List[float]]] = None,
        error: Optional[Exception] = None,
    ):
        self.vector = vector or [1.0, 0.0]
        self.by_keyword = by_keyword or {}
        self.error = error
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        for keyword, vector in self.by_keyword.items():
            if keyword in text:
                return vector
        return self.vector


class FakeLanguageModel:
    """Echoes a canned reply and remembers the prompts it was given."""

    def __init__(self, reply: str = "Check out the Red Dress!", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Dict[str, str]] = []

    async def complete(self, system_prompt: str, user_message: str) -> str:
        self.calls.append({"system_prompt": system_prompt, "user_message": user_message})
        if self.error is not None:
            raise self.error
        return self.reply


class FakeClock:
    """Manual monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeConnection:
    """Stands in for a WebSocket; records every frame sent to it."""

    def __init__(self, fail: bool = False):
        self.frames: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)

    def events(self) -> List[str]:
        return [frame["event"] for frame in self.frames]

    def data(self, event: str) -> List[Dict[str, Any]]:
        return [frame["data"] for frame in self.frames if frame["event"] == event]


def product_doc(
    pid: str,
    name: str,
    embedding: Optional[List[float]] = None,
    price: float = 999,
    **extra: Any,
) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "_id": pid,
        "name": name,
        "brand": extra.pop("brand", "Zara"),
        "price": price,
        "subCategory": extra.pop("subCategory", "Dresses"),
        "description": extra.pop("description", f"A lovely {name.lower()}"),
        "variants": extra.pop(
            "variants",
            [
                {
                    "color": "Red",
                    "images": [f"https://cdn.example.com/{pid}.jpg"],
                    "sizes": [{"size": "S", "quantity": 3}, {"size": "M", "quantity": 1}],
                }
            ],
        ),
    }
    if embedding is not None:
        doc["embedding"] = embedding
    doc.update(extra)
    return doc


@pytest.fixture
def make_product() -> Callable[..., Dict[str, Any]]:
    return product_doc


@pytest.fixture
def catalog() -> InMemoryCatalogStore:
    """Two-item catalog with orthogonal embeddings plus one unembedded item."""
    return InMemoryCatalogStore(
        [
            product_doc("1", "Red Dress", embedding=[1.0, 0.0], price=2999),
            product_doc(
                "2",
                "Blue Shirt",
                embedding=[0.0, 1.0],
                price=1499,
                subCategory="Shirts",
                variants=[{"color": "Blue", "images": [], "sizes": []}],
            ),
            product_doc("3", "Green Scarf"),
        ]
    )


@pytest.fixture
def chat_store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder(vector=[1.0, 0.0])


@pytest.fixture
def llm() -> FakeLanguageModel:
    return FakeLanguageModel()


@pytest.fixture
def responder(catalog, embedder, llm) -> Responder:
    return Responder(
        search=SimilaritySearch(catalog, embedder),
        llm=llm,
        throttle=RequestThrottle(min_interval_ms=0),
        users=InMemoryUserDirectory(),
        frontend_url="https://shop.example.com",
        context_products=3,
    )


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_service.reset()
    yield
    metrics_service.reset()
