"""Product similarity search for the chat assistant.

Embeds a shopper's query and ranks every catalog item that carries an
embedding by the raw dot product of the two vectors. Stored vectors are
normalized by the embedding job, so for unit-length query vectors the score
equals cosine similarity.
"""

import logging
import time
from typing import List, Sequence

import numpy as np

from stylechat.assistant.models import CatalogItem, ScoredItem
from stylechat.assistant.providers import EmbeddingProvider
from stylechat.assistant.stores import CatalogStore
from stylechat.exceptions import (
    DimensionMismatchError,
    UpstreamProviderError,
    ValidationError,
)
from stylechat.metrics import metrics_service

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3


def score_items(
    query_vector: Sequence[float],
    items: Sequence[CatalogItem],
) -> List[ScoredItem]:
    """Score items against a query vector, best first.

    Items without an embedding are left out. Ties keep the order of
    ``items``.

    Args:
        query_vector: Embedding of the query.
        items: Catalog items in storage order.

    Returns:
        Scored items sorted by descending dot product.

    Raises:
        DimensionMismatchError: If an item's embedding length differs from
            the query's.
    """
    candidates = [item for item in items if item.has_embedding]
    if not candidates:
        return []

    query = np.asarray(query_vector, dtype=float)
    dim = query.shape[0]
    for item in candidates:
        if len(item.embedding) != dim:
            raise DimensionMismatchError(item.id, expected=dim, actual=len(item.embedding))

    matrix = np.asarray([item.embedding for item in candidates], dtype=float)
    scores = matrix @ query

    # Stable sort on negated scores keeps storage order among equal scores
    order = np.argsort(-scores, kind="stable")
    return [ScoredItem(item=candidates[i], score=float(scores[i])) for i in order]


class SimilaritySearch:
    """Brute-force top-k search over the catalog's stored embeddings."""

    def __init__(self, catalog: CatalogStore, embedder: EmbeddingProvider):
        self.catalog = catalog
        self.embedder = embedder

    async def search(self, query: str, k: int = DEFAULT_TOP_K) -> List[ScoredItem]:
        """Return the k catalog items most similar to ``query``.

        An embedding-provider failure yields an empty list, the same as a
        catalog with no relevant items. Use ``search_or_raise`` when the two
        cases must be told apart.
        """
        try:
            return await self.search_or_raise(query, k)
        except UpstreamProviderError as e:
            metrics_service.record_search_failure()
            logger.warning(
                "Query embedding failed, returning no products",
                extra={"error": str(e), "error_type": type(e.error).__name__},
            )
            return []

    async def search_or_raise(self, query: str, k: int = DEFAULT_TOP_K) -> List[ScoredItem]:
        """Same as ``search`` but raises ``UpstreamProviderError`` when the
        query cannot be embedded."""
        if not query or not query.strip():
            raise ValidationError("Query text is required")
        if k < 1:
            raise ValidationError(f"k must be at least 1, got {k}", details={"k": k})

        start_time = time.time()
        try:
            query_vector = await self.embedder.embed(query)
        except UpstreamProviderError:
            raise
        except Exception as e:
            raise UpstreamProviderError("embedding", e) from e

        items = await self.catalog.items_with_embeddings()
        ranked = score_items(query_vector, items)[:k]

        logger.info(
            "Similarity search completed",
            extra={
                "k": k,
                "catalog_size": len(items),
                "returned": len(ranked),
                "top_score": ranked[0].score if ranked else None,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return ranked
