"""Product embeddings for the chat assistant's similarity search.

Builds a descriptive text for each product, embeds it with the embedding
provider and stores the unit-length vector with the product. Normalizing
here is what makes the search's raw dot product a cosine similarity.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from stylechat.assistant.providers import EmbeddingProvider, l2_normalize
from stylechat.assistant.stores import CatalogStore

# Configure module logger
logger = logging.getLogger(__name__)

# Pause between provider calls
DEFAULT_DELAY_S = 1.0

_WHITESPACE = re.compile(r"\s+")


@dataclass
class EmbeddingJobReport:
    """Outcome of one embedding run."""

    total: int = 0
    processed: int = 0
    failed: int = 0
    failed_ids: List[str] = field(default_factory=list)


def build_embedding_text(product: Dict[str, Any]) -> str:
    """Describe a product in one line for the embedding model.

    Args:
        product: Product document (``variants`` with ``color`` and ``sizes``,
            optional ``category`` with a ``name`` when populated).

    Returns:
        Whitespace-collapsed description covering name, brand, category,
        description, colors, sizes, collections, fabric, fit, sleeve, size
        type and price.
    """
    variants = product.get("variants") or []
    colors = ", ".join(v["color"] for v in variants if v.get("color"))
    sizes = ", ".join(
        s["size"] for v in variants for s in (v.get("sizes") or []) if s.get("size")
    )

    category = product.get("category")
    category_name = (
        category.get("name") if isinstance(category, dict) else None
    ) or product.get("subCategory") or "uncategorized"

    parts = [
        product.get("name", ""),
        f"Brand: {product.get('brand') or 'Generic'}",
        f"Category: {category_name}",
        f"Sub-category: {product.get('subCategory') or ''}",
        f"Description: {product.get('description') or ''}",
        f"Colors available: {colors}",
        f"Sizes available: {sizes}",
        f"Collections: {', '.join(product.get('collections') or [])}",
        f"Fabric: {product.get('fabric') or 'standard'}",
        f"Fit type: {product.get('fitType') or 'regular'}",
        f"Sleeve type: {product.get('sleeveType') or 'standard'}",
        f"Size type: {product.get('sizeType') or 'standard'}",
        f"Price: ₹{product.get('price')}",
    ]
    return _WHITESPACE.sub(" ", " ".join(parts)).strip()


async def embed_product(
    product: Dict[str, Any],
    embedder: EmbeddingProvider,
) -> Dict[str, Any]:
    """Embed one product.

    Returns:
        Dictionary with ``embedding`` (unit length) and ``embedding_text``.
    """
    text = build_embedding_text(product)
    vector = await embedder.embed(text)
    embedding = l2_normalize(vector)
    logger.debug(
        "Embedding generated",
        extra={"product": product.get("name"), "dim": len(embedding)},
    )
    return {"embedding": embedding, "embedding_text": text}


async def run_embedding_job(
    catalog: CatalogStore,
    embedder: EmbeddingProvider,
    delay_s: float = DEFAULT_DELAY_S,
) -> EmbeddingJobReport:
    """Embed every product in the catalog and store the vectors.

    A product whose embedding or write fails is logged and skipped; the run
    continues with the next one.

    Args:
        catalog: Store to read products from and write embeddings to.
        embedder: Embedding provider.
        delay_s: Pause after each successful product.

    Returns:
        Counts of processed and failed products.
    """
    products = await catalog.products()
    report = EmbeddingJobReport(total=len(products))
    logger.info(f"Found {len(products)} products to process")

    if not products:
        logger.warning("No products found in catalog")
        return report

    for product in products:
        product_id = str(product["_id"])
        try:
            result = await embed_product(product, embedder)
            await catalog.set_embedding(
                product_id, result["embedding"], result["embedding_text"]
            )
        except Exception as e:
            report.failed += 1
            report.failed_ids.append(product_id)
            logger.error(
                f"Error processing \"{product.get('name')}\": {e}",
                extra={"product_id": product_id, "error_type": type(e).__name__},
            )
            continue

        report.processed += 1
        logger.info(f"[{report.processed}/{report.total}] {product.get('name')}")

        if delay_s > 0:
            await asyncio.sleep(delay_s)

    logger.info(
        "Embedding run finished",
        extra={"processed": report.processed, "failed": report.failed},
    )
    return report
