"""Catalog search endpoint for the StyleChat API.

Exposes the assistant's similarity search directly, e.g. for a search box
or for checking what the assistant would retrieve for a phrase. Unlike the
chat path, an embedding-provider failure here is reported as a 502 rather
than an empty result.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from stylechat.api.deps import Services, get_services
from stylechat.assistant.models import ProductCard

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/catalog",
    tags=["catalog"],
)


class ScoredProduct(BaseModel):
    id: str
    name: str
    brand: Optional[str] = None
    price: float
    category: Optional[str] = None
    image: Optional[str] = None
    color: Optional[str] = None
    url: str
    score: float = Field(..., description="Dot product of query and item embeddings")


class SearchResponse(BaseModel):
    query: str
    results: List[ScoredProduct]


@router.get("/search", response_model=SearchResponse)
async def search_catalog(
    q: str = "",
    k: int = Query(3, ge=1, le=50),
    services: Services = Depends(get_services),
) -> SearchResponse:
    """Return the k catalog items most similar to the query text.

    Example:
        GET /catalog/search?q=red%20summer%20dress&k=5
    """
    scored = await services.search.search_or_raise(q, k)
    frontend_url = services.responder.frontend_url
    results = [
        ScoredProduct(
            **ProductCard.from_item(s.item, frontend_url).to_dict(),
            score=s.score,
        )
        for s in scored
    ]
    return SearchResponse(query=q, results=results)
