"""Clients for the hosted embedding and language-model providers.

Both providers are reached through small protocols so the search and reply
code can be exercised with in-process fakes:

- ``EmbeddingProvider.embed(text) -> list[float]``
- ``LanguageModel.complete(system_prompt, user_message) -> str``
"""

import logging
from typing import Any, List, Optional, Protocol, runtime_checkable

import httpx
import numpy as np
from sklearn import preprocessing

from stylechat.config import Settings, settings
from stylechat.exceptions import (
    QuotaExhaustedError,
    RateLimitedError,
    UpstreamProviderError,
)

# Configure module logger
logger = logging.getLogger(__name__)

RATE_LIMITED = "rate_limited"
QUOTA_EXHAUSTED = "quota_exhausted"
OTHER_ERROR = "other"


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Anything that turns text into a fixed-length vector."""

    async def embed(self, text: str) -> List[float]: ...


@runtime_checkable
class LanguageModel(Protocol):
    """Anything that answers a user message under a system instruction."""

    async def complete(self, system_prompt: str, user_message: str) -> str: ...


def classify_provider_error(error: BaseException) -> str:
    """Sort a provider failure into rate-limited, quota-exhausted or other.

    Rate limiting is recognised from a 429 status (attribute or message) or
    the words "rate limit"; quota exhaustion from "quota" or
    ``RESOURCE_EXHAUSTED``. Rate limiting is checked first.
    """
    if isinstance(error, QuotaExhaustedError):
        return QUOTA_EXHAUSTED
    if isinstance(error, RateLimitedError):
        return RATE_LIMITED

    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    message = str(error)
    lowered = message.lower()

    if status == 429 or "429" in message or "rate limit" in lowered:
        return RATE_LIMITED
    if "quota" in lowered or "RESOURCE_EXHAUSTED" in message:
        return QUOTA_EXHAUSTED
    return OTHER_ERROR


def l2_normalize(vector: List[float]) -> List[float]:
    """Scale a vector to unit length; zero vectors are returned unchanged."""
    arr = np.asarray(vector, dtype=float).reshape(1, -1)
    return preprocessing.normalize(arr, norm="l2")[0].tolist()


class HuggingFaceEmbeddings:
    """Sentence embeddings from the Hugging Face Inference API.

    Calls the feature-extraction pipeline of ``model`` and, when the endpoint
    returns token-level vectors, mean-pools them into one sentence vector.
    Vectors are L2-normalized unless ``normalize`` is False, which makes the
    raw dot product used by the search equal to cosine similarity.
    """

    PROVIDER = "huggingface"

    def __init__(
        self,
        api_key: str,
        model: str = "sentence-transformers/all-MiniLM-L6-v2",
        base_url: str = "https://router.huggingface.co/hf-inference/models",
        timeout: float = 30.0,
        normalize: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY missing. Set it in .env or environment.")
        self.model = model
        self.url = f"{base_url.rstrip('/')}/{model}/pipeline/feature-extraction"
        self.normalize = normalize
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "HuggingFaceEmbeddings":
        return cls(
            api_key=config.HUGGINGFACE_API_KEY.get_secret_value(),
            model=config.EMBEDDING_MODEL,
            base_url=config.HUGGINGFACE_API_URL,
            timeout=config.EMBEDDING_TIMEOUT_S,
        )

    async def embed(self, text: str) -> List[float]:
        try:
            response = await self._client.post(
                self.url,
                headers=self._headers,
                json={"inputs": text, "options": {"wait_for_model": True}},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitedError(self.PROVIDER, e) from e
            # Monthly inference credits used up
            if e.response.status_code == 402:
                raise QuotaExhaustedError(self.PROVIDER, e) from e
            raise UpstreamProviderError(self.PROVIDER, e) from e
        except httpx.HTTPError as e:
            raise UpstreamProviderError(self.PROVIDER, e) from e

        vector = self._pool(response.json())
        logger.debug(
            "Embedded text",
            extra={"model": self.model, "chars": len(text), "dim": len(vector)},
        )
        return l2_normalize(vector) if self.normalize else vector

    @staticmethod
    def _pool(payload: Any) -> List[float]:
        arr = np.asarray(payload, dtype=float)
        if arr.size == 0:
            raise UpstreamProviderError(
                HuggingFaceEmbeddings.PROVIDER, ValueError("empty embedding returned")
            )
        # (batch, tokens, dim) or (tokens, dim) collapse to (dim,)
        while arr.ndim > 1:
            arr = arr.mean(axis=0)
        return arr.tolist()

    async def aclose(self) -> None:
        await self._client.aclose()


class GeminiChatModel:
    """Google Gemini chat model through ``langchain-google-genai``.

    Provider errors are not caught here; the reply composer classifies them.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash-lite",
        temperature: float = 0.7,
        llm: Any = None,
    ):
        if llm is None:
            if not api_key:
                raise ValueError("GEMINI_API_KEY missing. Set it in .env or environment.")
            from langchain_google_genai import ChatGoogleGenerativeAI

            llm = ChatGoogleGenerativeAI(
                model=model,
                temperature=temperature,
                google_api_key=api_key,
            )
        self.model = model
        self._llm = llm

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "GeminiChatModel":
        return cls(
            api_key=config.GEMINI_API_KEY.get_secret_value(),
            model=config.LLM_MODEL,
            temperature=config.LLM_TEMPERATURE,
        )

    async def complete(self, system_prompt: str, user_message: str) -> str:
        from langchain_core.messages import HumanMessage, SystemMessage

        response = await self._llm.ainvoke(
            [SystemMessage(content=system_prompt), HumanMessage(content=user_message)]
        )
        return _content_text(response)


def _content_text(response: Any) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, str):
        return content
    # Multi-part content: keep the text parts in order
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)
