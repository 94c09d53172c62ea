"""
StyleChat - Centralized Configuration
=====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load configuration from
environment variables and the project-level ``.env`` file.

API keys and the MongoDB URI are typed as ``SecretStr`` so their raw values
never show up in repr, logs, or tracebacks. They default to empty; the
provider clients refuse to start without them, while tests and local runs
with ``STORE_BACKEND=memory`` and fake providers never need them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Attributes
    ----------
    MONGO_URI : SecretStr
        MongoDB connection string. Contains credentials, never log it.
    MONGO_DB_NAME : str
        Database holding the ``products``, ``chatmessages`` and ``users``
        collections.
    STORE_BACKEND : Literal["mongo", "memory"]
        ``memory`` keeps catalog, chat turns and users in process.
    HUGGINGFACE_API_KEY : SecretStr
        Token for the Hugging Face Inference API (embeddings).
    HUGGINGFACE_API_URL : str
        Base URL of the feature-extraction endpoint; the model id is appended.
    EMBEDDING_MODEL : str
        Sentence-embedding model id.
    GEMINI_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).
    LLM_MODEL, LLM_TEMPERATURE
        Chat model id and sampling temperature.
    MIN_REQUEST_INTERVAL_MS : int
        Minimum spacing between language-model calls.
    CHAT_CONTEXT_PRODUCTS : int
        Number of catalog items retrieved for each reply.
    FRONTEND_URL : str
        Storefront base URL used to build product detail links.
    """

    # ── Environment ────────────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: str = "INFO"

    # ── Document store ─────────────────────────────────────────────────
    STORE_BACKEND: Literal["mongo", "memory"] = "mongo"
    MONGO_URI: SecretStr = SecretStr("")
    MONGO_DB_NAME: str = "jazzup"

    # ── Embedding provider ─────────────────────────────────────────────
    HUGGINGFACE_API_KEY: SecretStr = SecretStr("")
    HUGGINGFACE_API_URL: str = "https://router.huggingface.co/hf-inference/models"
    EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBEDDING_TIMEOUT_S: float = 30.0

    # ── Language model ─────────────────────────────────────────────────
    GEMINI_API_KEY: SecretStr = SecretStr("")
    LLM_MODEL: str = "gemini-2.5-flash-lite"
    LLM_TEMPERATURE: float = 0.7

    # ── Assistant behaviour ────────────────────────────────────────────
    MIN_REQUEST_INTERVAL_MS: int = 4500
    CHAT_CONTEXT_PRODUCTS: int = 3
    FRONTEND_URL: str = "http://localhost:5173"

    @field_validator("MIN_REQUEST_INTERVAL_MS")
    @classmethod
    def _interval_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"MIN_REQUEST_INTERVAL_MS must be >= 0, got {v}")
        return v

    @field_validator("CHAT_CONTEXT_PRODUCTS")
    @classmethod
    def _context_products_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"CHAT_CONTEXT_PRODUCTS must be >= 1, got {v}")
        return v

    @field_validator("FRONTEND_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
