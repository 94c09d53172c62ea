"""StyleChat: shopping-assistant chat backend for a fashion storefront.

This package provides a backend service that answers shopper messages by
retrieving relevant catalog items through vector similarity and composing a
reply with a hosted language model.

Modules:
    api: FastAPI application, REST endpoints and the chat WebSocket
    assistant: similarity search, throttling, response composition and stores
"""

__version__ = "0.1.0"
