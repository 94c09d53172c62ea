"""FastAPI application module for StyleChat.

This module contains the FastAPI application, route handlers, and the
WebSocket endpoint that carries chat session events.
"""
