"""Chat assistant core for StyleChat.

This module contains product similarity search, the outbound request
throttle, reply composition, chat session handling, the embedding job and
the document-store adapters they read from and write to.
"""
