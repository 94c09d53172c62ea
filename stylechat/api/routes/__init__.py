"""Route modules for the StyleChat API."""
