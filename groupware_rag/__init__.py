"""Semantic search and question answering over personal groupware records."""

__version__ = "1.0.0"
