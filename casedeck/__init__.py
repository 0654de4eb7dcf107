"""Courtroom-style slide decks from free-text case descriptions."""

__version__ = "1.0.0"
