"""Streaming loader for MTGJSON price history."""

__version__ = "1.0.0"
