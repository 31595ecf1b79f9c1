"""Bookmark synchronization against a shared, versioned JSON document."""

__version__ = "0.3.0"
