"""Database layer for papertrade."""

from papertrade.db.store import DataStore

__all__ = ["DataStore"]
