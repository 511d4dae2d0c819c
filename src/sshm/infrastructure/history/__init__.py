"""
Connection history store (SQLite).
"""

from .repository import HistoryRepository

__all__ = ["HistoryRepository"]
