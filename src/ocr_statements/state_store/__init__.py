"""
State Store (SQLite-based).

Lightweight persistent DB for tracking:
- Learned merchant patterns
- The append-only correction log
"""

from .sqlite_store import StateStore

__all__ = [
    "StateStore",
]
