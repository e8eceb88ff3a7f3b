"""Session storage module."""
from database.db import SessionStore, sessions

__all__ = [
    "SessionStore",
    "sessions"
]
