"""
SQLAlchemy models for the voice journal service.
"""
from voice_journal.models.user import User
from voice_journal.models.entry import Entry

__all__ = [
    "User",
    "Entry",
]
