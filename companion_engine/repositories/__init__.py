"""Repository pattern for database operations."""

from .character_repository import CharacterRepository
from .chat_repository import ChatRepository

__all__ = [
    "CharacterRepository",
    "ChatRepository",
]
