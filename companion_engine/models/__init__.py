"""Models package for Companion Engine."""

from .companion import Character, Chat, Message, MessageSender

__all__ = [
    "Character",
    "Chat",
    "Message",
    "MessageSender",
]
