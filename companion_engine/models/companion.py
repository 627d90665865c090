"""Database models for characters, chats, and messages."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from companion_engine.db.database import Base


def generate_uuid():
    """Generate a UUID string."""
    return str(uuid.uuid4())


class MessageSender(str, enum.Enum):
    """Who wrote a message."""
    USER = "user"
    CHARACTER = "character"


class Character(Base):
    """
    A companion character.

    Read by the chat, image and speech flows; written only through the
    character endpoints and the YAML seed at startup.
    """
    __tablename__ = "characters"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    gender = Column(String(20), nullable=False, default="nonbinary")
    personality_traits = Column(JSON, nullable=False, default=list)
    backstory = Column(Text, nullable=True)
    meet_cute = Column(Text, nullable=True)
    art_style = Column(String(20), nullable=False, default="anime")
    appearance = Column(JSON, nullable=False, default=dict)
    voice_id = Column(String(64), nullable=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    chats = relationship("Chat", back_populates="character", cascade="all, delete-orphan")


class Chat(Base):
    """A conversation between the user and one character."""
    __tablename__ = "chats"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    character_id = Column(String(64), ForeignKey("characters.id"), nullable=False)
    love_meter = Column(Integer, nullable=False, default=0)  # 0..100
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    character = relationship("Character", back_populates="chats")
    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    """
    A single message in a chat.

    Character replies carry the response telemetry (model used, fallback
    flag and reason, timings, profile summary) in ``meta_data``.
    """
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    chat_id = Column(String(36), ForeignKey("chats.id"), nullable=False)
    sender = Column(Enum(MessageSender), nullable=False)
    content = Column(Text, nullable=False)
    meta_data = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    chat = relationship("Chat", back_populates="messages")
