"""Repository for chat and message operations."""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from companion_engine.models.companion import Chat, Message, MessageSender


class ChatRepository:
    """Handle database operations for chats and their messages."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, character_id: str) -> Chat:
        chat = Chat(character_id=character_id, love_meter=0)
        self.db.add(chat)
        self.db.commit()
        self.db.refresh(chat)
        return chat

    def get_by_id(self, chat_id: str) -> Optional[Chat]:
        return self.db.query(Chat).filter(Chat.id == chat_id).first()

    def add_message(
        self,
        chat_id: str,
        sender: MessageSender,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        """
        Append a message to a chat.

        Args:
            chat_id: Parent chat ID
            sender: user or character
            content: Message content
            metadata: Optional telemetry for character replies

        Returns:
            Created message
        """
        message = Message(
            chat_id=chat_id,
            sender=sender,
            content=content,
            meta_data=metadata or {},
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def get_messages(self, chat_id: str, limit: Optional[int] = None) -> List[Message]:
        """
        Messages of a chat in chronological order.

        Args:
            chat_id: Chat ID
            limit: Only the most recent ``limit`` messages when set
        """
        query = self.db.query(Message).filter(Message.chat_id == chat_id)
        if limit is None:
            return query.order_by(Message.created_at.asc()).all()
        recent = query.order_by(Message.created_at.desc()).limit(limit).all()
        return list(reversed(recent))

    def update_love_meter(self, chat_id: str, value: int) -> Optional[Chat]:
        chat = self.get_by_id(chat_id)
        if not chat:
            return None
        chat.love_meter = value
        self.db.commit()
        self.db.refresh(chat)
        return chat

    @staticmethod
    def to_turns(messages: List[Message]) -> List[Dict[str, str]]:
        """Stored messages as {"role", "content"} conversation turns."""
        return [
            {
                "role": "user" if m.sender == MessageSender.USER else "assistant",
                "content": m.content,
            }
            for m in messages
        ]
