"""Repository for character operations."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from companion_engine.config.models import AppearanceConfig, CharacterConfig
from companion_engine.models.companion import Character

logger = logging.getLogger(__name__)


class CharacterRepository:
    """Handle database operations for characters."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, config: CharacterConfig) -> Character:
        """
        Create a character from a validated configuration.

        Args:
            config: Validated character fields

        Returns:
            Created character
        """
        character = Character(
            id=config.id,
            name=config.name,
            gender=config.gender,
            personality_traits=list(config.personality_traits),
            backstory=config.backstory,
            meet_cute=config.meet_cute,
            art_style=config.art_style,
            appearance=config.appearance.model_dump(),
            voice_id=config.voice_id,
            image_url=config.image_url,
        )
        self.db.add(character)
        self.db.commit()
        self.db.refresh(character)
        return character

    def get_by_id(self, character_id: str) -> Optional[Character]:
        return self.db.query(Character).filter(Character.id == character_id).first()

    def list_all(self) -> List[Character]:
        return self.db.query(Character).order_by(Character.created_at).all()

    def update_image(self, character_id: str, image_url: str) -> Optional[Character]:
        """Store a generated portrait URL on the character."""
        character = self.get_by_id(character_id)
        if not character:
            return None
        character.image_url = image_url
        self.db.commit()
        self.db.refresh(character)
        return character

    def seed(self, configs: List[CharacterConfig]) -> int:
        """
        Insert characters that don't exist yet.

        Returns:
            Number of characters inserted
        """
        inserted = 0
        for config in configs:
            if self.get_by_id(config.id):
                continue
            self.create(config)
            inserted += 1
            logger.info(f"Seeded character {config.id}")
        return inserted

    @staticmethod
    def to_config(character: Character) -> CharacterConfig:
        """Validated view of a stored character."""
        return CharacterConfig(
            id=character.id,
            name=character.name,
            gender=character.gender,
            personality_traits=character.personality_traits or [],
            backstory=character.backstory,
            meet_cute=character.meet_cute,
            art_style=character.art_style,
            appearance=AppearanceConfig(**(character.appearance or {})),
            voice_id=character.voice_id,
            image_url=character.image_url,
            created_at=character.created_at,
        )
