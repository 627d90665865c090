"""Configuration loader with validation and error handling."""

import yaml
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Type, TypeVar, Union
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from .models import SystemConfig, CharacterConfig

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_validation_errors(errors: list[dict]) -> list[str]:
    """Render pydantic error dicts as `field → sub: message` lines."""
    return [
        f"{' → '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in errors
    ]


class ConfigLoadError(Exception):
    """Base exception for configuration loading errors."""
    pass


class ConfigValidationError(ConfigLoadError):
    """Configuration validation failed."""

    def __init__(self, errors: list[dict], source: Union[Path, str]):
        self.errors = errors
        self.source = source
        lines = [f"Configuration validation failed for {source}:"]
        lines.extend(f"  • {line}" for line in format_validation_errors(errors))
        super().__init__("\n".join(lines))


class ConfigLoader:
    """
    Reads config/system.yaml and the seed characters under characters/.

    A `.env` file in the config directory is loaded into the environment
    first, so provider keys resolve the same way in development and in
    deployment.
    """

    def __init__(self, config_dir: Path = Path("."), load_env: bool = True):
        self.config_dir = Path(config_dir)
        if load_env:
            env_path = self.config_dir / ".env"
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded environment overrides from {env_path}")

    @property
    def system_config_path(self) -> Path:
        return self.config_dir / "config" / "system.yaml"

    @property
    def characters_dir(self) -> Path:
        return self.config_dir / "characters"

    def load_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read a YAML mapping; an empty file is an empty mapping."""
        try:
            text = Path(file_path).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigLoadError(f"Configuration file not found: {file_path}")

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Invalid YAML in {file_path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top of {file_path}")
        return data

    @staticmethod
    def _build(model: Type[ModelT], data: Dict[str, Any], source: Union[Path, str]) -> ModelT:
        try:
            return model(**data)
        except ValidationError as e:
            raise ConfigValidationError(e.errors(), source)

    def load_system_config(self, file_path: Optional[Path] = None) -> SystemConfig:
        """System configuration, or the defaults when the file is absent."""
        file_path = file_path or self.system_config_path
        if not file_path.exists():
            logger.info(f"System config not found at {file_path}, using defaults")
            return SystemConfig()

        config = self._build(SystemConfig, self.load_yaml(file_path), file_path)
        logger.info(f"Loaded system config from {file_path}")
        return config

    def load_character(self, character_id: str) -> CharacterConfig:
        """
        Load one seed character from characters/<id>.yaml.

        The file name is the character id; an explicit `id` that disagrees
        with it is rejected.

        Raises:
            ConfigLoadError: Missing, unreadable or invalid file
        """
        file_path = self.characters_dir / f"{character_id}.yaml"
        data = self.load_yaml(file_path)

        declared = data.setdefault("id", character_id)
        if declared != character_id:
            raise ConfigLoadError(
                f"Character ID mismatch: {file_path.name} declares id '{declared}'"
            )

        character = self._build(CharacterConfig, data, file_path)
        logger.info(f"Loaded character '{character.name}' from {file_path}")
        return character

    def load_all_characters(self) -> Dict[str, CharacterConfig]:
        """
        Load every seed character, keyed by id.

        Invalid files are logged and skipped.
        """
        characters: Dict[str, CharacterConfig] = {}
        if not self.characters_dir.exists():
            logger.debug(f"Characters directory not found: {self.characters_dir}")
            return characters

        for file_path in sorted(self.characters_dir.glob("*.yaml")):
            try:
                characters[file_path.stem] = self.load_character(file_path.stem)
            except ConfigLoadError as e:
                logger.error(f"Failed to load character '{file_path.stem}': {e}")

        logger.info(f"Loaded {len(characters)} seed character(s)")
        return characters

    @staticmethod
    def validate_character(data: Dict[str, Any]) -> tuple[bool, list[str]]:
        """
        Check character data submitted through the API.

        Returns (is_valid, errors).
        """
        try:
            CharacterConfig(**data)
        except ValidationError as e:
            return False, format_validation_errors(e.errors())
        return True, []
