"""Tests for configuration loading and validation."""

import os

import pytest
import yaml
from pydantic import ValidationError

from companion_engine.config import (
    CharacterConfig,
    ConfigLoadError,
    ConfigLoader,
    ConfigValidationError,
    SystemConfig,
    TextProviderConfig,
)


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


class TestSystemConfig:

    def test_defaults_when_file_missing(self, tmp_path):
        config = ConfigLoader(tmp_path, load_env=False).load_system_config()
        assert config == SystemConfig()
        assert [p.provider for p in config.text_generation.providers] == ["openai", "huggingface"]
        assert [p.provider for p in config.image_generation.providers] == ["stability", "huggingface", "replicate"]
        assert config.cache.response_ttl_seconds == 300
        assert config.chat.love_meter_chance == 0.3

    def test_loads_yaml(self, tmp_path):
        _write(tmp_path / "config" / "system.yaml", {
            "debug": True,
            "api_port": 9000,
            "cache": {"response_max_entries": 5},
            "text_generation": {"providers": [{
                "provider": "openai",
                "base_url": "https://api.openai.com/",
                "model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            }]},
        })
        config = ConfigLoader(tmp_path, load_env=False).load_system_config()

        assert config.debug is True
        assert config.api_port == 9000
        assert config.cache.response_max_entries == 5
        assert config.text_generation.providers[0].base_url == "https://api.openai.com"

    def test_invalid_values_raise(self, tmp_path):
        _write(tmp_path / "config" / "system.yaml", {"api_port": 70000})
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader(tmp_path, load_env=False).load_system_config()
        assert "api_port" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config" / "system.yaml"
        path.parent.mkdir(parents=True)
        path.write_text("debug: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            ConfigLoader(tmp_path, load_env=False).load_system_config()

    def test_base_url_scheme(self):
        with pytest.raises(ValidationError):
            TextProviderConfig(provider="openai", base_url="api.openai.com", model="m", api_key_env="K")

    def test_api_key_from_environment(self, monkeypatch):
        config = TextProviderConfig(provider="openai", base_url="https://x.test", model="m", api_key_env="TEST_KEY")
        monkeypatch.setenv("TEST_KEY", "   ")
        assert config.resolve_api_key() is None
        monkeypatch.setenv("TEST_KEY", " sk-123 ")
        assert config.resolve_api_key() == "sk-123"

    def test_env_file_is_loaded(self, tmp_path, monkeypatch):
        # setenv first so teardown removes whatever the loader sets
        monkeypatch.setenv("COMPANION_TEST_KEY", "placeholder")
        monkeypatch.delenv("COMPANION_TEST_KEY")
        (tmp_path / ".env").write_text("COMPANION_TEST_KEY=from-dotenv\n", encoding="utf-8")

        ConfigLoader(tmp_path)

        assert os.environ["COMPANION_TEST_KEY"] == "from-dotenv"


class TestCharacterConfig:

    def test_normalization(self):
        character = CharacterConfig(
            id="mika",
            name="Mika",
            gender=" Female ",
            personality_traits=[" Shy", "shy", "", "Caring "],
            backstory="   ",
        )
        assert character.gender == "female"
        assert character.personality_traits == ["shy", "caring"]
        assert character.backstory is None

    def test_load_character(self, tmp_path):
        _write(tmp_path / "characters" / "mika.yaml", {"name": "Mika", "personality_traits": ["shy"]})
        character = ConfigLoader(tmp_path, load_env=False).load_character("mika")
        assert character.id == "mika"
        assert character.appearance.eye_color == "brown"

    def test_id_mismatch(self, tmp_path):
        _write(tmp_path / "characters" / "mika.yaml", {"id": "other", "name": "Mika"})
        with pytest.raises(ConfigLoadError, match="mismatch"):
            ConfigLoader(tmp_path, load_env=False).load_character("mika")

    def test_load_all_skips_invalid(self, tmp_path):
        _write(tmp_path / "characters" / "mika.yaml", {"name": "Mika"})
        _write(tmp_path / "characters" / "broken.yaml", {"name": ""})
        characters = ConfigLoader(tmp_path, load_env=False).load_all_characters()
        assert list(characters) == ["mika"]

    def test_validate_character(self, tmp_path):
        loader = ConfigLoader(tmp_path, load_env=False)
        assert loader.validate_character({"id": "a", "name": "A"}) == (True, [])
        is_valid, errors = loader.validate_character({"id": "a"})
        assert is_valid is False
        assert any("name" in e for e in errors)
