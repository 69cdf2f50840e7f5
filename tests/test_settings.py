"""
Tests for environment configuration
"""
import os
from unittest.mock import patch

from config.settings import Settings


def test_settings_defaults():
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.ANTHROPIC_API_KEY == ""
    assert settings.REWRITE_API_URL == "https://api.anthropic.com/v1/messages"
    assert settings.ANTHROPIC_VERSION == "2023-06-01"
    assert settings.REWRITE_TIMEOUT_SECONDS == 20
    assert settings.REWRITE_MAX_TOKENS == 400
    assert settings.COMPOSE_MAX_LENGTH == 1800
    assert settings.allowed_chat_ids == []


def test_settings_from_environment():
    with patch.dict(os.environ, {
        "ANTHROPIC_API_KEY": "sk-test",
        "ANTHROPIC_MODEL": "custom-model",
        "REWRITE_API_URL": "http://localhost:9000/v1/messages",
        "TELEGRAM_BOT_TOKEN": "123:abc",
        "ALLOWED_CHAT_IDS": "-1001, -1002,",
        "DRAFT_TTL_SECONDS": "0",
    }, clear=True):
        settings = Settings(_env_file=None)

    assert settings.ANTHROPIC_API_KEY == "sk-test"
    assert settings.ANTHROPIC_MODEL == "custom-model"
    assert settings.REWRITE_API_URL == "http://localhost:9000/v1/messages"
    assert settings.TELEGRAM_BOT_TOKEN == "123:abc"
    assert settings.allowed_chat_ids == [-1001, -1002]
    assert settings.DRAFT_TTL_SECONDS == 0
