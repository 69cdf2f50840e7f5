"""
Tests for bot application assembly
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from telegram import CallbackQuery, Chat, Message, MessageEntity, Update, User
from telegram.ext import CallbackQueryHandler, ConversationHandler

from bot.application import build_application
from bot.handlers import compose_deep_link, draft_button
from config.settings import Settings
from services.draft_store import DraftStore
from services.rewrite_service import RewriteClient
from services.send_proxy import SendProxy

USER = User(id=7, first_name="Ana", is_bot=False)


@pytest.fixture
def application():
    settings = Settings(_env_file=None, TELEGRAM_BOT_TOKEN="123456:test-token", DRAFT_TTL_SECONDS=30)
    return build_application(settings)


def command_update(text):
    command_length = len(text.split()[0])
    message = Message(
        message_id=1,
        date=datetime.now(timezone.utc),
        chat=Chat(id=USER.id, type=Chat.PRIVATE),
        from_user=USER,
        text=text,
        entities=[MessageEntity(type=MessageEntity.BOT_COMMAND, offset=0, length=command_length)],
    )
    message.set_bot(MagicMock(username="neurobridge_bot"))
    return Update(update_id=1, message=message)


def button_update(data):
    query = CallbackQuery(id="1", from_user=USER, chat_instance="instance", data=data)
    return Update(update_id=2, callback_query=query)


def find_handler(application, handler_type):
    return next(handler for handler in application.handlers[0] if isinstance(handler, handler_type))


def test_build_application_requires_token():
    with pytest.raises(ValueError, match="Missing TELEGRAM_BOT_TOKEN"):
        build_application(Settings(_env_file=None, TELEGRAM_BOT_TOKEN=""))


def test_build_application_wires_services_and_handlers(application):
    assert isinstance(application.bot_data["settings"], Settings)
    assert isinstance(application.bot_data["rewrite_client"], RewriteClient)
    assert isinstance(application.bot_data["draft_store"], DraftStore)
    assert isinstance(application.bot_data["send_proxy"], SendProxy)
    assert find_handler(application, ConversationHandler)
    assert find_handler(application, CallbackQueryHandler)
    assert application.error_handlers


@pytest.mark.parametrize("text, matches", [
    ("/start compose_-1001", True),
    ("/start compose_42", True),
    ("/start hello", False),
    ("/start compose_abc", False),
])
def test_deep_link_entry_filter(application, text, matches):
    conversation = find_handler(application, ConversationHandler)
    deep_link = next(handler for handler in conversation.entry_points if handler.callback is compose_deep_link)

    assert bool(deep_link.check_update(command_update(text))) is matches


@pytest.mark.parametrize("data, matches", [
    ("send:-1001", True),
    ("send:42", True),
    ("cancel", True),
    ("send:", False),
    ("send:-1001:extra", False),
    ("help_find", False),
])
def test_draft_button_pattern(application, data, matches):
    handler = find_handler(application, CallbackQueryHandler)

    assert handler.callback is draft_button
    assert bool(handler.check_update(button_update(data))) is matches
