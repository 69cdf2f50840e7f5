"""
Tests for posting approved drafts to their chat
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError
from telegram.constants import ParseMode
from telegram.error import TelegramError

from services.send_proxy import ProxyIdentity, SendProxy


def make_bot():
    bot = AsyncMock()
    bot.get_chat.return_value = MagicMock(title="Team chat", full_name=None)
    return bot


@pytest.mark.asyncio
async def test_send_attributes_message_to_user():
    bot = make_bot()
    proxy = SendProxy()

    await proxy.send(bot, -100, "a < b", "Ana", 7)

    bot.send_message.assert_awaited_once_with(
        chat_id=-100,
        text='<a href="tg://user?id=7">Ana</a>:\na &lt; b',
        parse_mode=ParseMode.HTML,
    )


@pytest.mark.asyncio
async def test_identity_is_reused_per_chat():
    bot = make_bot()
    proxy = SendProxy()

    await proxy.send(bot, -100, "one", "Ana", 7)
    await proxy.send(bot, -100, "two", "Ben", 8)
    await proxy.send(bot, -200, "three", "Ana", 7)

    assert bot.get_chat.await_count == 2
    assert bot.send_message.await_count == 3


@pytest.mark.asyncio
async def test_falls_back_to_direct_post_without_identity():
    bot = make_bot()
    bot.get_chat.side_effect = TelegramError("Chat not found")
    proxy = SendProxy()

    await proxy.send(bot, -100, "hello", "Ana", 7)

    bot.send_message.assert_awaited_once_with(chat_id=-100, text="hello")


@pytest.mark.asyncio
async def test_identity_records_chat_and_is_immutable():
    bot = make_bot()
    proxy = SendProxy()

    identity = await proxy.get_or_create_identity(bot, -100)

    assert identity == ProxyIdentity(chat_id=-100, chat_title="Team chat")
    with pytest.raises(ValidationError):
        identity.chat_title = "Other"
