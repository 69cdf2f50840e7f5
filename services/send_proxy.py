import html
import logging
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict
from telegram import Bot, Message
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.helpers import mention_html

logger = logging.getLogger(__name__)

class ProxyIdentity(BaseModel):
    """Per-chat identity used to post messages on behalf of users."""
    model_config = ConfigDict(frozen=True)

    chat_id: int
    chat_title: str

    def render(self, text: str, display_name: str, user_id: int) -> str:
        return f"{mention_html(user_id, display_name)}:\n{html.escape(text)}"

class SendProxy:
    """
    Posts approved drafts to their chat, attributed to the user who wrote them.

    Bots cannot author messages as another Telegram user, so each chat gets a
    reusable ProxyIdentity that prefixes the text with the sender's name. When
    the identity cannot be created the text is posted by the bot as is.
    """

    def __init__(self):
        self._identities: Dict[int, ProxyIdentity] = {}

    async def get_or_create_identity(self, bot: Bot, chat_id: int) -> Optional[ProxyIdentity]:
        identity = self._identities.get(chat_id)
        if identity is not None:
            return identity
        try:
            chat = await bot.get_chat(chat_id)
        except TelegramError as e:
            logger.warning("Could not create proxy identity for chat %s: %s", chat_id, e)
            return None
        identity = ProxyIdentity(chat_id=chat_id, chat_title=chat.title or chat.full_name or str(chat_id))
        self._identities[chat_id] = identity
        return identity

    async def send(self, bot: Bot, chat_id: int, text: str, display_name: str, user_id: int) -> Message:
        identity = await self.get_or_create_identity(bot, chat_id)
        if identity is None:
            logger.info("Posting directly to chat %s", chat_id)
            return await bot.send_message(chat_id=chat_id, text=text)
        logger.info("Posting as %s in %s", display_name, identity.chat_title)
        return await bot.send_message(
            chat_id=chat_id,
            text=identity.render(text, display_name, user_id),
            parse_mode=ParseMode.HTML,
        )
