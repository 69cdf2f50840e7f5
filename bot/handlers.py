import asyncio
import logging

from telegram import ForceReply, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ChatAction, ChatMemberStatus, ChatType
from telegram.error import Forbidden, TelegramError
from telegram.ext import ContextTypes, ConversationHandler

from services.errors import DraftError, RewriteError

logger = logging.getLogger(__name__)

# Conversation state for /compose
WAIT_TEXT = 0

COMPOSE_PROMPT = "Type what you want to say (private)."
HELP_TEXT = (
    "Available commands:\n"
    "/compose - Privately write a message, get it rewritten, and send only the rewrite\n"
    "/cancel - Stop composing\n"
    "/help - Show this message\n\n"
    "Use /compose in the chat where the message should be posted."
)

def confirm_keyboard(channel_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("Send rewrite", callback_data=f"send:{channel_id}"),
            InlineKeyboardButton("Cancel", callback_data="cancel"),
        ]
    ])

def is_chat_allowed(context: ContextTypes.DEFAULT_TYPE, chat_id: int, chat_type: str) -> bool:
    allowed = context.bot_data["settings"].allowed_chat_ids
    return chat_type == ChatType.PRIVATE or not allowed or chat_id in allowed

async def is_chat_member(context: ContextTypes.DEFAULT_TYPE, chat_id: int, user_id: int) -> bool:
    try:
        member = await context.bot.get_chat_member(chat_id, user_id)
    except TelegramError as e:
        logger.warning("Could not check membership of user %s in chat %s: %s", user_id, chat_id, e)
        return False
    return member.status not in (ChatMemberStatus.LEFT, ChatMemberStatus.BANNED)

# ---------------------------
# Command Handlers
# ---------------------------
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Send a welcome message when the bot starts."""
    await update.message.reply_text("Hello! I am NeuroBridge. Use /compose to write a message privately.")

async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(HELP_TEXT)

# ---------------------------
# /compose Conversation
# ---------------------------
async def compose_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Remember where the draft should go and ask the user for it in private."""
    chat = update.effective_chat
    user = update.effective_user
    if not is_chat_allowed(context, chat.id, chat.type):
        await update.message.reply_text("Compose is not enabled in this chat.")
        return ConversationHandler.END

    context.user_data["compose_channel_id"] = chat.id
    if chat.type == ChatType.PRIVATE:
        await update.message.reply_text(COMPOSE_PROMPT, reply_markup=ForceReply(input_field_placeholder="Your message"))
        return WAIT_TEXT

    try:
        await context.bot.send_message(
            chat_id=user.id,
            text=f"Composing for {chat.title}. {COMPOSE_PROMPT}",
            reply_markup=ForceReply(input_field_placeholder="Your message"),
        )
    except Forbidden:
        # The user has never opened a private chat with the bot
        link = f"https://t.me/{context.bot.username}?start=compose_{chat.id}"
        keyboard = InlineKeyboardMarkup([[InlineKeyboardButton("Write privately", url=link)]])
        await update.message.reply_text("Open a private chat with me to write your draft.", reply_markup=keyboard)
        return WAIT_TEXT

    await update.message.reply_text("I sent you a private message. Write your draft there.")
    return WAIT_TEXT

async def compose_deep_link(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start compose_<chat_id> from the group deep link."""
    payload = context.args[0] if context.args else ""
    try:
        channel_id = int(payload.removeprefix("compose_"))
    except ValueError:
        await update.message.reply_text("That link is not valid. Run /compose again.")
        return ConversationHandler.END

    allowed = context.bot_data["settings"].allowed_chat_ids
    if allowed and channel_id not in allowed:
        await update.message.reply_text("Compose is not enabled in that chat.")
        return ConversationHandler.END

    if not await is_chat_member(context, channel_id, update.effective_user.id):
        await update.message.reply_text("You can only compose for a chat you are a member of.")
        return ConversationHandler.END

    context.user_data["compose_channel_id"] = channel_id
    await update.message.reply_text(COMPOSE_PROMPT, reply_markup=ForceReply(input_field_placeholder="Your message"))
    return WAIT_TEXT

async def receive_draft(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Rewrite the submitted text and offer to send it."""
    text = update.message.text or ""
    max_length = context.bot_data["settings"].COMPOSE_MAX_LENGTH
    if not text.strip():
        await update.message.reply_text("Your message is empty. Type what you want to say.")
        return WAIT_TEXT
    if len(text) > max_length:
        await update.message.reply_text(f"Please keep it under {max_length} characters and try again.")
        return WAIT_TEXT

    user_id = update.effective_user.id
    channel_id = context.user_data.get("compose_channel_id", update.effective_chat.id)
    rewrite_client = context.bot_data["rewrite_client"]

    await context.bot.send_chat_action(chat_id=update.effective_chat.id, action=ChatAction.TYPING)
    try:
        result = await asyncio.to_thread(rewrite_client.rewrite, text)
    except RewriteError as e:
        logger.warning("Rewrite failed for user %s: %s", user_id, e)
        await update.message.reply_text(f"Error: {e}")
        return ConversationHandler.END

    context.bot_data["draft_store"].put(user_id, result.rewritten_text, channel_id)
    context.user_data.pop("compose_channel_id", None)
    await update.message.reply_text(result.rewritten_text, reply_markup=confirm_keyboard(channel_id))
    return ConversationHandler.END

async def cancel_compose(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Cancel the compose conversation."""
    context.user_data.pop("compose_channel_id", None)
    await update.message.reply_text("Compose cancelled.")
    return ConversationHandler.END

# ---------------------------
# Send / Cancel Buttons
# ---------------------------
async def draft_button(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the Send rewrite and Cancel buttons under a rewritten draft."""
    query = update.callback_query
    await query.answer()
    user = query.from_user
    store = context.bot_data["draft_store"]

    if query.data == "cancel":
        if store.cancel(user.id):
            await query.edit_message_text("Canceled.")
        else:
            await query.edit_message_text("No active draft found. Run /compose again.")
        return

    channel_id = int(query.data.split(":", 1)[1])
    try:
        draft = store.take_for_send(user.id, channel_id)
    except DraftError as e:
        await query.edit_message_text(str(e))
        return

    display_name = user.full_name or user.username
    try:
        await context.bot_data["send_proxy"].send(
            context.bot, draft.origin_channel_id, draft.rewritten_text, display_name, user.id
        )
    except Exception:
        store.restore(draft)
        raise
    await query.edit_message_text("Sent. Only the rewrite was posted.")

# ---------------------------
# Error Handler
# ---------------------------
async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log the error and tell the user about it if there is anyone to tell."""
    logger.error("Exception while handling an update", exc_info=context.error)
    if not isinstance(update, Update) or update.effective_message is None:
        return
    try:
        await update.effective_message.reply_text(f"Error: {context.error}")
    except Exception as e:
        logger.debug("Could not report error to user: %s", e)
