import logging

from telegram import BotCommand
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters
)

from bot.handlers import (
    WAIT_TEXT,
    cancel_compose,
    compose_deep_link,
    compose_start,
    draft_button,
    error_handler,
    help_command,
    receive_draft,
    start
)
from config.settings import Settings, config
from services.draft_store import DraftStore
from services.rewrite_service import RewriteClient
from services.send_proxy import SendProxy

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand("compose", "Privately write, rewrite, and send only the rewritten message."),
    BotCommand("cancel", "Stop composing."),
    BotCommand("help", "Show available commands."),
]

async def register_commands(application: Application):
    await application.bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot commands registered.")

def build_application(settings: Settings = config) -> Application:
    if not settings.TELEGRAM_BOT_TOKEN:
        raise ValueError("Missing TELEGRAM_BOT_TOKEN")

    application = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).post_init(register_commands).build()
    application.bot_data.update({
        "settings": settings,
        "rewrite_client": RewriteClient(settings),
        "draft_store": DraftStore(settings.DRAFT_TTL_SECONDS, settings.DRAFT_MAX_ENTRIES),
        "send_proxy": SendProxy(),
    })

    # Conversation handler for /compose, keyed by user so it can start in a group and continue in private
    compose_handler = ConversationHandler(
        entry_points=[
            CommandHandler("compose", compose_start),
            CommandHandler("start", compose_deep_link, filters=filters.Regex(r"^/start compose_-?\d+$")),
        ],
        states={
            WAIT_TEXT: [MessageHandler(filters.TEXT & ~filters.COMMAND & filters.ChatType.PRIVATE, receive_draft)],
        },
        fallbacks=[CommandHandler("cancel", cancel_compose)],
        per_chat=False,
        allow_reentry=True,
    )
    application.add_handler(compose_handler)

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CallbackQueryHandler(draft_button, pattern=r"^(send:-?\d+|cancel)$"))
    application.add_error_handler(error_handler)
    return application
