# main.py
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from bot.application import build_application
from config.settings import config

# Set up logging.
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
)
# Polling requests are logged by httpx on every cycle
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

def main():
    logger.info("Starting NeuroBridge...")
    try:
        application = build_application(config)
    except ValueError as e:
        logger.error("Startup error: %s", e)
        sys.exit(1)

    # Start polling for updates from Telegram.
    application.run_polling()

if __name__ == "__main__":
    main()
