"""Claude Kit bot entry point."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from claudekit.bot.application import create_application
from claudekit.config.settings import load_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def main(config_path: Path | str | None = None) -> None:
    """Run the Telegram bot until interrupted."""
    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)
    load_dotenv()

    token = os.getenv("TELEGRAM_BOT_TOKEN")
    if not token:
        logger.error("TELEGRAM_BOT_TOKEN environment variable required")
        return

    config = load_config(config_path)
    config.telegram_token = token

    app = create_application(config)

    logger.info("Claude Kit bot starting...")
    # run_polling() manages its own event loop
    app.run_polling()


if __name__ == "__main__":
    main()
