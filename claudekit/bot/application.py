"""Telegram bot application setup."""
import logging

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from claudekit.catalog import CatalogRegistry
from claudekit.config.settings import Config
from claudekit.storage import close_database, init_database

from .callbacks import handle_callback
from .command_handler import handle_kit_command
from .handlers import (
    cancel,
    handle_message,
    help_cmd,
    history_cmd,
    mode_cmd,
    new_project,
    refresh_commands,
    skills_cmd,
    start,
)
from .middleware import auth_middleware

logger = logging.getLogger(__name__)

HOST_HANDLERS = [
    ("start", start),
    ("help", help_cmd),
    ("new", new_project),
    ("mode", mode_cmd),
    ("skills", skills_cmd),
    ("refresh", refresh_commands),
    ("history", history_cmd),
    ("cancel", cancel),
]


async def post_init(application: Application) -> None:
    """Open the database, load the catalog and publish the command menu."""
    config = application.bot_data["config"]
    await init_database(config.database.path)

    registry = application.bot_data["catalog"]
    count = registry.refresh(project_path=None)
    published = await registry.publish(application.bot)
    logger.info(f"Loaded {count} kit commands at startup, {published} menu entries")


async def post_shutdown(application: Application) -> None:
    """Dispose of the database engine."""
    await close_database()


def create_application(config: Config) -> Application:
    """Create and configure Telegram Application."""
    # concurrent_updates lets /cancel and callbacks run while Claude streams
    app = (
        Application.builder()
        .token(config.telegram_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .concurrent_updates(True)
        .build()
    )

    app.bot_data["config"] = config
    app.bot_data["catalog"] = CatalogRegistry(
        extra_paths=config.catalog.paths,
        include_builtin=config.catalog.include_builtin,
    )

    for command, handler in HOST_HANDLERS:
        app.add_handler(CommandHandler(command, auth_middleware(handler)))

    app.add_handler(
        MessageHandler(
            filters.TEXT & ~filters.COMMAND,
            auth_middleware(handle_message),
        )
    )

    # Catalog commands (catch-all for commands not handled above)
    app.add_handler(
        MessageHandler(
            filters.COMMAND,
            auth_middleware(handle_kit_command),
        )
    )

    app.add_handler(CallbackQueryHandler(auth_middleware(handle_callback)))

    return app
