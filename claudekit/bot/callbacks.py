"""Callback query handlers for inline keyboards."""
import logging

from telegram import Update
from telegram.ext import ContextTypes

from .handlers import select_project, set_mode

logger = logging.getLogger(__name__)


def parse_callback_data(data: str) -> tuple[str, str]:
    """Split "action:value" callback data; value is "" when absent."""
    action, _, value = data.partition(":")
    return action, value


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route inline keyboard presses."""
    query = update.callback_query
    await query.answer()

    action, value = parse_callback_data(query.data or "")

    if action == "mode":
        registry = context.bot_data.get("catalog")
        await query.edit_message_text(
            await set_mode(registry, update.effective_user.id, value)
        )

    elif action == "project":
        config = context.bot_data.get("config")
        if value and value not in config.projects:
            await query.edit_message_text(f"❌ Project '{value}' not found.")
            return
        message = await select_project(
            update, context, config.projects.get(value), value or None
        )
        await query.edit_message_text(message)

    elif action == "cancel":
        client = context.user_data.get("active_client")
        if client:
            try:
                await client.interrupt()
            finally:
                context.user_data.pop("active_client", None)
            await query.edit_message_text("🛑 Operation cancelled.")
        else:
            context.user_data.pop("pending_command", None)
            await query.edit_message_text("ℹ️ Nothing to cancel.")

    else:
        logger.warning(f"Unknown callback data: {query.data}")
