"""Whitelist check wrapped around every bot handler."""
import logging
from functools import wraps
from typing import Callable, TypeVar

from telegram import Update
from telegram.ext import ContextTypes

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)

NOT_CONFIGURED = "⚠️ Claude Kit bot is not configured"
UNAUTHORIZED = "⛔ Unauthorized"


async def _reject(update: Update, text: str) -> None:
    if update.message:
        await update.message.reply_text(text)
    elif update.callback_query:
        await update.callback_query.answer(text, show_alert=True)


def auth_middleware(handler: F) -> F:
    """Only run the handler for users in the configured whitelist.

    Updates without a sender (channel posts) are dropped silently.
    """

    @wraps(handler)
    async def wrapper(
        update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        config = context.bot_data.get("config")
        if config is None:
            await _reject(update, NOT_CONFIGURED)
            return

        user = update.effective_user
        if user is None:
            return

        if not config.is_user_allowed(user.id):
            logger.warning(f"Rejected update from unauthorized user {user.id}")
            await _reject(update, UNAUTHORIZED)
            return

        return await handler(update, context)

    return wrapper
