"""Telegram inline keyboard builders."""
from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from claudekit.catalog import KitDocument
from claudekit.catalog.registry import DEFAULT_MODE


def project_keyboard(projects: dict[str, str] | None) -> InlineKeyboardMarkup:
    """Create project selection keyboard."""
    buttons = []

    for name in projects or {}:
        buttons.append(
            [InlineKeyboardButton(name, callback_data=f"project:{name}")]
        )

    # Always allow leaving project scope
    buttons.append(
        [InlineKeyboardButton("📂 No project", callback_data="project:")]
    )

    return InlineKeyboardMarkup(buttons)


def mode_keyboard(modes: list[KitDocument], current: str | None) -> InlineKeyboardMarkup:
    """Create mode selection keyboard, two buttons per row, current mode marked."""
    current = current or DEFAULT_MODE
    ordered = sorted(modes, key=lambda m: (m.name != DEFAULT_MODE, m.name))

    row: list[InlineKeyboardButton] = []
    rows: list[list[InlineKeyboardButton]] = []
    for mode in ordered:
        label = f"✅ {mode.name}" if mode.name == current else mode.name
        row.append(InlineKeyboardButton(label, callback_data=f"mode:{mode.name}"))
        if len(row) == 2:
            rows.append(row)
            row = []
    if row:
        rows.append(row)

    return InlineKeyboardMarkup(rows)


def cancel_keyboard() -> InlineKeyboardMarkup:
    """Create cancel button."""
    buttons = [
        [InlineKeyboardButton("🛑 Cancel", callback_data="cancel")]
    ]
    return InlineKeyboardMarkup(buttons)
