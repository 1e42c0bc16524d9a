"""Telegram bot command handlers."""
import logging
from pathlib import Path

from telegram import Update
from telegram.ext import ContextTypes

from claudekit.catalog import CatalogRegistry, DocumentKind, Invocation, RenderedPrompt
from claudekit.catalog.navigation import (
    COMMAND_CATEGORIES,
    SKILL_CATEGORIES,
    group_label,
    ordered_groups,
)
from claudekit.exceptions import ClaudeKitError
from claudekit.storage import InvocationRepository, PreferenceRepository, get_session
from claudekit.utils.html import bold, chunk_lines, code, escape, pre, truncate

from .command_handler import active_mode, execute_prompt, run_invocation
from .keyboards import mode_keyboard, project_keyboard

logger = logging.getLogger(__name__)

SKILL_PREVIEW = 3500
HISTORY_LIMIT = 10

HELP_TEXT = """
<b>Claude Kit</b>

<b>Host commands</b>
/new [project] - Select a project
/mode [name] - Show or switch behavioural mode
/skills [name] - List skills or show one
/refresh - Rescan kit documents
/history - Show recent commands
/cancel - Stop current operation
/help - Show this message
"""


def format_catalog_help(registry: CatalogRegistry) -> str:
    """HELP_TEXT followed by the catalog commands grouped by category."""
    lines = [HELP_TEXT.strip()]
    for category, docs in ordered_groups(registry.commands, COMMAND_CATEGORIES):
        lines.append(f"\n{bold(group_label(category))}")
        for doc in docs:
            lines.append(f"{escape(doc.usage)} - {escape(doc.description)}")
    return "\n".join(lines)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    user = update.effective_user
    registry: CatalogRegistry = context.bot_data.get("catalog")
    await update.message.reply_text(
        f"👋 Welcome to Claude Kit, {user.first_name}!\n\n"
        f"📋 {len(registry.commands)} commands, {len(registry.modes)} modes and "
        f"{len(registry.skills)} skills loaded.\n\n"
        "Use /new to pick a project or /help for all commands."
    )


async def help_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    registry: CatalogRegistry = context.bot_data.get("catalog")
    for chunk in chunk_lines(format_catalog_help(registry)):
        await update.message.reply_text(chunk, parse_mode="HTML")


async def select_project(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    project_path: str | None,
    project_name: str | None = None,
) -> str:
    """Switch project scope and reload the catalog for it."""
    if project_path:
        context.user_data["project_path"] = project_path
    else:
        context.user_data.pop("project_path", None)

    registry: CatalogRegistry = context.bot_data.get("catalog")
    cmd_count = registry.refresh(project_path=project_path)
    await registry.publish(context.bot)

    display_name = project_name or project_path or "no project"
    logger.info(f"User {update.effective_user.id} selected {display_name}")
    return f"✅ Using {display_name}\n📋 {cmd_count} command(s) available."


async def new_project(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /new command."""
    config = context.bot_data.get("config")

    if not context.args:
        await update.message.reply_text(
            "📁 Select a project:",
            reply_markup=project_keyboard(config.projects),
        )
        return

    target = context.args[0]
    if target in config.projects:
        message = await select_project(update, context, config.projects[target], target)
    elif Path(target).expanduser().is_dir():
        message = await select_project(update, context, str(Path(target).expanduser()))
    else:
        message = (
            f"❌ Project '{target}' not found.\n"
            "Use /new without arguments to see available projects."
        )
    await update.message.reply_text(message)


async def mode_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /mode command - show or switch the active mode."""
    registry: CatalogRegistry = context.bot_data.get("catalog")
    user_id = update.effective_user.id

    if not context.args:
        current = await active_mode(context, user_id)
        await update.message.reply_text(
            f"Current mode: {current}",
            reply_markup=mode_keyboard(registry.modes, current),
        )
        return

    name = context.args[0]
    await update.message.reply_text(await set_mode(registry, user_id, name))


async def set_mode(registry: CatalogRegistry, user_id: int, name: str) -> str:
    """Persist a mode choice; returns the reply text."""
    mode = registry.get(name, DocumentKind.MODE)
    if mode is None:
        available = ", ".join(sorted(m.name for m in registry.modes))
        return f"❌ Unknown mode: {name}\nAvailable: {available}"

    async with get_session() as db:
        await PreferenceRepository(db).set_mode(user_id, mode.name)
    return f"🎛 Mode set to {mode.name}: {mode.description}"


async def skills_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /skills command - list skills or show one."""
    registry: CatalogRegistry = context.bot_data.get("catalog")

    if context.args:
        skill = registry.get(context.args[0], DocumentKind.SKILL)
        if skill is None:
            await update.message.reply_text(f"❌ Unknown skill: {context.args[0]}")
            return
        await update.message.reply_text(
            f"{bold(skill.name)}\n{escape(skill.description)}\n\n"
            f"{pre(truncate(skill.body, SKILL_PREVIEW))}",
            parse_mode="HTML",
        )
        return

    lines = ["<b>Skills</b>"]
    for category, docs in ordered_groups(registry.skills, SKILL_CATEGORIES):
        lines.append(f"\n{bold(group_label(category))}")
        for doc in docs:
            lines.append(f"{code(doc.name)} - {escape(doc.description)}")
    for chunk in chunk_lines("\n".join(lines)):
        await update.message.reply_text(chunk, parse_mode="HTML")


async def refresh_commands(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle /refresh command - rescan kit documents."""
    registry: CatalogRegistry = context.bot_data.get("catalog")
    project_path = context.user_data.get("project_path")

    count = registry.refresh(project_path=project_path)
    await registry.publish(context.bot)

    await update.message.reply_text(
        f"🔄 Catalog refreshed. {count} command(s), {len(registry.modes)} mode(s), "
        f"{len(registry.skills)} skill(s) loaded."
    )


async def history_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /history command - recent invocations and total cost."""
    user_id = update.effective_user.id

    async with get_session() as db:
        repo = InvocationRepository(db)
        entries = await repo.recent(user_id, limit=HISTORY_LIMIT)
        total = await repo.total_cost(user_id)

    if not entries:
        await update.message.reply_text("No commands run yet.")
        return

    lines = ["<b>Recent commands</b>"]
    for entry in entries:
        when = entry.timestamp.strftime("%Y-%m-%d %H:%M")
        args = f" {escape(truncate(entry.arguments, 40))}" if entry.arguments else ""
        lines.append(f"{when} /{escape(entry.command)}{args} (${entry.cost_usd:.4f})")
    lines.append(f"\nTotal: ${total:.4f}")
    await update.message.reply_text("\n".join(lines), parse_mode="HTML")


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cancel command."""
    client = context.user_data.get("active_client")
    pending = context.user_data.get("pending_command")

    if client:
        try:
            await client.interrupt()
            await update.message.reply_text("🛑 Operation cancelled.")
        finally:
            context.user_data.pop("active_client", None)
    elif pending:
        context.user_data.pop("pending_command", None)
        await update.message.reply_text("🛑 Command cancelled.")
    else:
        await update.message.reply_text("ℹ️ No operation in progress.")


async def handle_message(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle regular text messages.

    Text completes a pending command; otherwise it is sent to Claude with
    the active mode applied.
    """
    pending = context.user_data.pop("pending_command", None)
    if pending:
        invocation = Invocation(
            name=pending["name"],
            args=update.message.text.strip(),
            flags=pending.get("flags", {}),
        )
        await run_invocation(update, context, invocation)
        return

    registry: CatalogRegistry = context.bot_data.get("catalog")
    mode = await active_mode(context, update.effective_user.id)
    text = update.message.text
    try:
        prompt = registry.apply_mode(text, mode)
    except ClaudeKitError as e:
        await update.message.reply_text(f"❌ {e}")
        return

    rendered = RenderedPrompt(command="message", text=prompt, mode=mode, args=text)
    await execute_prompt(update, context, rendered)
