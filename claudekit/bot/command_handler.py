"""Handler for catalog slash commands."""
import logging

from telegram import Update
from telegram.ext import ContextTypes

from claude_agent_sdk import (
    AssistantMessage,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

from claudekit.catalog import CatalogRegistry, Invocation, RenderedPrompt, parse_invocation
from claudekit.claude import KitClient, MessageStreamer
from claudekit.exceptions import ClaudeKitError
from claudekit.storage import InvocationRepository, PreferenceRepository, get_session
from claudekit.utils.html import code, escape, truncate
from .keyboards import cancel_keyboard

logger = logging.getLogger(__name__)

TOOL_INPUT_PREVIEW = 200
TOOL_RESULT_PREVIEW = 500


async def active_mode(context: ContextTypes.DEFAULT_TYPE, user_id: int) -> str:
    """The user's persisted mode, else the configured default."""
    config = context.bot_data.get("config")
    async with get_session() as db:
        mode = await PreferenceRepository(db).get_mode(user_id)
    return mode or config.catalog.default_mode


async def handle_kit_command(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle a catalog slash command.

    If the command needs args and got none, prompts the user and stores a
    pending command. Otherwise renders and runs it immediately.
    """
    registry: CatalogRegistry = context.bot_data.get("catalog")

    text = update.message.text
    name = text.split(maxsplit=1)[0].lstrip("/").split("@", 1)[0]

    doc = registry.get(name)
    if not doc:
        await update.message.reply_text(f"❌ Unknown command: /{name}")
        return

    invocation = parse_invocation(text, allowed_flags=doc.flag_names)
    invocation.name = doc.name

    if doc.needs_args and not invocation.args:
        context.user_data["pending_command"] = {
            "name": doc.name,
            "flags": invocation.flags,
        }
        await update.message.reply_text(
            f"🔧 /{doc.name} requires input.\n\n"
            f"📝 {doc.description}\n\n"
            "Enter your input or /cancel:"
        )
        return

    await run_invocation(update, context, invocation)


async def run_invocation(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    invocation: Invocation,
) -> None:
    """Render an invocation with the user's mode and send it to Claude."""
    registry: CatalogRegistry = context.bot_data.get("catalog")
    mode = await active_mode(context, update.effective_user.id)

    try:
        rendered = registry.render(invocation, mode=mode)
    except ClaudeKitError as e:
        await update.message.reply_text(f"❌ {e}")
        return

    await execute_prompt(update, context, rendered)


def _format_tool_call(block: ToolUseBlock) -> str:
    tool_info = f"\n🔧 <b>{escape(block.name)}</b>\n"
    for key, value in (block.input or {}).items():
        tool_info += f"   {code(key)}: {escape(truncate(str(value), TOOL_INPUT_PREVIEW))}\n"
    return tool_info


def _format_tool_result(block: ToolResultBlock) -> str:
    result_text = str(block.content) if block.content else "(no output)"
    if len(result_text) > TOOL_RESULT_PREVIEW:
        result_text = result_text[:TOOL_RESULT_PREVIEW] + "\n... (truncated)"
    icon = "⚠️" if block.is_error else "📄"
    return f"\n{icon} Result:\n<pre>{escape(result_text)}</pre>\n"


async def execute_prompt(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    rendered: RenderedPrompt,
) -> None:
    """Execute a rendered prompt, stream the response and log the invocation."""
    config = context.bot_data.get("config")
    project_path = context.user_data.get("project_path")
    cost = 0.0

    thinking_msg = await update.message.reply_text(
        "🤔 Thinking...",
        reply_markup=cancel_keyboard(),
    )

    streamer = MessageStreamer(
        message=thinking_msg,
        throttle_ms=config.streaming.edit_throttle_ms,
        chunk_size=config.streaming.chunk_size,
    )

    logger.info(f"Running /{rendered.command} (mode={rendered.mode}, project={project_path})")

    try:
        async with KitClient(config, project_path) as client:
            context.user_data["active_client"] = client

            await client.query(rendered.text)

            async for message in client.receive_response():
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            await streamer.append_text(escape(block.text))
                        elif isinstance(block, ToolUseBlock):
                            await streamer.append_text(_format_tool_call(block))

                elif isinstance(message, UserMessage):
                    for block in message.content:
                        if isinstance(block, ToolResultBlock):
                            await streamer.append_text(_format_tool_result(block))

                elif isinstance(message, ResultMessage):
                    if message.total_cost_usd:
                        cost += message.total_cost_usd

            await streamer.flush()

    except Exception as e:
        logger.exception(f"/{rendered.command} failed")
        await thinking_msg.edit_text(f"❌ Error: {str(e)}")
    finally:
        context.user_data.pop("active_client", None)

    async with get_session() as db:
        await InvocationRepository(db).record(
            telegram_user_id=update.effective_user.id,
            command=rendered.command,
            arguments=rendered.args,
            mode=rendered.mode,
            project_path=project_path,
            cost_usd=cost,
        )
