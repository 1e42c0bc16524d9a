"""Test host command handlers."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from claudekit.bot.handlers import (
    cancel,
    format_catalog_help,
    handle_message,
    help_cmd,
    history_cmd,
    mode_cmd,
    new_project,
    refresh_commands,
    skills_cmd,
    start,
)
from claudekit.catalog import Invocation
from claudekit.storage import InvocationRepository, PreferenceRepository, get_session


@pytest.fixture
def stub_registry(mock_context):
    """Replace the catalog with a mock that does not rescan disk."""
    registry = MagicMock()
    registry.refresh = MagicMock(return_value=5)
    registry.publish = AsyncMock(return_value=13)
    registry.modes = [MagicMock(), MagicMock()]
    registry.skills = [MagicMock()]
    mock_context.bot_data["catalog"] = registry
    return registry


@pytest.mark.asyncio
async def test_start_shows_counts(mock_update, mock_context):
    """Start greets the user with catalog counts."""
    await start(mock_update, mock_context)

    text = mock_update.message.reply_text.call_args[0][0]
    assert "Ada" in text
    assert "3 commands, 2 modes and 1 skills" in text


def test_format_catalog_help_groups_commands(kit_registry):
    """Catalog commands are listed by category in fixed order."""
    text = format_catalog_help(kit_registry)

    assert "/mode [name]" in text
    assert text.index("<b>Development</b>") < text.index("<b>Utilities</b>")
    assert "/fix [issue] - Fix a bug" in text


def test_format_catalog_help_matches_categories_case_insensitively(kit_registry):
    """A lower-case category still sorts into the fixed order."""
    from claudekit.catalog import DocumentKind, KitDocument

    kit_registry.add(KitDocument(
        "ship", DocumentKind.COMMAND, "Ship it", "Ship.", usage="/ship", category="git & deployment",
    ))

    text = format_catalog_help(kit_registry)

    assert text.index("<b>Development</b>") < text.index("<b>Git &amp; Deployment</b>")
    assert text.index("<b>Git &amp; Deployment</b>") < text.index("<b>Utilities</b>")


@pytest.mark.asyncio
async def test_help_cmd_uses_html(mock_update, mock_context):
    """Help is sent as HTML."""
    await help_cmd(mock_update, mock_context)

    assert mock_update.message.reply_text.call_args.kwargs["parse_mode"] == "HTML"


@pytest.mark.asyncio
async def test_new_project_shows_keyboard(mock_update, mock_context):
    """/new without args shows the project keyboard."""
    await new_project(mock_update, mock_context)

    markup = mock_update.message.reply_text.call_args.kwargs["reply_markup"]
    assert markup.inline_keyboard[0][0].callback_data == "project:myapp"


@pytest.mark.asyncio
async def test_new_project_by_name(mock_update, mock_context, stub_registry):
    """/new NAME selects a configured project and reloads the catalog."""
    mock_context.args = ["myapp"]

    await new_project(mock_update, mock_context)

    assert mock_context.user_data["project_path"] == "/srv/myapp"
    stub_registry.refresh.assert_called_once_with(project_path="/srv/myapp")
    stub_registry.publish.assert_awaited_once_with(mock_context.bot)
    assert "5 command(s)" in mock_update.message.reply_text.call_args[0][0]


@pytest.mark.asyncio
async def test_new_project_by_path(tmp_path, mock_update, mock_context, stub_registry):
    """/new PATH accepts an existing directory."""
    mock_context.args = [str(tmp_path)]

    await new_project(mock_update, mock_context)

    assert mock_context.user_data["project_path"] == str(tmp_path)


@pytest.mark.asyncio
async def test_new_project_unknown(mock_update, mock_context, stub_registry):
    """Unknown projects are reported."""
    mock_context.args = ["nowhere-at-all"]

    await new_project(mock_update, mock_context)

    stub_registry.refresh.assert_not_called()
    assert "not found" in mock_update.message.reply_text.call_args[0][0]


@pytest.mark.asyncio
async def test_mode_cmd_shows_keyboard(mock_update, mock_context, database):
    """/mode without args shows the current mode and choices."""
    await mode_cmd(mock_update, mock_context)

    call = mock_update.message.reply_text.call_args
    assert call.args[0] == "Current mode: default"
    assert call.kwargs["reply_markup"].inline_keyboard[0][0].text == "✅ default"


@pytest.mark.asyncio
async def test_mode_cmd_sets_mode(mock_update, mock_context, database):
    """/mode NAME persists the choice."""
    mock_context.args = ["terse"]

    await mode_cmd(mock_update, mock_context)

    assert "Mode set to terse" in mock_update.message.reply_text.call_args[0][0]
    async with get_session() as db:
        assert await PreferenceRepository(db).get_mode(12345678) == "terse"


@pytest.mark.asyncio
async def test_mode_cmd_unknown_mode(mock_update, mock_context, database):
    """Unknown modes list the available ones."""
    mock_context.args = ["loud"]

    await mode_cmd(mock_update, mock_context)

    text = mock_update.message.reply_text.call_args[0][0]
    assert "Unknown mode: loud" in text
    assert "default, terse" in text


@pytest.mark.asyncio
async def test_skills_cmd_lists_by_category(mock_update, mock_context):
    """/skills lists skills grouped by category."""
    await skills_cmd(mock_update, mock_context)

    text = mock_update.message.reply_text.call_args[0][0]
    assert "<b>Methodology</b>" in text
    assert "<code>tdd</code> - Test-driven development" in text


@pytest.mark.asyncio
async def test_skills_cmd_shows_one(mock_update, mock_context):
    """/skills NAME shows the skill body."""
    mock_context.args = ["tdd"]

    await skills_cmd(mock_update, mock_context)

    assert "<pre>Red, green, refactor.</pre>" in mock_update.message.reply_text.call_args[0][0]


@pytest.mark.asyncio
async def test_skills_cmd_unknown(mock_update, mock_context):
    """Unknown skills are reported."""
    mock_context.args = ["nope"]

    await skills_cmd(mock_update, mock_context)

    mock_update.message.reply_text.assert_awaited_once_with("❌ Unknown skill: nope")


@pytest.mark.asyncio
async def test_refresh_commands(mock_update, mock_context, stub_registry):
    """/refresh rescans for the current project and republishes."""
    mock_context.user_data["project_path"] = "/srv/myapp"

    await refresh_commands(mock_update, mock_context)

    stub_registry.refresh.assert_called_once_with(project_path="/srv/myapp")
    stub_registry.publish.assert_awaited_once()
    assert "5 command(s), 2 mode(s), 1 skill(s)" in mock_update.message.reply_text.call_args[0][0]


@pytest.mark.asyncio
async def test_history_cmd_empty(mock_update, mock_context, database):
    """No history yet."""
    await history_cmd(mock_update, mock_context)

    mock_update.message.reply_text.assert_awaited_once_with("No commands run yet.")


@pytest.mark.asyncio
async def test_history_cmd_lists_entries(mock_update, mock_context, database):
    """History shows recent commands and the total cost."""
    async with get_session() as db:
        repo = InvocationRepository(db)
        await repo.record(12345678, "fix", "login <form>", cost_usd=0.5)
        await repo.record(12345678, "status", cost_usd=0.25)

    await history_cmd(mock_update, mock_context)

    text = mock_update.message.reply_text.call_args[0][0]
    assert "/fix login &lt;form&gt; ($0.5000)" in text
    assert "Total: $0.7500" in text


@pytest.mark.asyncio
async def test_cancel_interrupts_active_client(mock_update, mock_context):
    """/cancel interrupts a running query."""
    client = AsyncMock()
    mock_context.user_data["active_client"] = client

    await cancel(mock_update, mock_context)

    client.interrupt.assert_awaited_once()
    assert "active_client" not in mock_context.user_data
    mock_update.message.reply_text.assert_awaited_once_with("🛑 Operation cancelled.")


@pytest.mark.asyncio
async def test_cancel_clears_pending_command(mock_update, mock_context):
    """/cancel drops a command waiting for input."""
    mock_context.user_data["pending_command"] = {"name": "fix", "flags": {}}

    await cancel(mock_update, mock_context)

    assert "pending_command" not in mock_context.user_data
    mock_update.message.reply_text.assert_awaited_once_with("🛑 Command cancelled.")


@pytest.mark.asyncio
async def test_cancel_nothing_running(mock_update, mock_context):
    """/cancel with nothing to stop."""
    await cancel(mock_update, mock_context)

    mock_update.message.reply_text.assert_awaited_once_with("ℹ️ No operation in progress.")


@pytest.mark.asyncio
async def test_handle_message_completes_pending_command(mock_update, mock_context):
    """Text after a pending command becomes its arguments."""
    mock_context.user_data["pending_command"] = {"name": "fix", "flags": {"mode": "terse"}}
    mock_update.message.text = "  login is broken "

    with patch("claudekit.bot.handlers.run_invocation", new_callable=AsyncMock) as mock_run:
        await handle_message(mock_update, mock_context)

    assert mock_run.call_args[0][2] == Invocation(
        name="fix", args="login is broken", flags={"mode": "terse"}
    )
    assert "pending_command" not in mock_context.user_data


@pytest.mark.asyncio
async def test_handle_message_applies_mode(mock_update, mock_context, database):
    """Plain messages are sent with the active mode."""
    async with get_session() as db:
        await PreferenceRepository(db).set_mode(12345678, "terse")
    mock_update.message.text = "What does this do?"

    with patch("claudekit.bot.handlers.execute_prompt", new_callable=AsyncMock) as mock_exec:
        await handle_message(mock_update, mock_context)

    rendered = mock_exec.call_args[0][2]
    assert rendered.command == "message"
    assert rendered.text == "# Mode: terse\n\nBe terse.\n\n---\n\nWhat does this do?"


@pytest.mark.asyncio
async def test_handle_message_default_mode_is_plain(mock_update, mock_context, database):
    """The default mode sends text unchanged."""
    mock_update.message.text = "hello"

    with patch("claudekit.bot.handlers.execute_prompt", new_callable=AsyncMock) as mock_exec:
        await handle_message(mock_update, mock_context)

    assert mock_exec.call_args[0][2].text == "hello"
