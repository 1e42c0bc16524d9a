"""Test catalog registry."""
from unittest.mock import AsyncMock

import pytest

from claudekit.catalog.models import DocumentKind, Flag, Invocation, KitDocument
from claudekit.catalog.registry import CatalogRegistry
from claudekit.exceptions import DocumentNotFoundError


def _command(name, body, **kwargs):
    return KitDocument(name=name, kind=DocumentKind.COMMAND, description=name, body=body, **kwargs)


@pytest.fixture
def registry():
    """Registry with a few hand-built documents."""
    registry = CatalogRegistry(include_builtin=False)
    registry.add(_command("fix", "Fix this bug: $ARGUMENTS", needs_args=True))
    registry.add(_command("rename", "Rename $1 to $2", needs_args=True))
    registry.add(_command("status", "Report status."))
    registry.add(_command("security-scan", "Scan $ARGUMENTS", needs_args=True))
    registry.add(_command(
        "plan",
        "Plan: $ARGUMENTS",
        needs_args=True,
        skills=["writing-plans"],
        flags=[Flag(name="depth", default="standard"), Flag(name="quick")],
    ))
    registry.add(KitDocument("terse", DocumentKind.MODE, "Terse", "Be terse."))
    registry.add(KitDocument("default", DocumentKind.MODE, "Default", "Normal."))
    registry.add(KitDocument("writing-plans", DocumentKind.SKILL, "Plans", "Small tasks."))
    return registry


def test_registry_get_command(registry):
    """Registry returns command by name."""
    assert registry.get("fix").body == "Fix this bug: $ARGUMENTS"
    assert registry.get("/fix").name == "fix"


def test_registry_get_by_menu_name(registry):
    """Menu names resolve to the real command."""
    assert registry.get("security_scan").name == "security-scan"


def test_registry_get_unknown_returns_none(registry):
    """Registry returns None for unknown command."""
    assert registry.get("unknown") is None
    assert registry.get("fix", DocumentKind.MODE) is None


def test_registry_require_raises(registry):
    """require raises DocumentNotFoundError."""
    with pytest.raises(DocumentNotFoundError) as exc_info:
        registry.require("nope", DocumentKind.SKILL)

    assert exc_info.value.kind == "skill"
    assert "Unknown skill: nope" in str(exc_info.value)


def test_substitute_args_simple(registry):
    """Substitutes $ARGUMENTS in prompt."""
    result = registry.substitute_args(registry.get("fix"), "login is broken")

    assert result == "Fix this bug: login is broken"


def test_substitute_args_positional(registry):
    """Substitutes $1, $2 in prompt."""
    result = registry.substitute_args(registry.get("rename"), "old_name new_name")

    assert result == "Rename old_name to new_name"


def test_substitute_args_missing_positional_is_empty(registry):
    """Positionals without a value become empty."""
    result = registry.substitute_args(registry.get("rename"), "only_one")

    assert result == "Rename only_one to "


def test_substitute_args_appends_without_placeholder(registry):
    """Args are appended when the template has no placeholder."""
    result = registry.substitute_args(registry.get("status"), "backend only")

    assert result == "Report status.\n\nARGUMENTS: backend only"


def test_substitute_args_no_args_no_placeholder(registry):
    """Template is unchanged without args."""
    assert registry.substitute_args(registry.get("status"), "") == "Report status."


def test_substitute_args_keeps_dollar_digits_in_args(registry):
    """Dollar amounts typed by the user are not treated as positionals."""
    result = registry.substitute_args(registry.get("fix"), "price shows $5 not $1")

    assert result == "Fix this bug: price shows $5 not $1"


def test_substitute_args_keeps_placeholder_text_in_args(registry):
    """Placeholder names typed by the user survive substitution."""
    result = registry.substitute_args(registry.get("fix"), "docs mention $FLAGS and $ARGUMENTS", "")

    assert result == "Fix this bug: docs mention $FLAGS and $ARGUMENTS"


def test_substitute_args_positional_value_with_dollar(registry):
    """A positional value containing $2 is not substituted again."""
    result = registry.substitute_args(registry.get("rename"), "$2 total")

    assert result == "Rename $2 to total"


def test_render_flag_value_is_not_substituted(registry):
    """Flag values are inserted verbatim even when they look like placeholders."""
    registry.add(_command(
        "deploy", "Deploy $ARGUMENTS $FLAGS", needs_args=True, flags=[Flag(name="tag")]
    ))

    rendered = registry.render("/deploy --tag=$ARGUMENTS staging")

    assert rendered.text == "Deploy staging --tag=$ARGUMENTS"


def test_render_args_with_dollar_amounts(registry):
    """Rendering a command keeps dollar amounts from the arguments."""
    rendered = registry.render("/fix price shows $5 not $1")

    assert rendered.text == "Fix this bug: price shows $5 not $1"


def test_render_includes_skill_and_default_flags(registry):
    """Rendering appends skills and declared flag defaults."""
    rendered = registry.render("/plan add caching")

    assert rendered.command == "plan"
    assert rendered.args == "add caching"
    assert rendered.text.startswith("Plan: add caching\n\nOPTIONS: depth=standard")
    assert "# Skill: writing-plans\n\nSmall tasks." in rendered.text
    assert rendered.skills == ["writing-plans"]


def test_render_flag_overrides_default(registry):
    """Invocation flags override declared defaults."""
    rendered = registry.render("/plan --depth=detailed --quick add caching")

    assert "OPTIONS: depth=detailed, quick=true" in rendered.text
    assert rendered.args == "add caching"


def test_render_flags_placeholder(registry):
    """$FLAGS is replaced instead of appending OPTIONS."""
    registry.add(_command(
        "deploy", "Deploy $ARGUMENTS $FLAGS", needs_args=True, flags=[Flag(name="dry-run")]
    ))

    rendered = registry.render("/deploy staging --dry-run")

    assert rendered.text == "Deploy staging --dry-run=true"


def test_render_with_mode_prefix(registry):
    """A non-default mode is prepended."""
    rendered = registry.render("/fix crash", mode="terse")

    assert rendered.mode == "terse"
    assert rendered.text == "# Mode: terse\n\nBe terse.\n\n---\n\nFix this bug: crash"


def test_render_mode_flag_wins(registry):
    """--mode on the invocation overrides the active mode."""
    rendered = registry.render("/fix --mode=default crash", mode="terse")

    assert rendered.mode == "default"
    assert rendered.text == "Fix this bug: crash"


def test_render_unknown_mode_raises(registry):
    """Unknown modes raise DocumentNotFoundError."""
    with pytest.raises(DocumentNotFoundError):
        registry.render("/fix crash", mode="missing")


def test_render_unknown_command_raises(registry):
    """Unknown commands raise DocumentNotFoundError."""
    with pytest.raises(DocumentNotFoundError):
        registry.render("/nope")


def test_render_invocation_object_with_extra_args(registry):
    """Parsed invocations and extra args are combined."""
    rendered = registry.render(Invocation(name="fix", args="login"), args="on mobile")

    assert rendered.text == "Fix this bug: login on mobile"


def test_refresh_skips_reserved_commands(tmp_path, home, write_doc):
    """Catalog commands that collide with host commands are skipped."""
    write_doc(home / ".claude" / "commands" / "help.md", "Custom help.")
    write_doc(home / ".claude" / "commands" / "review.md", "Review.")
    registry = CatalogRegistry(include_builtin=False)

    count = registry.refresh()

    assert count == 1
    assert registry.get("help") is None
    assert registry.get("review") is not None


def test_refresh_without_reserved_keeps_all(home, write_doc):
    """Registries built for the CLI keep every command."""
    write_doc(home / ".claude" / "commands" / "help.md", "Custom help.")
    registry = CatalogRegistry(include_builtin=False, reserved=False)

    registry.refresh()

    assert registry.get("help") is not None


def test_refresh_loads_builtin_catalog():
    """Builtin catalog loads with reserved names removed."""
    registry = CatalogRegistry()

    count = registry.refresh()

    assert count == 25  # /help and /mode are host commands
    assert len(registry.modes) == 7
    assert registry.get("tdd", DocumentKind.SKILL) is not None


def test_builtin_commands_render():
    """Every builtin command renders with arguments."""
    registry = CatalogRegistry(reserved=False)
    registry.refresh()

    for doc in registry.commands:
        rendered = registry.render(f"/{doc.name} sample input", mode="review")
        assert rendered.text.startswith("# Mode: review")
        assert "$ARGUMENTS" not in rendered.text


def test_menu_entries_reserved_first(registry):
    """Menu lists host commands then catalog commands by name."""
    entries = registry.menu_entries()
    names = [name for name, _ in entries]

    assert names[:len(CatalogRegistry.RESERVED_COMMANDS)] == [
        name for name, _ in CatalogRegistry.RESERVED_COMMANDS
    ]
    assert "security_scan" in names
    assert names[len(CatalogRegistry.RESERVED_COMMANDS):] == sorted(
        names[len(CatalogRegistry.RESERVED_COMMANDS):]
    )


def test_menu_entries_truncated(registry):
    """Menu respects the entry limit."""
    limit = len(CatalogRegistry.RESERVED_COMMANDS) + 2

    entries = registry.menu_entries(limit=limit)

    assert len(entries) == limit


@pytest.mark.asyncio
async def test_publish_sets_bot_commands(registry):
    """publish pushes menu entries to Telegram."""
    bot = AsyncMock()

    count = await registry.publish(bot)

    bot.set_my_commands.assert_awaited_once()
    commands = bot.set_my_commands.call_args[0][0]
    assert len(commands) == count
    assert commands[0].command == "start"
