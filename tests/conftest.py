"""Shared fixtures."""
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    """Point Path.home() at an empty directory so personal layers are isolated."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home_dir)
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def write_doc():
    """Write a markdown document, creating parent directories."""

    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _write


@pytest.fixture
async def database(tmp_path):
    """Initialize a throwaway SQLite database."""
    from claudekit.storage import close_database, init_database

    await init_database(str(tmp_path / "db" / "test.db"))
    yield
    await close_database()


@pytest.fixture
def kit_registry():
    """Small in-memory catalog."""
    from claudekit.catalog import CatalogRegistry, DocumentKind, KitDocument

    registry = CatalogRegistry(include_builtin=False)
    registry.add(KitDocument(
        "fix", DocumentKind.COMMAND, "Fix a bug", "Fix: $ARGUMENTS",
        usage="/fix [issue]", category="Development", needs_args=True,
    ))
    registry.add(KitDocument(
        "status", DocumentKind.COMMAND, "Report status", "Report status.",
        usage="/status", category="Utilities",
    ))
    registry.add(KitDocument(
        "security-scan", DocumentKind.COMMAND, "Scan for vulnerabilities", "Scan $ARGUMENTS",
        usage="/security-scan [path]", category="Utilities", needs_args=True,
    ))
    registry.add(KitDocument("default", DocumentKind.MODE, "Balanced", "Normal."))
    registry.add(KitDocument("terse", DocumentKind.MODE, "Short answers", "Be terse."))
    registry.add(KitDocument(
        "tdd", DocumentKind.SKILL, "Test-driven development", "Red, green, refactor.",
        category="methodology",
    ))
    return registry


@pytest.fixture
def mock_update():
    """Create mock Telegram update."""
    from unittest.mock import AsyncMock, MagicMock

    update = MagicMock()
    update.effective_user.id = 12345678
    update.effective_user.first_name = "Ada"
    update.message.reply_text = AsyncMock()
    return update


@pytest.fixture
def mock_context(kit_registry):
    """Create mock context with config and catalog."""
    from unittest.mock import AsyncMock, MagicMock

    from claudekit.config.settings import Config

    context = MagicMock()
    context.bot = AsyncMock()
    context.args = []
    context.user_data = {}
    context.bot_data = {
        "config": Config(allowed_users=[12345678], projects={"myapp": "/srv/myapp"}),
        "catalog": kit_registry,
    }
    return context
