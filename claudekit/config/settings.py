"""Configuration settings."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "~/.claudekit/claudekit.db"


@dataclass
class CatalogConfig:
    """Where kit documents are loaded from."""

    include_builtin: bool = True
    paths: list[str] = field(default_factory=list)  # extra kit roots
    default_mode: str = "default"


@dataclass
class ClaudeConfig:
    """Claude SDK settings."""

    max_turns: int = 50
    permission_mode: str = "default"
    max_budget_usd: float = 10.0
    model: str | None = None


@dataclass
class StreamingConfig:
    """Streaming behavior settings."""

    edit_throttle_ms: int = 1000
    chunk_size: int = 3800


@dataclass
class DatabaseConfig:
    """Database settings."""

    path: str = DEFAULT_DATABASE


@dataclass
class Config:
    """Main configuration."""

    allowed_users: list[int] = field(default_factory=list)
    projects: dict[str, str] = field(default_factory=dict)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    telegram_token: str = ""

    def is_user_allowed(self, user_id: int) -> bool:
        """Check if user is in whitelist."""
        return user_id in self.allowed_users


def default_config_path() -> Path:
    """~/.claudekit/config.yaml"""
    return Path.home() / ".claudekit" / "config.yaml"


def load_config(path: Path | str | None = None) -> Config:
    """Load configuration from YAML file."""
    if path is None:
        path = default_config_path()
    else:
        path = Path(path)

    if not path.exists():
        logger.info(f"No config at {path}, using defaults")
        return _parse_config({})

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse config dictionary into Config object."""
    config = Config(
        allowed_users=data.get("allowed_users", []),
        projects={
            name: str(Path(project).expanduser())
            for name, project in data.get("projects", {}).items()
        },
    )

    if "catalog" in data:
        config.catalog = CatalogConfig(
            include_builtin=data["catalog"].get("include_builtin", True),
            paths=[str(Path(p).expanduser()) for p in data["catalog"].get("paths", [])],
            default_mode=data["catalog"].get("default_mode", "default"),
        )

    if "claude" in data:
        config.claude = ClaudeConfig(
            max_turns=data["claude"].get("max_turns", 50),
            permission_mode=data["claude"].get("permission_mode", "default"),
            max_budget_usd=data["claude"].get("max_budget_usd", 10.0),
            model=data["claude"].get("model"),
        )

    if "streaming" in data:
        config.streaming = StreamingConfig(
            edit_throttle_ms=data["streaming"].get("edit_throttle_ms", 1000),
            chunk_size=data["streaming"].get("chunk_size", 3800),
        )

    db_path = data.get("database", {}).get("path", DEFAULT_DATABASE)
    config.database = DatabaseConfig(path=str(Path(db_path).expanduser()))

    return config
