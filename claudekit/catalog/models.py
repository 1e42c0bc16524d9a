"""Data models for kit documents."""
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

MENU_NAME_PATTERN = re.compile(r"^[a-z0-9_]{1,32}$")


class DocumentKind(str, Enum):
    """Kind of kit document."""

    COMMAND = "command"
    MODE = "mode"
    SKILL = "skill"

    @property
    def directory(self) -> str:
        """Directory name holding documents of this kind in a kit root."""
        return f"{self.value}s"


@dataclass
class Flag:
    """Option a document accepts as --name or --name=value."""

    name: str
    description: str = ""
    default: str | None = None


@dataclass
class KitDocument:
    """A command, mode or skill loaded from a markdown file."""

    name: str
    kind: DocumentKind
    description: str
    body: str
    usage: str = ""
    flags: list[Flag] = field(default_factory=list)
    category: str | None = None
    related: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    needs_args: bool = False
    source: str = "personal"
    path: Path | None = None
    has_description: bool = True  # False when description was derived from the body
    title: str | None = None  # display label, from frontmatter or the first heading
    order: int | None = None

    @property
    def slash(self) -> str:
        """Name as typed in chat."""
        return f"/{self.name}"

    @property
    def menu_name(self) -> str:
        """Name usable in a Telegram command menu, or "" if none fits."""
        candidate = self.name.lower().replace("-", "_").replace(":", "_")
        if MENU_NAME_PATTERN.match(candidate):
            return candidate
        return ""

    @property
    def flag_names(self) -> set[str]:
        """Names of the declared flags."""
        return {flag.name for flag in self.flags}


@dataclass
class Invocation:
    """A parsed `/name args` line."""

    name: str
    args: str = ""
    flags: dict[str, str] = field(default_factory=dict)


@dataclass
class RenderedPrompt:
    """Final prompt text plus what went into it."""

    command: str
    text: str
    mode: str | None = None
    skills: list[str] = field(default_factory=list)
    args: str = ""
