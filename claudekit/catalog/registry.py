"""Catalog registry for storing, looking up and rendering kit documents."""
import logging
import re
from typing import Iterable

from telegram import Bot, BotCommand

from claudekit.exceptions import DocumentNotFoundError

from .discovery import scan_catalog
from .invocation import parse_invocation
from .models import DocumentKind, Invocation, KitDocument, RenderedPrompt

logger = logging.getLogger(__name__)

DEFAULT_MODE = "default"
MENU_LIMIT = 100
SECTION_SEPARATOR = "\n\n---\n\n"

PLACEHOLDER_PATTERN = re.compile(r"\$(ARGUMENTS|FLAGS|[1-9])")


class CatalogRegistry:
    """Stores and manages commands, modes and skills."""

    # Host commands (catalog commands cannot override them)
    RESERVED_COMMANDS = [
        ("start", "Start the bot"),
        ("help", "Show help"),
        ("new", "Select a project"),
        ("mode", "Show or switch behavioural mode"),
        ("skills", "List skills or show one"),
        ("refresh", "Rescan kit documents"),
        ("history", "Show recent commands"),
        ("cancel", "Stop current operation"),
    ]

    def __init__(
        self,
        extra_paths: Iterable[str] = (),
        include_builtin: bool = True,
        reserved: bool = True,
    ):
        self.extra_paths = list(extra_paths)
        self.include_builtin = include_builtin
        self.reserved = reserved
        self._documents: dict[DocumentKind, dict[str, KitDocument]] = {
            kind: {} for kind in DocumentKind
        }
        self._menu_aliases: dict[str, str] = {}

    @property
    def reserved_names(self) -> set[str]:
        """Get set of reserved host command names."""
        if not self.reserved:
            return set()
        return {name for name, _ in self.RESERVED_COMMANDS}

    @property
    def commands(self) -> list[KitDocument]:
        """Get all registered commands."""
        return list(self._documents[DocumentKind.COMMAND].values())

    @property
    def modes(self) -> list[KitDocument]:
        """Get all registered modes."""
        return list(self._documents[DocumentKind.MODE].values())

    @property
    def skills(self) -> list[KitDocument]:
        """Get all registered skills."""
        return list(self._documents[DocumentKind.SKILL].values())

    def documents(self, kind: DocumentKind | None = None) -> list[KitDocument]:
        """Get documents of one kind, or all of them."""
        if kind is not None:
            return list(self._documents[kind].values())
        return [doc for docs in self._documents.values() for doc in docs.values()]

    def add(self, doc: KitDocument) -> None:
        """Register a document, replacing any with the same kind and name."""
        self._documents[doc.kind][doc.name] = doc
        if doc.kind is DocumentKind.COMMAND and doc.menu_name and doc.menu_name != doc.name:
            self._menu_aliases[doc.menu_name] = doc.name

    def get(
        self, name: str, kind: DocumentKind = DocumentKind.COMMAND
    ) -> KitDocument | None:
        """Get document by name (menu names resolve for commands)."""
        name = name.lstrip("/")
        docs = self._documents[kind]
        if name in docs:
            return docs[name]
        if kind is DocumentKind.COMMAND and name in self._menu_aliases:
            return docs.get(self._menu_aliases[name])
        return None

    def require(
        self, name: str, kind: DocumentKind = DocumentKind.COMMAND
    ) -> KitDocument:
        """Get document by name or raise DocumentNotFoundError."""
        doc = self.get(name, kind)
        if doc is None:
            raise DocumentNotFoundError(kind.value, name)
        return doc

    def refresh(self, project_path: str | None = None) -> int:
        """Rescan all layers.

        Args:
            project_path: Optional project directory.

        Returns:
            Number of commands loaded.
        """
        discovered = scan_catalog(
            project_path,
            extra_paths=self.extra_paths,
            include_builtin=self.include_builtin,
        )

        for docs in self._documents.values():
            docs.clear()
        self._menu_aliases.clear()

        for doc in discovered:
            if doc.kind is DocumentKind.COMMAND and doc.name in self.reserved_names:
                logger.warning(f"Skipping command '{doc.name}' - conflicts with built-in")
                continue
            self.add(doc)

        logger.info(
            f"Catalog loaded: {len(self.commands)} commands, "
            f"{len(self.modes)} modes, {len(self.skills)} skills"
        )
        return len(self.commands)

    def substitute_args(
        self, doc: KitDocument, args: str, flags_text: str | None = None
    ) -> str:
        """Substitute arguments into a document template.

        Handles both $ARGUMENTS (all args) and $1..$9 (positional). Missing
        positionals become empty. If no placeholders exist and args are
        provided, appends them to the prompt. Placeholders are replaced in a
        single pass, so text coming from args is never substituted again.

        Args:
            doc: The document to substitute into.
            args: User-provided arguments string.
            flags_text: Replacement for $FLAGS; left in place when None.

        Returns:
            Prompt with arguments substituted.
        """
        parts = args.split()
        used_args = False

        def replace(match: re.Match) -> str:
            nonlocal used_args
            token = match.group(1)
            if token == "FLAGS":
                return match.group(0) if flags_text is None else flags_text
            used_args = True
            if token == "ARGUMENTS":
                return args
            index = int(token) - 1
            return parts[index] if index < len(parts) else ""

        prompt = PLACEHOLDER_PATTERN.sub(replace, doc.body)

        if args and not used_args:
            prompt = f"{prompt}\n\nARGUMENTS: {args}"

        return prompt

    def flag_values(self, doc: KitDocument, flags: dict[str, str]) -> dict[str, str]:
        """Declared defaults overlaid with the declared flags of an invocation."""
        values = {
            flag.name: flag.default
            for flag in doc.flags
            if flag.default is not None
        }
        values.update({k: v for k, v in flags.items() if k in doc.flag_names})
        return values

    def apply_mode(self, prompt: str, mode: str | None) -> str:
        """Prefix a prompt with the instructions of a non-default mode.

        Raises:
            DocumentNotFoundError: If the mode does not exist.
        """
        if not mode or mode == DEFAULT_MODE:
            return prompt
        mode_doc = self.require(mode, DocumentKind.MODE)
        return f"# Mode: {mode_doc.name}\n\n{mode_doc.body}{SECTION_SEPARATOR}{prompt}"

    def render(
        self,
        invocation: str | Invocation,
        args: str = "",
        mode: str | None = None,
    ) -> RenderedPrompt:
        """Build the full prompt for a command invocation.

        Args:
            invocation: "/name args" text, a bare name, or a parsed Invocation.
            args: Extra argument text, appended to any parsed from the invocation.
            mode: Active mode; a --mode flag on the invocation takes priority.

        Returns:
            RenderedPrompt with mode preamble, command body and skill sections.

        Raises:
            DocumentNotFoundError: For an unknown command, mode or skill.
        """
        if isinstance(invocation, str):
            name = invocation.strip().split(maxsplit=1)[0] if invocation.strip() else ""
            doc = self.require(name.lstrip("/").split("@", 1)[0])
            invocation = parse_invocation(invocation, allowed_flags=doc.flag_names)
        else:
            doc = self.require(invocation.name)

        full_args = " ".join(part for part in (invocation.args, args.strip()) if part)
        mode_name = invocation.flags.get("mode") or mode

        values = self.flag_values(doc, invocation.flags)
        flags_text = " ".join(f"--{k}={v}" for k, v in values.items())
        prompt = self.substitute_args(doc, full_args, flags_text)
        if values and "$FLAGS" not in doc.body:
            options = ", ".join(f"{k}={v}" for k, v in values.items())
            prompt = f"{prompt}\n\nOPTIONS: {options}"
        sections = [prompt]

        for skill_name in doc.skills:
            skill = self.require(skill_name, DocumentKind.SKILL)
            sections.append(f"# Skill: {skill.name}\n\n{skill.body}")

        return RenderedPrompt(
            command=doc.name,
            text=self.apply_mode(SECTION_SEPARATOR.join(sections), mode_name),
            mode=mode_name,
            skills=list(doc.skills),
            args=full_args,
        )

    def menu_entries(self, limit: int = MENU_LIMIT) -> list[tuple[str, str]]:
        """Reserved commands followed by catalog commands that fit a chat menu."""
        entries = list(self.RESERVED_COMMANDS) if self.reserved else []

        catalog_entries = []
        for doc in sorted(self.commands, key=lambda d: d.name):
            if not doc.menu_name:
                logger.warning(f"Command '{doc.name}' has no valid menu name, not listed")
                continue
            catalog_entries.append((doc.menu_name, doc.description))

        remaining_slots = limit - len(entries)
        if len(catalog_entries) > remaining_slots:
            logger.warning(
                f"Too many commands ({len(catalog_entries)}), "
                f"truncated to {remaining_slots}"
            )
        return entries + catalog_entries[:max(remaining_slots, 0)]

    async def publish(self, bot: Bot) -> int:
        """Update the Telegram command menu.

        Returns:
            Number of menu entries published.
        """
        entries = self.menu_entries()
        await bot.set_my_commands([BotCommand(name, desc) for name, desc in entries])
        return len(entries)
