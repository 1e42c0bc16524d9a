"""Discover and parse kit documents."""
import logging
import re
from pathlib import Path
from typing import Any, Iterable

import yaml

from .models import DocumentKind, Flag, KitDocument

logger = logging.getLogger(__name__)

BUILTIN_ROOT = Path(__file__).parent / "builtin"

PLACEHOLDER_PATTERN = re.compile(r"\$ARGUMENTS|\$[1-9]")
SLASH_REF_PATTERN = re.compile(r"(?<![\w/])/([a-z0-9][a-z0-9:_-]*)")
FENCE_PATTERN = re.compile(r"^\s*(```+|~~~+)\s*([\w+-]*)")

MAX_DESCRIPTION = 256

LIST_FIELDS = ("related", "skills")
TEXT_FIELDS = ("description", "usage", "category", "title")


def split_frontmatter(content: str) -> tuple[str | None, str, int]:
    """Split raw YAML frontmatter from the markdown body.

    Returns:
        (frontmatter text or None, body, 1-based line number where body starts).
    """
    lines = content.splitlines()
    if not lines or lines[0].strip() != "---":
        return None, content, 1

    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            raw = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1:])
            return raw, body, index + 2

    # Unterminated frontmatter is treated as plain body
    return None, content, 1


def load_frontmatter(raw: str | None) -> dict[str, Any]:
    """Parse frontmatter YAML into a mapping.

    Raises:
        yaml.YAMLError: If the YAML is invalid or not a mapping.
    """
    if raw is None:
        return {}
    data = yaml.safe_load(raw)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise yaml.YAMLError("frontmatter must be a mapping")
    return data


def iter_sections(body: str, heading: str) -> Iterable[str]:
    """Yield lines under a `## heading` until the next heading of same or higher level."""
    inside = False
    level = 0
    for line in body.splitlines():
        match = re.match(r"^(#{1,6})\s+(.*?)\s*$", line)
        if match:
            if inside and len(match.group(1)) <= level:
                return
            if match.group(2).lower() == heading.lower():
                inside = True
                level = len(match.group(1))
                continue
        if inside:
            yield line


def _usage_from_body(body: str) -> str:
    in_fence = False
    for line in iter_sections(body, "Usage"):
        if FENCE_PATTERN.match(line):
            if in_fence:
                return ""
            in_fence = True
            continue
        if in_fence and line.strip():
            return line.strip()
    return ""


def _related_from_body(body: str) -> list[str]:
    related: list[str] = []
    for line in iter_sections(body, "Related Commands"):
        for name in SLASH_REF_PATTERN.findall(line):
            if name not in related:
                related.append(name)
    return related


def frontmatter_problems(frontmatter: dict[str, Any]) -> dict[str, str]:
    """Find frontmatter fields whose values have the wrong type.

    Returns:
        Mapping of field name to problem, empty when every field is usable.
    """
    problems: dict[str, str] = {}
    for key in LIST_FIELDS:
        value = frontmatter.get(key)
        if value is not None and not isinstance(value, (str, list)):
            problems[key] = "must be a list or comma-separated string"

    flags = frontmatter.get("flags")
    if flags is not None:
        if not isinstance(flags, list):
            problems["flags"] = "must be a list"
        elif any(
            item is None
            or isinstance(item, list)
            or (isinstance(item, dict) and not item.get("name"))
            for item in flags
        ):
            problems["flags"] = "entries must be names or mappings with a name"

    for key in TEXT_FIELDS:
        if isinstance(frontmatter.get(key), (list, dict)):
            problems[key] = "must be text"

    order = frontmatter.get("order")
    if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
        problems["order"] = "must be an integer"

    return problems


def _usable_frontmatter(frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
    """Drop fields with the wrong type, logging each one."""
    problems = frontmatter_problems(frontmatter)
    if not problems:
        return frontmatter
    for key, problem in problems.items():
        logger.warning(f"Ignoring '{key}' in {path}: {problem}")
    return {key: value for key, value in frontmatter.items() if key not in problems}


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip().lstrip("/") for item in value.split(",") if item.strip()]
    return [str(item).lstrip("/") for item in value]


def _parse_flags(value: Any) -> list[Flag]:
    flags = []
    for item in value or []:
        if isinstance(item, dict):
            default = item.get("default")
            flags.append(
                Flag(
                    name=str(item["name"]).lstrip("-"),
                    description=str(item.get("description", "")),
                    default=None if default is None else str(default),
                )
            )
        else:
            flags.append(Flag(name=str(item).lstrip("-")))
    return flags


def _first_heading(body: str) -> str | None:
    for line in body.splitlines():
        match = re.match(r"^#\s+(.+?)\s*$", line)
        if match:
            return match.group(1)
    return None


def document_name(path: Path) -> str:
    """Name a document by its file; SKILL.md files take their directory name."""
    if path.name == "SKILL.md":
        return path.parent.name
    return path.stem


def parse_document(
    path: Path,
    kind: DocumentKind = DocumentKind.COMMAND,
    source: str = "personal",
    category: str | None = None,
) -> KitDocument:
    """Parse a .md file into a KitDocument.

    Args:
        path: Path to the .md file.
        kind: Command, mode or skill.
        source: Layer the document came from.
        category: Category implied by the directory layout, if any.

    Returns:
        Parsed KitDocument.
    """
    content = path.read_text(encoding="utf-8")
    name = document_name(path)

    raw, body, _ = split_frontmatter(content)
    try:
        frontmatter = load_frontmatter(raw)
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring invalid frontmatter in {path}: {e}")
        frontmatter = {}
    frontmatter = _usable_frontmatter(frontmatter, path)
    body = body.strip()

    # Description from frontmatter or first line of body
    description = str(frontmatter.get("description") or "").strip()
    has_description = bool(description)
    if not description:
        first_line = next((line for line in body.splitlines() if line.strip()), "")
        description = first_line.lstrip("#").strip() or name

    if len(description) > MAX_DESCRIPTION:
        description = description[:MAX_DESCRIPTION - 3] + "..."

    needs_args = bool(PLACEHOLDER_PATTERN.search(body))

    usage = str(frontmatter.get("usage") or "").strip() or _usage_from_body(body)
    if not usage and kind is DocumentKind.COMMAND:
        usage = f"/{name} [args]" if needs_args else f"/{name}"

    related = _as_list(frontmatter.get("related")) or _related_from_body(body)
    category = frontmatter.get("category") or category
    title = str(frontmatter.get("title") or "").strip() or _first_heading(body)

    return KitDocument(
        name=name,
        kind=kind,
        description=description,
        body=body,
        usage=usage,
        flags=_parse_flags(frontmatter.get("flags")),
        category=None if category is None else str(category),
        related=related,
        skills=_as_list(frontmatter.get("skills")),
        needs_args=needs_args,
        source=source,
        path=path,
        has_description=has_description,
        title=title,
        order=frontmatter.get("order"),
    )


def _skill_files(skills_dir: Path) -> Iterable[tuple[Path, str | None]]:
    """Yield (file, category) for skills stored as <cat>/<name>.md or [<cat>/]<name>/SKILL.md."""
    for md_file in sorted(skills_dir.rglob("*.md")):
        relative = md_file.relative_to(skills_dir).parts
        if md_file.name == "SKILL.md":
            category = relative[0] if len(relative) >= 3 else None
            yield md_file, category
        elif any(
            (parent / "SKILL.md").exists()
            for parent in md_file.parents
            if parent != skills_dir and skills_dir in parent.parents
        ):
            # Supporting file inside a SKILL.md directory
            continue
        else:
            category = relative[0] if len(relative) >= 2 else None
            yield md_file, category


def scan_root(root: Path, source: str) -> list[KitDocument]:
    """Parse every document in a kit root (commands/, modes/, skills/)."""
    documents: list[KitDocument] = []
    if not root.is_dir():
        return documents

    for kind in (DocumentKind.COMMAND, DocumentKind.MODE):
        kind_dir = root / kind.directory
        if not kind_dir.is_dir():
            continue
        for md_file in sorted(kind_dir.glob("*.md")):
            try:
                documents.append(parse_document(md_file, kind, source=source))
            except (OSError, UnicodeDecodeError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse {md_file}: {e}")

    skills_dir = root / DocumentKind.SKILL.directory
    if skills_dir.is_dir():
        for md_file, category in _skill_files(skills_dir):
            try:
                documents.append(
                    parse_document(md_file, DocumentKind.SKILL, source=source, category=category)
                )
            except (OSError, UnicodeDecodeError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse {md_file}: {e}")

    return documents


def _scan_plugins(plugins_dir: Path) -> list[KitDocument]:
    documents: list[KitDocument] = []
    for plugin_commands_dir in sorted(plugins_dir.glob("**/commands")):
        if not plugin_commands_dir.is_dir():
            continue
        for md_file in sorted(plugin_commands_dir.glob("*.md")):
            try:
                # e.g. cache/superpowers/commands/brainstorm.md -> superpowers:brainstorm
                parts = md_file.relative_to(plugins_dir).parts
                cmd_idx = parts.index("commands")
                doc = parse_document(md_file, DocumentKind.COMMAND, source="plugin")
                if cmd_idx > 0:
                    doc.name = f"{parts[cmd_idx - 1]}:{md_file.stem}"
                documents.append(doc)
            except (OSError, UnicodeDecodeError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse {md_file}: {e}")
    return documents


def scan_catalog(
    project_path: str | None = None,
    extra_paths: Iterable[str] = (),
    include_builtin: bool = True,
) -> list[KitDocument]:
    """Scan every layer for documents.

    Loading order (later overrides earlier for the same kind and name):
    1. Builtin catalog shipped with the package
    2. Extra kit roots from configuration
    3. Plugin commands from ~/.claude/plugins/*/commands/
    4. Personal documents from ~/.claude/
    5. Project documents from {project}/.claude/

    Returns:
        List of discovered documents.
    """
    documents: dict[tuple[DocumentKind, str], KitDocument] = {}

    def merge(found: list[KitDocument]) -> None:
        for doc in found:
            documents[(doc.kind, doc.name)] = doc

    if include_builtin:
        merge(scan_root(BUILTIN_ROOT, source="builtin"))

    for extra in extra_paths:
        merge(scan_root(Path(extra).expanduser(), source="extra"))

    plugins_dir = Path.home() / ".claude" / "plugins"
    if plugins_dir.is_dir():
        merge(_scan_plugins(plugins_dir))

    merge(scan_root(Path.home() / ".claude", source="personal"))

    if project_path:
        merge(scan_root(Path(project_path) / ".claude", source="project"))

    return list(documents.values())
