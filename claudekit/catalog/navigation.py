"""Build documentation site navigation and overview pages from the catalog."""
from typing import Any

from .models import DocumentKind, KitDocument
from .registry import DEFAULT_MODE, CatalogRegistry

COMMAND_CATEGORIES = [
    "Development",
    "Planning",
    "Git & Deployment",
    "Documentation",
    "Utilities",
]
SKILL_CATEGORIES = ["methodology", "languages", "frameworks"]
OTHER = "Other"

# Slugs that differ from commands/<name>
SLUG_OVERRIDES = {"index": "commands/index-cmd"}


def slug_for(doc: KitDocument) -> str:
    """Site slug of a document page."""
    if doc.kind is DocumentKind.COMMAND:
        return SLUG_OVERRIDES.get(doc.name, f"commands/{doc.name}")
    if doc.kind is DocumentKind.MODE:
        return f"modes/{doc.name}"
    if doc.category:
        return f"skills/{doc.category}/{doc.name}"
    return f"skills/{doc.name}"


def _label(doc: KitDocument) -> str:
    if doc.kind is DocumentKind.COMMAND:
        return doc.slash
    return doc.title or doc.name.replace("-", " ").title()


def site_order(doc: KitDocument) -> tuple:
    """Sort key: explicit order first, then name."""
    return (doc.order is None, doc.order or 0, doc.name)


def ordered_groups(
    documents: list[KitDocument], order: list[str]
) -> list[tuple[str, list[KitDocument]]]:
    """Group documents by category, known categories first and Other last.

    Category names match case-insensitively and keep their spelling.
    Documents within a group are sorted by site order.
    """
    groups: dict[str, list[KitDocument]] = {}
    for doc in documents:
        groups.setdefault(doc.category or OTHER, []).append(doc)
    for docs in groups.values():
        docs.sort(key=site_order)

    known = {name.lower(): name for name in groups}
    ordered = [known[name.lower()] for name in order if name.lower() in known]
    rest = sorted(name for name in groups if name not in ordered and name != OTHER)
    if OTHER in groups:
        rest.append(OTHER)
    return [(name, groups[name]) for name in ordered + rest]


def group_label(name: str) -> str:
    return name if name != name.lower() else name.title()


def _items(documents: list[KitDocument]) -> list[dict[str, Any]]:
    return [{"label": _label(doc), "slug": slug_for(doc)} for doc in documents]


def build_sidebar(registry: CatalogRegistry) -> list[dict[str, Any]]:
    """Starlight-shaped sidebar for commands, modes and skills."""
    commands = {
        "label": "Commands",
        "collapsed": False,
        "items": [{"label": "Overview", "slug": "commands/overview"}],
    }
    for category, docs in ordered_groups(registry.commands, COMMAND_CATEGORIES):
        commands["items"].append(
            {"label": group_label(category), "collapsed": True, "items": _items(docs)}
        )

    modes = sorted(registry.modes, key=lambda d: (d.name != DEFAULT_MODE, site_order(d)))
    modes_section = {
        "label": "Modes",
        "collapsed": False,
        "items": [{"label": "Overview", "slug": "modes/overview"}] + _items(modes),
    }

    skills = {
        "label": "Skills",
        "collapsed": True,
        "items": [{"label": "Overview", "slug": "skills/overview"}],
    }
    for category, docs in ordered_groups(registry.skills, SKILL_CATEGORIES):
        skills["items"].append(
            {"label": group_label(category), "collapsed": True, "items": _items(docs)}
        )

    return [commands, modes_section, skills]


def render_overview(registry: CatalogRegistry, kind: DocumentKind) -> str:
    """Markdown overview page listing every document of a kind by category."""
    documents = registry.documents(kind)
    order = COMMAND_CATEGORIES if kind is DocumentKind.COMMAND else SKILL_CATEGORIES
    lines = [f"# {kind.directory.title()}", ""]

    for category, docs in ordered_groups(documents, order):
        if kind is not DocumentKind.MODE:
            lines.extend([f"## {group_label(category)}", ""])
        lines.extend(["| Name | Description |", "| --- | --- |"])
        for doc in docs:
            name = doc.usage if kind is DocumentKind.COMMAND else doc.name
            description = doc.description.replace("|", "\\|")
            lines.append(f"| `{name}` | {description} |")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
