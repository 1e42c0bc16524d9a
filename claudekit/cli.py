"""Command line interface for browsing, rendering and linting the kit."""
import argparse
import json
import logging
import sys
from pathlib import Path

from claudekit.catalog import CatalogRegistry, DocumentKind
from claudekit.catalog.lint import has_errors, lint_catalog, lint_paths
from claudekit.catalog.navigation import build_sidebar, render_overview
from claudekit.config.settings import Config, load_config
from claudekit.exceptions import ClaudeKitError
from claudekit.main import LOG_FORMAT

logger = logging.getLogger(__name__)

KINDS = [kind.value for kind in DocumentKind]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claudekit",
        description="Browse, render and lint Claude Kit commands, modes and skills.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--project", default=None, help="Project whose .claude/ layer to load")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_cmd = subparsers.add_parser("list", help="List documents")
    list_cmd.add_argument("--kind", choices=KINDS, default=None)

    show = subparsers.add_parser("show", help="Print a document's template")
    show.add_argument("name")
    show.add_argument("--kind", choices=KINDS, default=DocumentKind.COMMAND.value)

    render = subparsers.add_parser("render", help="Render a command invocation")
    render.add_argument("name", help="Command name, with or without leading /")
    render.add_argument("arguments", nargs=argparse.REMAINDER)
    render.add_argument("--mode", default=None)

    lint = subparsers.add_parser("lint", help="Lint the catalog or given paths")
    lint.add_argument("paths", nargs="*", type=Path)

    nav = subparsers.add_parser("nav", help="Print the site sidebar")
    nav.add_argument("--json", action="store_true", help="Emit JSON instead of an outline")

    overview = subparsers.add_parser("overview", help="Print a markdown overview page")
    overview.add_argument("kind", choices=KINDS)

    subparsers.add_parser("bot", help="Run the Telegram bot")

    return parser


def _load_registry(args: argparse.Namespace, config: Config | None = None) -> CatalogRegistry:
    config = config or load_config(args.config)
    registry = CatalogRegistry(
        extra_paths=config.catalog.paths,
        include_builtin=config.catalog.include_builtin,
        reserved=False,
    )
    registry.refresh(project_path=args.project)
    return registry


def _print_outline(items: list[dict], depth: int = 0) -> None:
    for item in items:
        slug = f"  ({item['slug']})" if "slug" in item else ""
        print(f"{'  ' * depth}- {item['label']}{slug}")
        _print_outline(item.get("items", []), depth + 1)


def _cmd_list(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    kind = DocumentKind(args.kind) if args.kind else None
    for doc in sorted(registry.documents(kind), key=lambda d: (d.kind.value, d.name)):
        label = doc.slash if doc.kind is DocumentKind.COMMAND else doc.name
        print(f"{doc.kind.value:8} {label:24} [{doc.source}] {doc.description}")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    doc = registry.require(args.name.lstrip("/"), DocumentKind(args.kind))
    print(doc.body)
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    registry = _load_registry(args, config)
    text = " ".join([args.name, *args.arguments])
    rendered = registry.render(text, mode=args.mode or config.catalog.default_mode)
    print(rendered.text)
    return 0


def _cmd_lint(args: argparse.Namespace) -> int:
    if args.paths:
        issues = lint_paths(args.paths)
    else:
        issues = lint_catalog(_load_registry(args).documents())
    for issue in issues:
        print(issue.format())
    return 1 if has_errors(issues) else 0


def _cmd_nav(args: argparse.Namespace) -> int:
    sidebar = build_sidebar(_load_registry(args))
    if args.json:
        print(json.dumps(sidebar, indent=2))
    else:
        _print_outline(sidebar)
    return 0


def _cmd_overview(args: argparse.Namespace) -> int:
    print(render_overview(_load_registry(args), DocumentKind(args.kind)), end="")
    return 0


def _cmd_bot(args: argparse.Namespace) -> int:
    from claudekit.main import main as run_bot

    run_bot(args.config)
    return 0


COMMANDS = {
    "list": _cmd_list,
    "show": _cmd_show,
    "render": _cmd_render,
    "lint": _cmd_lint,
    "nav": _cmd_nav,
    "overview": _cmd_overview,
    "bot": _cmd_bot,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command != "bot":
        logging.basicConfig(
            format=LOG_FORMAT,
            level=logging.DEBUG if args.verbose else logging.WARNING,
        )

    try:
        return COMMANDS[args.command](args)
    except ClaudeKitError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
