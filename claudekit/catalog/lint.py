"""Lint kit documents: frontmatter, code fences and internal links."""
import ast
import json
import logging
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import yaml

from .discovery import (
    FENCE_PATTERN,
    PLACEHOLDER_PATTERN,
    frontmatter_problems,
    load_frontmatter,
    parse_document,
    split_frontmatter,
)
from .models import DocumentKind, KitDocument

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

LINK_PATTERN = re.compile(r"(?<!!)\[[^\]]*\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
USAGE_ARGS_PATTERN = re.compile(r"\[[^\]-][^\]]*\]|<[^>]+>")


@dataclass
class LintIssue:
    """A single problem found in a document."""

    path: Path | None
    line: int
    code: str
    severity: str
    message: str

    def format(self) -> str:
        """Render as `path:line: severity CODE message`."""
        location = f"{self.path}:{self.line}" if self.path else f"<memory>:{self.line}"
        return f"{location}: {self.severity} {self.code} {self.message}"


def _check_python(source: str) -> str | None:
    try:
        ast.parse(source)
    except SyntaxError as e:
        return f"line {e.lineno}: {e.msg}"
    return None


def _check_json(source: str) -> str | None:
    try:
        json.loads(source)
    except json.JSONDecodeError as e:
        return e.msg
    return None


def _check_yaml(source: str) -> str | None:
    try:
        list(yaml.safe_load_all(source))
    except yaml.YAMLError as e:
        return str(e).splitlines()[0]
    return None


def _check_toml(source: str) -> str | None:
    try:
        tomllib.loads(source)
    except tomllib.TOMLDecodeError as e:
        return str(e)
    return None


FENCE_CHECKERS = {
    "python": _check_python,
    "py": _check_python,
    "json": _check_json,
    "yaml": _check_yaml,
    "yml": _check_yaml,
    "toml": _check_toml,
}


def _closes_fence(line: str, marker: str) -> bool:
    """Closing fence uses the same character and at least as many of them."""
    stripped = line.strip()
    return stripped.startswith(marker[0] * len(marker)) and not stripped.strip(marker[0])


def check_fences(text: str, path: Path | None, first_line: int = 1) -> list[LintIssue]:
    """Check fenced code blocks are closed and parse in their labelled language."""
    issues: list[LintIssue] = []
    opened_at = 0
    marker = ""
    language = ""
    block: list[str] = []

    for offset, line in enumerate(text.splitlines()):
        lineno = first_line + offset
        match = FENCE_PATTERN.match(line)
        if not marker:
            if match:
                marker = match.group(1)
                language = match.group(2).lower()
                opened_at = lineno
                block = []
            continue

        if _closes_fence(line, marker):
            checker = FENCE_CHECKERS.get(language)
            if checker is not None:
                error = checker("\n".join(block))
                if error:
                    issues.append(
                        LintIssue(path, opened_at, "KL003", ERROR,
                                  f"invalid {language} in code block: {error}")
                    )
            marker = ""
            continue
        block.append(line)

    if marker:
        issues.append(LintIssue(path, opened_at, "KL002", ERROR, "code fence is never closed"))
    return issues


def _strip_fenced(text: str) -> list[tuple[int, str]]:
    """Lines outside fenced blocks, with 0-based offsets."""
    lines = []
    marker = ""
    for offset, line in enumerate(text.splitlines()):
        match = FENCE_PATTERN.match(line)
        if match and not marker:
            marker = match.group(1)
            continue
        if marker:
            if _closes_fence(line, marker):
                marker = ""
            continue
        lines.append((offset, line))
    return lines


def check_links(text: str, path: Path | None, first_line: int = 1) -> list[LintIssue]:
    """Check relative markdown links point at existing files."""
    issues: list[LintIssue] = []
    if path is None:
        return issues

    for offset, line in _strip_fenced(text):
        for target in LINK_PATTERN.findall(line):
            if re.match(r"^[a-z][a-z0-9+.-]*:", target) or target.startswith(("#", "/")):
                continue
            file_part = target.split("#", 1)[0]
            if not file_part:
                continue
            if not (path.parent / file_part).exists():
                issues.append(
                    LintIssue(path, first_line + offset, "KL005", ERROR,
                              f"broken link to {file_part}")
                )
    return issues


def lint_text(content: str, path: Path | None = None) -> list[LintIssue]:
    """Lint raw markdown content without catalog context."""
    issues: list[LintIssue] = []
    raw, body, body_start = split_frontmatter(content)
    try:
        frontmatter = load_frontmatter(raw)
    except yaml.YAMLError as e:
        message = str(e).splitlines()[0] if str(e) else "invalid YAML"
        issues.append(LintIssue(path, 1, "KL001", ERROR, f"invalid frontmatter: {message}"))
    else:
        for key, problem in frontmatter_problems(frontmatter).items():
            issues.append(
                LintIssue(path, 1, "KL001", ERROR, f"invalid frontmatter: '{key}' {problem}")
            )

    issues.extend(check_fences(body, path, body_start))
    issues.extend(check_links(body, path, body_start))
    return issues


def lint_document(
    doc: KitDocument,
    known: dict[DocumentKind, set[str]] | None = None,
) -> list[LintIssue]:
    """Lint one document.

    Args:
        doc: Parsed document.
        known: Names per kind that cross references may point at. When
            omitted, references are not checked.
    """
    if doc.path is not None and doc.path.exists():
        issues = lint_text(doc.path.read_text(encoding="utf-8"), doc.path)
    else:
        issues = lint_text(doc.body, doc.path)

    if not doc.has_description:
        issues.append(LintIssue(doc.path, 1, "KL006", WARNING, "no description in frontmatter"))

    if known is not None:
        commands = known.get(DocumentKind.COMMAND, set())
        for name in doc.related:
            if name not in commands:
                issues.append(
                    LintIssue(doc.path, 1, "KL004", WARNING, f"related command /{name} not found")
                )
        for name in doc.skills:
            if name not in known.get(DocumentKind.SKILL, set()):
                issues.append(
                    LintIssue(doc.path, 1, "KL004", WARNING, f"skill {name} not found")
                )

    if (
        doc.kind is DocumentKind.COMMAND
        and USAGE_ARGS_PATTERN.search(doc.usage)
        and not PLACEHOLDER_PATTERN.search(doc.body)
    ):
        issues.append(
            LintIssue(doc.path, 1, "KL007", WARNING,
                      "usage takes arguments but template has no $ARGUMENTS placeholder")
        )

    return issues


def lint_catalog(documents: Iterable[KitDocument]) -> list[LintIssue]:
    """Lint a set of documents, resolving cross references among them."""
    documents = list(documents)
    known: dict[DocumentKind, set[str]] = {kind: set() for kind in DocumentKind}
    for doc in documents:
        known[doc.kind].add(doc.name)

    issues: list[LintIssue] = []
    for doc in documents:
        issues.extend(lint_document(doc, known))
    logger.info(f"Linted {len(documents)} documents: {len(issues)} issue(s)")
    return issues


def _kind_for(path: Path) -> DocumentKind:
    for parent in path.parents:
        for kind in DocumentKind:
            if parent.name == kind.directory:
                return kind
    return DocumentKind.COMMAND


def lint_paths(paths: Iterable[Path]) -> list[LintIssue]:
    """Lint loose files and directories of markdown.

    The kind of each file is inferred from the nearest commands/, modes/ or
    skills/ directory above it. Missing or unreadable files are reported as
    KL008 errors.
    """
    issues: list[LintIssue] = []
    documents: list[KitDocument] = []
    for path in paths:
        path = Path(path)
        if not path.exists():
            issues.append(LintIssue(path, 1, "KL008", ERROR, "no such file or directory"))
            continue
        files = sorted(path.rglob("*.md")) if path.is_dir() else [path]
        for md_file in files:
            try:
                documents.append(parse_document(md_file, _kind_for(md_file), source="lint"))
            except (OSError, UnicodeDecodeError) as e:
                issues.append(LintIssue(md_file, 1, "KL008", ERROR, f"cannot read file: {e}"))
    return issues + lint_catalog(documents)


def has_errors(issues: Iterable[LintIssue]) -> bool:
    """True when any issue is an error."""
    return any(issue.severity == ERROR for issue in issues)
