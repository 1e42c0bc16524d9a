"""Kit document catalog: discovery, rendering and linting."""
from .models import DocumentKind, Flag, Invocation, KitDocument, RenderedPrompt
from .discovery import parse_document, scan_catalog
from .invocation import parse_invocation
from .registry import CatalogRegistry
from .lint import LintIssue, lint_catalog, lint_document, lint_paths

__all__ = [
    "DocumentKind",
    "Flag",
    "Invocation",
    "KitDocument",
    "RenderedPrompt",
    "parse_document",
    "scan_catalog",
    "parse_invocation",
    "CatalogRegistry",
    "LintIssue",
    "lint_catalog",
    "lint_document",
    "lint_paths",
]
