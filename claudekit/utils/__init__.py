"""Utilities module."""
from .html import (
    escape,
    balance_tags,
    find_open_tags,
    bold,
    code,
    pre,
    truncate,
    chunk_lines,
)

__all__ = [
    "escape",
    "balance_tags",
    "find_open_tags",
    "bold",
    "code",
    "pre",
    "truncate",
    "chunk_lines",
]
