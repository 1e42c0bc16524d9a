"""HTML formatting utilities for Telegram messages.

Provides safe HTML formatting with automatic tag balancing.
All messages should use HTML parse_mode for consistency.
"""
import html as html_lib
import re


# Supported HTML tags for Telegram
SUPPORTED_TAGS = {"b", "strong", "i", "em", "u", "ins", "s", "strike", "del",
                  "code", "pre", "a", "tg-spoiler", "blockquote"}

# Regex for finding tags
TAG_PATTERN = re.compile(r"<(/?)([\w-]+)(?:\s[^>]*)?>")


def escape(text: str) -> str:
    """Escape HTML special characters for Telegram.

    Args:
        text: Raw text that may contain <, >, &

    Returns:
        Text safe for HTML rendering
    """
    return html_lib.escape(str(text))


def find_open_tags(text: str) -> list[str]:
    """Find all unclosed HTML tags in text.

    Returns list of tag names that are opened but not closed,
    in the order they were opened (for proper nesting).
    """
    tag_stack = []

    for match in TAG_PATTERN.finditer(text):
        is_closing = match.group(1) == "/"
        tag_name = match.group(2).lower()

        if tag_name not in SUPPORTED_TAGS:
            continue

        if is_closing:
            if tag_stack and tag_stack[-1] == tag_name:
                tag_stack.pop()
            elif tag_name in tag_stack:
                tag_stack.remove(tag_name)
        else:
            tag_stack.append(tag_name)

    return tag_stack


def balance_tags(text: str) -> str:
    """Balance HTML tags by closing any unclosed tags at the end."""
    open_tags = find_open_tags(text)

    if not open_tags:
        return text

    # Close in reverse order for proper nesting
    closing_tags = "".join(f"</{tag}>" for tag in reversed(open_tags))
    return text + closing_tags


def bold(text: str) -> str:
    """Wrap text in bold tags (text is escaped)."""
    return f"<b>{escape(text)}</b>"


def code(text: str) -> str:
    """Wrap text in inline code tags (text is escaped)."""
    return f"<code>{escape(text)}</code>"


def pre(text: str) -> str:
    """Wrap text in a preformatted block (text is escaped)."""
    return f"<pre>{escape(text)}</pre>"


def truncate(text: str, max_len: int = 4096, suffix: str = "...") -> str:
    """Truncate text with suffix if too long.

    Args:
        text: Text to truncate
        max_len: Maximum length including suffix
        suffix: String to append when truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_len:
        return text
    return text[:max_len - len(suffix)] + suffix


def chunk_lines(text: str, max_size: int = 3800) -> list[str]:
    """Split text into chunks of whole lines, each at most max_size.

    Single lines longer than max_size are hard-split.
    """
    chunks: list[str] = []
    current = ""

    for line in text.splitlines(keepends=True):
        while len(line) > max_size:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:max_size])
            line = line[max_size:]
        if len(current) + len(line) > max_size:
            chunks.append(current)
            current = ""
        current += line

    if current:
        chunks.append(current)

    return chunks or [""]
