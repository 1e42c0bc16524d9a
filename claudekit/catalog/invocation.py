"""Parse slash invocations such as `/feature --mode=brainstorm add login`."""
import re
from typing import Iterable

from claudekit.exceptions import InvocationError

from .models import Invocation

GLOBAL_FLAGS = frozenset({"mode"})

FLAG_PATTERN = re.compile(r"^--([a-zA-Z][\w-]*)(?:=(.*))?$")


def parse_invocation(text: str, allowed_flags: Iterable[str] = ()) -> Invocation:
    """Split an invocation into command name, argument text and flags.

    Only flags the command declares (plus the global --mode) are pulled out
    of the argument text; anything else is passed through untouched.

    Args:
        text: Raw text, e.g. "/fix@kitbot --mode=review login fails".
        allowed_flags: Flag names the target command declares.

    Returns:
        Parsed Invocation.

    Raises:
        InvocationError: If no command name is present.
    """
    stripped = text.strip()
    if not stripped:
        raise InvocationError("Empty invocation")

    parts = stripped.split(maxsplit=1)
    name = parts[0].lstrip("/")
    name = name.split("@", 1)[0]  # /cmd@botname form
    if not name:
        raise InvocationError(f"Missing command name in {text!r}")

    rest = parts[1] if len(parts) > 1 else ""
    accepted = GLOBAL_FLAGS | set(allowed_flags)

    flags: dict[str, str] = {}
    kept: list[str] = []
    for token in rest.split():
        match = FLAG_PATTERN.match(token)
        if match and match.group(1) in accepted:
            value = match.group(2)
            flags[match.group(1)] = "true" if value is None else value
        else:
            kept.append(token)

    # Keep original spacing when no flags were removed
    args = rest.strip() if not flags else " ".join(kept)

    return Invocation(name=name, args=args, flags=flags)
