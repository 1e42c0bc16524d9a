"""Claude integration module."""
from .client import KitClient, create_claude_options
from .streaming import MessageStreamer

__all__ = [
    "KitClient",
    "create_claude_options",
    "MessageStreamer",
]
