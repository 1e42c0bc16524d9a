"""Bot module."""
from .middleware import auth_middleware
from .handlers import (
    start,
    help_cmd,
    new_project,
    mode_cmd,
    skills_cmd,
    refresh_commands,
    history_cmd,
    cancel,
    handle_message,
)
from .command_handler import handle_kit_command
from .callbacks import handle_callback, parse_callback_data
from .application import create_application

__all__ = [
    "auth_middleware",
    "start",
    "help_cmd",
    "new_project",
    "mode_cmd",
    "skills_cmd",
    "refresh_commands",
    "history_cmd",
    "cancel",
    "handle_message",
    "handle_kit_command",
    "handle_callback",
    "parse_callback_data",
    "create_application",
]
