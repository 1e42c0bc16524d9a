"""Storage module."""
from .models import InvocationLog, ModePreference
from .database import close_database, get_session, init_database
from .repository import InvocationRepository, PreferenceRepository

__all__ = [
    "InvocationLog",
    "ModePreference",
    "init_database",
    "close_database",
    "get_session",
    "InvocationRepository",
    "PreferenceRepository",
]
