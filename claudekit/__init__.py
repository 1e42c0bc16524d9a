"""Claude Kit: slash commands, modes and skills for Claude."""

__version__ = "0.1.0"
