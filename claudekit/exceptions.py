"""Custom exceptions for Claude Kit."""


class ClaudeKitError(Exception):
    """Base exception for Claude Kit."""

    pass


class CatalogError(ClaudeKitError):
    """Catalog document could not be loaded or used."""

    pass


class DocumentNotFoundError(CatalogError):
    """Requested command, mode or skill does not exist."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind}: {name}")


class InvocationError(ClaudeKitError):
    """Slash invocation text could not be parsed."""

    pass


class StorageError(ClaudeKitError):
    """Preference and history storage is unavailable."""

    pass
