"""Errors reported by persistence collaborators."""


class PersistenceError(Exception):
    """Raised when storage fails to save or delete a record."""

    pass


class CorruptStoreError(PersistenceError):
    """Raised when the backing storage cannot be opened or read at all."""

    pass
