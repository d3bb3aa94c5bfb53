"""Legacy session history interface."""

from typing import Protocol


class LegacySessionSource(Protocol):
    """Interface for a pre-ledger session history that is imported once."""

    def exists(self) -> bool:
        """Check whether there is anything left to import."""
        ...

    def read(self) -> list[dict]:
        """Read the raw session records."""
        ...

    def clear(self) -> None:
        """Remove the history after a successful import."""
        ...
