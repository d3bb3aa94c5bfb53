"""File-based legacy pomodoro history adapter."""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FileLegacySessionLog:
    """
    Flat JSON array of session records from before the ledger existed.

    Implements LegacySessionSource protocol.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> list[dict]:
        """Read the raw records. A malformed file raises ValueError."""
        data = json.loads(self.path.read_text())
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of sessions in {self.path}")
        return [item for item in data if isinstance(item, dict)]

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.info(f"Removed legacy session history {self.path}")
