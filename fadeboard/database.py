"""
JSON snapshot persistence: the whole board state lives in one file.
"""
import logging
import os
from pathlib import Path

from fadeboard.errors import StorageIOError
from fadeboard.models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Loads and saves the board snapshot at a fixed path."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> Snapshot:
        """
        Read the snapshot from disk.

        A missing, unreadable or malformed file yields an empty snapshot;
        losing the read is preferable to refusing all traffic.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Snapshot()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Snapshot unreadable, starting fresh: {e}")
            return Snapshot()

        try:
            return Snapshot.model_validate_json(raw)
        except ValueError as e:
            logger.warning(f"Snapshot corrupt, starting fresh: {e}")
            return Snapshot()

    def save(self, snapshot: Snapshot) -> None:
        """Write the snapshot atomically (temp file + rename)."""
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            tmp_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageIOError(f"Failed to write snapshot: {e}") from e
