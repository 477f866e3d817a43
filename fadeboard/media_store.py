"""
Media store: owns the uploads directory.
"""
import logging
import os
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from fadeboard.errors import StorageIOError, ValidationError
from fadeboard.models import MediaRef
from fadeboard.security import (
    is_allowed_image_type,
    log_security_event,
    normalize_content_type,
    pick_extension,
    validate_path_traversal,
)

logger = logging.getLogger(__name__)

PART_SUFFIX = ".part"


@dataclass
class MediaFile:
    filename: str
    modified_at: datetime


class MediaStore:
    """Writes, deletes and lists image files under a single directory."""

    def __init__(self, root: Path, public_prefix: str = "/uploads", max_bytes: int = 5 * 1024 * 1024):
        self.root = Path(root)
        self.public_prefix = public_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def _new_filename(self, original_filename: Optional[str]) -> str:
        stamp = int(time.time() * 1000)
        return f"{stamp}-{secrets.token_hex(6)}{pick_extension(original_filename)}"

    def url_for(self, filename: str) -> str:
        return f"{self.public_prefix}/{filename}"

    def store(self, data: bytes, content_type: str, filename: Optional[str] = None) -> MediaRef:
        """
        Validate and write an image upload.

        Raises:
            ValidationError: disallowed type, empty or oversized payload.
                Nothing is written in that case.
            StorageIOError: the file could not be written.
        """
        if not is_allowed_image_type(content_type):
            log_security_event("blocked_media_type", {"content_type": content_type, "filename": filename})
            raise ValidationError(f"Unsupported media type: {normalize_content_type(content_type) or 'unknown'}")
        if not data:
            raise ValidationError("Empty file")
        if len(data) > self.max_bytes:
            raise ValidationError(f"File too large (max {self.max_bytes // (1024 * 1024)}MB)")

        name = self._new_filename(filename)
        path = self.root / name
        # Written under a hidden name so listings never see a partial file
        part_path = self.root / f".{name}{PART_SUFFIX}"
        try:
            with open(part_path, "wb") as f:
                f.write(data)
            os.replace(part_path, path)
        except OSError as e:
            part_path.unlink(missing_ok=True)
            raise StorageIOError(f"Failed to store media: {e}") from e

        logger.info(f"Media stored: {name} ({len(data)} bytes)")
        return MediaRef(filename=name, url=self.url_for(name))

    def delete(self, filename: str) -> None:
        """Remove a media file. Missing files are not an error."""
        try:
            path = validate_path_traversal(self.root, filename)
        except ValueError:
            log_security_event("media_path_traversal", {"filename": filename})
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to delete media {filename}: {e}") from e

    def list_all(self) -> List[MediaFile]:
        """
        List stored files with their modification times.

        Hidden files are skipped, except partial writes left behind by an
        interrupted store(); those are never referenced, so the orphan sweep
        removes them once they are older than the grace window.
        """
        files = []
        with os.scandir(self.root) as entries:
            for entry in entries:
                hidden = entry.name.startswith(".") and not entry.name.endswith(PART_SUFFIX)
                if hidden or not entry.is_file():
                    continue
                try:
                    mtime = entry.stat().st_mtime
                except FileNotFoundError:
                    continue  # Removed between scandir and stat
                files.append(MediaFile(entry.name, datetime.fromtimestamp(mtime, tz=timezone.utc)))
        return files

    def age_of(self, filename: str, now: Optional[datetime] = None) -> timedelta:
        path = validate_path_traversal(self.root, filename)
        modified_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return (now or datetime.now(timezone.utc)) - modified_at
