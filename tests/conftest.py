"""Shared fixtures: isolated settings, a controllable clock and a manager."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fadeboard.config import Settings
from fadeboard.database import SnapshotStore
from fadeboard.lifecycle import LifecycleManager
from fadeboard.media_store import MediaStore
from fadeboard.models import MediaUpload

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeClock:
    """Clock that only moves when told to. Starts at the real current time."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        media_dir=tmp_path / "uploads",
        max_media_bytes=1024,
        room_grace_seconds=600,
        orphan_age_seconds=3600,
        trusted_hosts=["*"],
        cors_origins=["http://localhost:8000"],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def snapshot_store(settings) -> SnapshotStore:
    return SnapshotStore(settings.snapshot_path)


@pytest.fixture
def media_store(settings) -> MediaStore:
    return MediaStore(settings.media_dir, settings.media_public_prefix, settings.max_media_bytes)


@pytest.fixture
def manager(snapshot_store, media_store, settings, clock) -> LifecycleManager:
    return LifecycleManager(snapshot_store, media_store, settings, clock=clock)


@pytest.fixture
def png_upload() -> MediaUpload:
    return MediaUpload(data=PNG_BYTES, content_type="image/png", filename="cat.png")


def media_files(settings: Settings) -> list[str]:
    return sorted(p.name for p in settings.media_dir.iterdir())
