"""Tests for the uploads directory store."""
from __future__ import annotations

import os
import time
from datetime import timedelta

import pytest

from conftest import PNG_BYTES, media_files
from fadeboard.errors import ValidationError


def test_store_keeps_recognized_extension(media_store, settings):
    ref = media_store.store(PNG_BYTES, "image/png", "holiday.JPEG")

    assert ref.filename.endswith(".jpeg")
    assert ref.url == f"/uploads/{ref.filename}"
    assert (settings.media_dir / ref.filename).read_bytes() == PNG_BYTES


def test_store_uses_generic_extension_for_unknown_names(media_store):
    assert media_store.store(PNG_BYTES, "image/png", "photo.exe").filename.endswith(".bin")
    assert media_store.store(PNG_BYTES, "image/webp", None).filename.endswith(".bin")


def test_store_names_do_not_collide(media_store):
    names = {media_store.store(PNG_BYTES, "image/gif", "a.gif").filename for _ in range(20)}
    assert len(names) == 20


def test_store_accepts_mime_parameters(media_store):
    ref = media_store.store(PNG_BYTES, "IMAGE/JPEG; charset=binary", "a.jpg")
    assert ref.filename.endswith(".jpg")


@pytest.mark.parametrize("content_type", ["image/svg+xml", "text/html", "application/octet-stream", ""])
def test_store_rejects_disallowed_types_without_writing(media_store, settings, content_type):
    with pytest.raises(ValidationError):
        media_store.store(PNG_BYTES, content_type, "a.png")
    assert media_files(settings) == []


def test_store_rejects_oversized_and_empty_payloads(media_store, settings):
    with pytest.raises(ValidationError):
        media_store.store(b"x" * (settings.max_media_bytes + 1), "image/png", "a.png")
    with pytest.raises(ValidationError):
        media_store.store(b"", "image/png", "a.png")
    assert media_files(settings) == []


def test_delete_is_idempotent(media_store, settings):
    ref = media_store.store(PNG_BYTES, "image/png", "a.png")
    media_store.delete(ref.filename)
    media_store.delete(ref.filename)
    assert media_files(settings) == []


def test_delete_cannot_escape_media_dir(media_store, tmp_path):
    outside = tmp_path / "keep.txt"
    outside.write_text("x")
    media_store.delete("../keep.txt")
    assert outside.exists()


def test_list_all_skips_hidden_files_but_reports_partial_writes(media_store, settings):
    ref = media_store.store(PNG_BYTES, "image/png", "a.png")
    (settings.media_dir / ".upload.part").write_bytes(b"partial")
    (settings.media_dir / ".DS_Store").write_bytes(b"junk")
    (settings.media_dir / "nested").mkdir()

    assert sorted(f.filename for f in media_store.list_all()) == sorted([ref.filename, ".upload.part"])


def test_age_of_reports_time_since_modification(media_store, settings):
    ref = media_store.store(PNG_BYTES, "image/png", "a.png")
    two_hours_ago = time.time() - 7200
    os.utime(settings.media_dir / ref.filename, (two_hours_ago, two_hours_ago))

    age = media_store.age_of(ref.filename)

    assert timedelta(hours=2) <= age < timedelta(hours=2, minutes=1)
