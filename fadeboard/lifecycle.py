"""
Lifecycle manager: owns post and room state.

Every operation is one load -> mutate -> persist unit executed under a single
asyncio lock, so no two operations interleave their snapshot reads and writes.
Request-triggered operations run a maintenance pass before mutating.
"""
import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Set

from fadeboard import expiry
from fadeboard.config import Settings
from fadeboard.database import SnapshotStore
from fadeboard.errors import ForbiddenError, NotFoundError, StorageIOError, ValidationError
from fadeboard.media_store import MediaStore
from fadeboard.models import MediaRef, MediaUpload, Post, PostCreated, PublicPost, Snapshot
from fadeboard.room_models import Room, RoomCreated
from fadeboard.security import clean_text, log_security_event
from fadeboard.utils.code_generator import (
    ensure_unique,
    generate_delete_token,
    generate_post_id,
    generate_room_key,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_room_id(room_id: Optional[str]) -> Optional[str]:
    if room_id is None:
        return None
    room_id = room_id.strip().upper()
    return room_id or None


@dataclass
class MaintenanceReport:
    """What one maintenance pass removed."""
    expired_posts: int = 0
    cascaded_posts: int = 0
    dead_rooms: int = 0
    orphan_files: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.expired_posts or self.cascaded_posts or self.dead_rooms)


class LifecycleManager:
    """Serializes all board mutations and keeps snapshot and media consistent."""

    def __init__(
        self,
        store: SnapshotStore,
        media_store: MediaStore,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.media_store = media_store
        self.settings = settings
        self.clock = clock
        self._lock = asyncio.Lock()
        self._pending_uploads: Set[str] = set()

    @property
    def room_grace(self) -> timedelta:
        return timedelta(seconds=self.settings.room_grace_seconds)

    @property
    def orphan_age(self) -> timedelta:
        return timedelta(seconds=self.settings.orphan_age_seconds)

    # ============ INTERNAL HELPERS ============

    def _persist(self, snapshot: Snapshot) -> bool:
        """Save the snapshot; a write failure is logged, not raised."""
        try:
            self.store.save(snapshot)
            return True
        except StorageIOError as e:
            logger.error(f"Snapshot write failed, recent mutation may be lost: {e}")
            return False

    def _delete_media(self, filenames: Iterable[str]) -> int:
        """Delete media files; failures are left for a later orphan sweep."""
        deleted = 0
        for filename in filenames:
            try:
                self.media_store.delete(filename)
                deleted += 1
            except StorageIOError as e:
                logger.warning(f"Media deletion deferred to orphan sweep: {e}")
        return deleted

    def _sweep(self, snapshot: Snapshot, now: datetime) -> MaintenanceReport:
        """
        Apply expiry, room cascade and orphan sweep to the loaded snapshot.

        Uploads whose post is not persisted yet are never swept.
        """
        active, expired = expiry.partition_posts(snapshot, now)
        alive, dead = expiry.partition_rooms(snapshot, now, self.room_grace)
        kept, cascaded = expiry.cascade_posts(active, alive)

        removed = expired + cascaded
        self._delete_media(post.media.filename for post in removed if post.media)

        report = MaintenanceReport(
            expired_posts=len(expired),
            cascaded_posts=len(cascaded),
            dead_rooms=len(dead),
        )
        if report.changed:
            snapshot.posts = kept
            snapshot.rooms = alive
            snapshot.version += 1

        try:
            media_files = self.media_store.list_all()
        except OSError as e:
            logger.warning(f"Orphan sweep skipped, media listing failed: {e}")
            media_files = []
        orphans = expiry.find_orphan_media(kept, media_files, now, self.orphan_age, self._pending_uploads)
        report.orphan_files = self._delete_media(orphans)

        if report.changed or report.orphan_files:
            logger.info(
                f"Maintenance: {report.expired_posts} expired, {report.cascaded_posts} cascaded, "
                f"{report.dead_rooms} rooms closed, {report.orphan_files} orphan files removed"
            )
        return report

    def _find_room(self, snapshot: Snapshot, room_id: str, now: datetime) -> Optional[Room]:
        for room in snapshot.rooms:
            if room.id == room_id:
                return room if expiry.is_alive(room, now, self.room_grace) else None
        return None

    def _resolve_ttl(self, ttl_minutes: Optional[int]) -> timedelta:
        if ttl_minutes is None:
            ttl_minutes = self.settings.default_ttl_minutes
        low, high = self.settings.min_ttl_minutes, self.settings.max_ttl_minutes
        if not low <= ttl_minutes <= high:
            raise ValidationError(f"ttl_minutes must be between {low} and {high}")
        return timedelta(minutes=ttl_minutes)

    # ============ OPERATIONS ============

    async def run_maintenance_pass(self, now: Optional[datetime] = None) -> MaintenanceReport:
        """Expire posts, close dead rooms, sweep orphan media and persist."""
        async with self._lock:
            now = now or self.clock()
            snapshot = self.store.load()
            report = self._sweep(snapshot, now)
            self._persist(snapshot)
            return report

    async def create_post(
        self,
        content: Optional[str],
        upload: Optional[MediaUpload] = None,
        room_id: Optional[str] = None,
        ttl_minutes: Optional[int] = None,
    ) -> PostCreated:
        """
        Create a post in the main feed or in a live room.

        Raises:
            ValidationError: bad content, ttl or media
            NotFoundError: the target room is missing or dead
        """
        content = (content or "").replace("\x00", "").strip()
        if len(content) > self.settings.content_max_length:
            raise ValidationError(f"Content too long (max {self.settings.content_max_length} characters)")
        if not content and upload is None:
            raise ValidationError("Content or image required")
        ttl = self._resolve_ttl(ttl_minutes)
        room_id = normalize_room_id(room_id)

        # Stored before the record exists; sweeps skip it until the post is persisted
        media: Optional[MediaRef] = None
        if upload is not None:
            media = self.media_store.store(upload.data, upload.content_type, upload.filename)
            self._pending_uploads.add(media.filename)

        try:
            async with self._lock:
                now = self.clock()
                snapshot = self.store.load()
                self._sweep(snapshot, now)

                if room_id is not None:
                    room = self._find_room(snapshot, room_id, now)
                    if room is None:
                        self._persist(snapshot)
                        raise NotFoundError("Room not found or expired")
                    room.last_active_at = now

                post = Post(
                    id=ensure_unique(generate_post_id, {p.id for p in snapshot.posts}),
                    room_id=room_id,
                    content=content,
                    media=media,
                    delete_token=generate_delete_token(),
                    created_at=now,
                    expires_at=now + ttl,
                )
                snapshot.posts.insert(0, post)
                snapshot.version += 1
                self._persist(snapshot)
        except Exception:
            if media is not None:
                self._delete_media([media.filename])
            raise
        finally:
            if media is not None:
                self._pending_uploads.discard(media.filename)

        logger.info(f"Post created: {post.id}" + (f" in room {room_id}" if room_id else ""))
        return PostCreated(id=post.id, delete_token=post.delete_token, expires_at=post.expires_at)

    async def list_posts(self, room_id: Optional[str] = None) -> List[PublicPost]:
        """Active posts of one room (or the main feed when room_id is None), newest first."""
        room_id = normalize_room_id(room_id)
        async with self._lock:
            now = self.clock()
            snapshot = self.store.load()
            self._sweep(snapshot, now)
            self._persist(snapshot)

        if room_id is not None and self._find_room(snapshot, room_id, now) is None:
            raise NotFoundError("Room not found or expired")

        posts = [post for post in snapshot.posts if post.room_id == room_id]
        posts.sort(key=lambda post: post.created_at, reverse=True)
        return [PublicPost.from_post(post) for post in posts]

    async def delete_post(self, post_id: str, token: str) -> None:
        """
        Delete a post with its delete token.

        Raises:
            NotFoundError: no such post, or it already expired
            ForbiddenError: token mismatch; nothing is changed
        """
        async with self._lock:
            now = self.clock()
            snapshot = self.store.load()
            self._sweep(snapshot, now)

            post = next((p for p in snapshot.posts if p.id == post_id), None)
            if post is None:
                self._persist(snapshot)
                raise NotFoundError("Post not found")

            if not secrets.compare_digest(post.delete_token.encode(), (token or "").encode()):
                self._persist(snapshot)
                log_security_event("invalid_delete_token", {"post_id": post_id})
                raise ForbiddenError("Invalid token")

            snapshot.posts = [p for p in snapshot.posts if p.id != post_id]
            snapshot.version += 1
            # Media goes only once no persisted record points at it
            if self._persist(snapshot) and post.media:
                self._delete_media([post.media.filename])

        logger.info(f"Post deleted: {post_id}")

    async def create_room(self, label: Optional[str] = None) -> RoomCreated:
        """Open a new room; it stays alive while it receives heartbeats or posts."""
        label = clean_text(label or "", max_length=self.settings.room_label_max_length) or None
        async with self._lock:
            now = self.clock()
            snapshot = self.store.load()
            self._sweep(snapshot, now)

            room = Room(
                id=ensure_unique(generate_room_key, {r.id for r in snapshot.rooms}),
                label=label,
                created_at=now,
                last_active_at=now,
            )
            snapshot.rooms.append(room)
            snapshot.version += 1
            self._persist(snapshot)

        logger.info(f"Room created: {room.id}")
        return RoomCreated(room_id=room.id)

    async def heartbeat_room(self, room_id: str) -> None:
        """Keep a live room alive. Does not run a maintenance pass."""
        room_id = normalize_room_id(room_id)
        async with self._lock:
            now = self.clock()
            snapshot = self.store.load()
            room = self._find_room(snapshot, room_id, now) if room_id else None
            if room is None:
                raise NotFoundError("Room not found or expired")
            room.last_active_at = now
            snapshot.version += 1
            self._persist(snapshot)
