"""
Expiry rules. Pure functions over snapshot data and a reference time;
callers apply the results.
"""
from datetime import datetime, timedelta
from typing import Iterable, List, Sequence, Tuple

from fadeboard.media_store import MediaFile
from fadeboard.models import Post, Snapshot
from fadeboard.room_models import Room


def is_active(post: Post, now: datetime) -> bool:
    return post.expires_at > now


def is_alive(room: Room, now: datetime, grace: timedelta) -> bool:
    return now - room.last_active_at < grace


def partition_posts(snapshot: Snapshot, now: datetime) -> Tuple[List[Post], List[Post]]:
    """Split posts into (active, expired). Expiry is inclusive: expires_at <= now."""
    active, expired = [], []
    for post in snapshot.posts:
        (active if is_active(post, now) else expired).append(post)
    return active, expired


def partition_rooms(snapshot: Snapshot, now: datetime, grace: timedelta) -> Tuple[List[Room], List[Room]]:
    """Split rooms into (alive, dead)."""
    alive, dead = [], []
    for room in snapshot.rooms:
        (alive if is_alive(room, now, grace) else dead).append(room)
    return alive, dead


def cascade_posts(posts: Sequence[Post], alive_rooms: Iterable[Room]) -> Tuple[List[Post], List[Post]]:
    """
    Split posts into (kept, cascaded). A post is cascaded when it belongs to
    a room that is no longer alive, including rooms missing from the snapshot.
    """
    alive_ids = {room.id for room in alive_rooms}
    kept, cascaded = [], []
    for post in posts:
        if post.room_id is not None and post.room_id not in alive_ids:
            cascaded.append(post)
        else:
            kept.append(post)
    return kept, cascaded


def find_orphan_media(
    active_posts: Iterable[Post],
    media_files: Iterable[MediaFile],
    now: datetime,
    orphan_age: timedelta,
    pending: Iterable[str] = (),
) -> List[str]:
    """
    Filenames not referenced by any active post and older than orphan_age.

    The age threshold spares files written for posts that are not yet persisted.
    Files in pending belong to a post being created right now and are never orphans.
    """
    referenced = {post.media.filename for post in active_posts if post.media}
    referenced.update(pending)
    return [
        f.filename for f in media_files
        if f.filename not in referenced and now - f.modified_at > orphan_age
    ]
