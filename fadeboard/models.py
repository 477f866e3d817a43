"""
Pydantic models for posts, media references and the persisted snapshot.
"""
from dataclasses import dataclass
from typing import List, Optional

from pydantic import AwareDatetime, BaseModel, Field

from fadeboard.room_models import Room


class MediaRef(BaseModel):
    """A file in the media store: storage filename plus its public URL."""
    filename: str
    url: str


class Post(BaseModel):
    """Persisted post record. Never mutated after creation."""
    id: str
    room_id: Optional[str] = None
    content: str = ""
    media: Optional[MediaRef] = None
    delete_token: str
    created_at: AwareDatetime
    expires_at: AwareDatetime


class Snapshot(BaseModel):
    """Full board state; posts are kept newest first."""
    version: int = 0
    posts: List[Post] = Field(default_factory=list)
    rooms: List[Room] = Field(default_factory=list)


@dataclass
class MediaUpload:
    """Raw upload handed over by the transport layer."""
    data: bytes
    content_type: str
    filename: Optional[str] = None


class PostCreated(BaseModel):
    """Response after creating a post. The only place delete_token is exposed."""
    id: str
    delete_token: str
    expires_at: AwareDatetime


class PublicPost(BaseModel):
    """Post as shown in listings."""
    id: str
    content: str
    media_url: Optional[str] = None
    created_at: AwareDatetime
    expires_at: AwareDatetime

    @classmethod
    def from_post(cls, post: Post) -> "PublicPost":
        return cls(
            id=post.id,
            content=post.content,
            media_url=post.media.url if post.media else None,
            created_at=post.created_at,
            expires_at=post.expires_at,
        )


class DeletePostRequest(BaseModel):
    """Request body for deleting a post."""
    token: str


class DeletePostResponse(BaseModel):
    success: bool = True
