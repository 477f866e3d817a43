"""
Pydantic models for ephemeral rooms.
"""
from typing import Optional

from pydantic import AwareDatetime, BaseModel


class Room(BaseModel):
    """Persisted room record. Liveness is derived from last_active_at."""
    id: str
    label: Optional[str] = None
    created_at: AwareDatetime
    last_active_at: AwareDatetime


class RoomCreate(BaseModel):
    """Request to create a new room."""
    label: Optional[str] = None


class RoomCreated(BaseModel):
    """Response after creating a room."""
    room_id: str


class HeartbeatResponse(BaseModel):
    ok: bool = True
