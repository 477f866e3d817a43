"""
FastAPI application for the ephemeral board.
Thin HTTP surface over the lifecycle manager, with rate limiting, CORS and
security headers.
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from fadeboard.cleanup import MaintenanceScheduler
from fadeboard.config import Settings
from fadeboard.database import SnapshotStore
from fadeboard.errors import BoardError
from fadeboard.lifecycle import Clock, LifecycleManager, utcnow
from fadeboard.media_store import MediaStore
from fadeboard.models import (
    DeletePostRequest,
    DeletePostResponse,
    MediaUpload,
    PostCreated,
    PublicPost,
)
from fadeboard.room_models import HeartbeatResponse, RoomCreate, RoomCreated

logger = logging.getLogger(__name__)

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, hsts: bool = True):
        super().__init__(app)
        self.hsts = hsts

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Prevent content type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data: blob:; "
            "frame-ancestors 'none';"
        )
        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


async def board_error_handler(request: Request, exc: BoardError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request shapes are client errors like any other bad input."""
    return JSONResponse({"detail": jsonable_encoder(exc.errors())}, status_code=400)


def get_manager(request: Request) -> LifecycleManager:
    return request.app.state.manager


def create_app(settings: Optional[Settings] = None, clock: Clock = utcnow) -> FastAPI:
    """Build the application around one lifecycle manager."""
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    media_store = MediaStore(
        settings.media_dir,
        public_prefix=settings.media_public_prefix,
        max_bytes=settings.max_media_bytes,
    )
    manager = LifecycleManager(SnapshotStore(settings.snapshot_path), media_store, settings, clock=clock)
    scheduler = MaintenanceScheduler(manager, interval=settings.maintenance_interval_seconds)

    @asynccontextmanager
    async def lifespan(app):
        """Start the maintenance worker; its first pass runs immediately."""
        scheduler.start()
        logger.info("Fadeboard started successfully")
        yield
        await scheduler.stop()
        logger.info("Fadeboard shutting down")

    app = FastAPI(title="Fadeboard", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.settings = settings
    app.state.manager = manager
    app.state.scheduler = scheduler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(BoardError, board_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=not settings.debug)
    # Trusted Host Middleware - prevent host header attacks
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    # Media is served read-only under the public prefix
    app.mount(settings.media_public_prefix, StaticFiles(directory=media_store.root), name="uploads")

    app.include_router(router)
    return app


@router.get("/health", include_in_schema=False)
async def health():
    return PlainTextResponse("ok")


@router.post("/posts", response_model=PostCreated)
@limiter.limit("10/minute")  # Rate limit: 10 posts per minute
async def create_post(
    request: Request,
    content: Optional[str] = Form(None),
    room_id: Optional[str] = Form(None),
    ttl_minutes: Optional[int] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """Create a post, optionally with an image and/or inside a room."""
    manager = get_manager(request)
    upload = None
    if file is not None:
        # One byte over the limit is enough to reject
        data = await file.read(manager.settings.max_media_bytes + 1)
        if file.filename or data:
            upload = MediaUpload(data=data, content_type=file.content_type or "", filename=file.filename)
    return await manager.create_post(content, upload=upload, room_id=room_id, ttl_minutes=ttl_minutes)


@router.get("/posts", response_model=List[PublicPost])
async def list_posts(request: Request, room_id: Optional[str] = None):
    """Active posts, newest first. Without room_id, the main feed."""
    return await get_manager(request).list_posts(room_id)


@router.delete("/posts/{post_id}", response_model=DeletePostResponse)
@limiter.limit("30/minute")
async def delete_post(request: Request, post_id: str, payload: DeletePostRequest):
    await get_manager(request).delete_post(post_id, payload.token)
    return DeletePostResponse()


@router.post("/rooms", response_model=RoomCreated)
@limiter.limit("5/minute")  # Rate limit room creation
async def create_room(request: Request, payload: Optional[RoomCreate] = None):
    label = payload.label if payload else None
    return await get_manager(request).create_room(label)


@router.post("/rooms/{room_id}/heartbeat", response_model=HeartbeatResponse)
async def heartbeat_room(request: Request, room_id: str):
    await get_manager(request).heartbeat_room(room_id)
    return HeartbeatResponse()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fadeboard.main:create_app", factory=True, host="0.0.0.0", port=8000)
