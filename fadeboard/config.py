"""
Environment-driven configuration for Fadeboard.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration. Durations are in seconds unless named otherwise."""
    data_dir: Path = BASE_DIR / "data"
    snapshot_file: str = "db.json"
    media_dir: Path = BASE_DIR / "uploads"
    media_public_prefix: str = "/uploads"
    max_media_bytes: int = 5 * 1024 * 1024  # 5MB

    content_max_length: int = 500
    room_label_max_length: int = 40

    default_ttl_minutes: int = 60
    min_ttl_minutes: int = 1
    max_ttl_minutes: int = 60

    room_grace_seconds: int = 600
    orphan_age_seconds: int = 3600
    maintenance_interval_seconds: float = 60

    debug: bool = False
    production_domain: str = "fadeboard.example.com"
    trusted_hosts: List[str] = field(default_factory=list)
    cors_origins: List[str] = field(default_factory=list)

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / self.snapshot_file

    @property
    def allowed_hosts(self) -> List[str]:
        if self.trusted_hosts:
            return self.trusted_hosts
        hosts = [self.production_domain, f"*.{self.production_domain}"]
        if self.debug:
            hosts += ["localhost", "127.0.0.1"]
        return hosts

    @property
    def allowed_origins(self) -> List[str]:
        if self.cors_origins:
            return self.cors_origins
        origins = [
            f"https://{self.production_domain}",
            f"https://www.{self.production_domain}",
        ]
        if self.debug:
            origins += ["http://localhost:8000", "http://127.0.0.1:8000"]
        return origins

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=Path(os.getenv("DATA_DIR", str(BASE_DIR / "data"))),
            snapshot_file=os.getenv("SNAPSHOT_FILE", "db.json"),
            media_dir=Path(os.getenv("MEDIA_DIR", str(BASE_DIR / "uploads"))),
            media_public_prefix=os.getenv("MEDIA_PUBLIC_PREFIX", "/uploads").rstrip("/"),
            max_media_bytes=int(os.getenv("MAX_MEDIA_BYTES", str(5 * 1024 * 1024))),
            content_max_length=int(os.getenv("CONTENT_MAX_LENGTH", "500")),
            room_label_max_length=int(os.getenv("ROOM_LABEL_MAX_LENGTH", "40")),
            default_ttl_minutes=int(os.getenv("DEFAULT_TTL_MINUTES", "60")),
            min_ttl_minutes=int(os.getenv("MIN_TTL_MINUTES", "1")),
            max_ttl_minutes=int(os.getenv("MAX_TTL_MINUTES", "60")),
            room_grace_seconds=int(os.getenv("ROOM_GRACE_SECONDS", "600")),
            orphan_age_seconds=int(os.getenv("ORPHAN_AGE_SECONDS", "3600")),
            maintenance_interval_seconds=float(os.getenv("MAINTENANCE_INTERVAL_SECONDS", "60")),
            debug=_env_bool("DEBUG"),
            production_domain=os.getenv("PRODUCTION_DOMAIN", "fadeboard.example.com"),
            trusted_hosts=_env_list("TRUSTED_HOSTS"),
            cors_origins=_env_list("CORS_ORIGINS"),
        )
