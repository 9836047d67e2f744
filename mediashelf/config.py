"""
mediashelf - Configuration
All settings loaded from environment variables with sensible defaults.

Settings are read by ``load_settings()`` and handed to each component
through its constructor.  Nothing below the application factory looks at
the environment, so several confined roots can coexist in one process and
tests can build isolated instances.
"""

import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

DEFAULT_PORT = 3000
DEFAULT_CACHE_TTL = 300
DEFAULT_AUDIO_EXTENSIONS: FrozenSet[str] = frozenset({".mp3", ".flac", ".ogg"})


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def parse_port(raw: Optional[str], default: int = DEFAULT_PORT) -> int:
    """Parse a TCP port, falling back to *default* when invalid or out of range."""
    try:
        port = int(raw) if raw is not None else default
    except ValueError:
        return default
    if port < 1 or port > 65535:
        return default
    return port


def parse_ttl(raw: Optional[str], default: int = DEFAULT_CACHE_TTL) -> int:
    """Parse a cache TTL in seconds; negative or non-numeric values use *default*."""
    try:
        ttl = int(raw) if raw is not None else default
    except ValueError:
        return default
    return ttl if ttl >= 0 else default


def parse_extensions(raw: Optional[str]) -> FrozenSet[str]:
    """
    Parse a comma-separated extension list such as ``"mp3, .FLAC,ogg"``.

    Entries are lower-cased and given a leading dot.  An empty or missing
    value yields the default audio extensions.
    """
    if not raw:
        return DEFAULT_AUDIO_EXTENSIONS
    extensions = set()
    for item in raw.split(","):
        item = item.strip().lower()
        if not item:
            continue
        extensions.add(item if item.startswith(".") else f".{item}")
    return frozenset(extensions) or DEFAULT_AUDIO_EXTENSIONS


def parse_bool(raw: Optional[str], default: bool = False) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def detect_host_ip() -> str:
    """Best-effort LAN address of this machine, ``127.0.0.1`` if unknown."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # No packet is sent for a UDP connect; it only selects a route.
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    media_root: Path
    playlist_root: Path
    app_host: str = "0.0.0.0"
    app_port: int = DEFAULT_PORT
    base_url: str = ""
    audio_extensions: FrozenSet[str] = DEFAULT_AUDIO_EXTENSIONS
    cache_ttl: int = DEFAULT_CACHE_TTL
    playlist_write_lock: bool = False
    cors_origins: Tuple[str, ...] = ("*",)
    app_env: str = "development"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        # Roots are sandbox boundaries and must be absolute and normalized.
        object.__setattr__(self, "media_root", Path(os.path.abspath(self.media_root)))
        object.__setattr__(
            self, "playlist_root", Path(os.path.abspath(self.playlist_root))
        )
        if not self.base_url:
            object.__setattr__(
                self, "base_url", f"http://{detect_host_ip()}:{self.app_port}"
            )
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))


def load_settings() -> Settings:
    """Build a :class:`Settings` from the current environment."""
    port = parse_port(os.getenv("APP_PORT"))
    origins = tuple(
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    )
    return Settings(
        media_root=Path(os.getenv("MEDIA_FOLDER", "./media")),
        playlist_root=Path(os.getenv("PLAYLIST_FOLDER", "./playlists")),
        app_host=os.getenv("APP_HOST", "0.0.0.0"),
        app_port=port,
        base_url=os.getenv("PUBLIC_BASE_URL", ""),
        audio_extensions=parse_extensions(os.getenv("AUDIO_EXTENSIONS")),
        cache_ttl=parse_ttl(os.getenv("LISTING_CACHE_TTL")),
        playlist_write_lock=parse_bool(os.getenv("PLAYLIST_WRITE_LOCK")),
        cors_origins=origins or ("*",),
        app_env=os.getenv("APP_ENV", "development"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        debug=parse_bool(os.getenv("DEBUG")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
