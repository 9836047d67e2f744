"""
mediashelf - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A temporary media tree with audio and non-audio files
- A temporary playlist root (present or absent)
- Core service instances wired to those roots
- A FastAPI TestClient bound to an isolated application
- Sample PLS playlist content
"""

import asyncio
from pathlib import Path
from typing import Any, Callable, Coroutine, List

import pytest
from fastapi.testclient import TestClient

from mediashelf.config import Settings
from mediashelf.main import create_app
from mediashelf.services.content_lister import ContentLister
from mediashelf.services.listing_cache import TTLCache
from mediashelf.services.path_sandbox import PathSandbox
from mediashelf.services.playlist_store import PlaylistStore
from mediashelf.services.pls_codec import Track

BASE_URL = "http://localhost:3000"


def run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Drive an async core call to completion from a synchronous test."""
    return asyncio.run(coro)


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Filesystem fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    """
    Create a media tree:

        media/
          album/
            song.mp3  track.flac  audio.ogg  readme.txt
            disc 2/
              Intro.MP3
          cover.jpg
    """
    root = tmp_path / "media"
    album = root / "album"
    album.mkdir(parents=True)
    (album / "song.mp3").write_bytes(b"fake mp3 content")
    (album / "track.flac").write_bytes(b"fake flac content")
    (album / "audio.ogg").write_bytes(b"fake ogg content")
    (album / "readme.txt").write_text("not an audio file", encoding="utf-8")
    disc = album / "disc 2"
    disc.mkdir()
    (disc / "Intro.MP3").write_bytes(b"\x00" * 32)
    (root / "cover.jpg").write_bytes(b"\xff\xd8")
    return root


@pytest.fixture
def playlist_root(tmp_path: Path) -> Path:
    root = tmp_path / "playlists"
    root.mkdir()
    return root


@pytest.fixture
def missing_playlist_root(tmp_path: Path) -> Path:
    """A playlist root path that does not exist on disk."""
    return tmp_path / "no-playlists-here"


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def listing_cache(clock: FakeClock) -> TTLCache:
    return TTLCache(ttl=300, clock=clock)


@pytest.fixture
def lister(media_root: Path, listing_cache: TTLCache) -> ContentLister:
    return ContentLister(PathSandbox(media_root), listing_cache, base_url=BASE_URL)


@pytest.fixture
def store(playlist_root: Path) -> PlaylistStore:
    return PlaylistStore(playlist_root)


@pytest.fixture
def settings(media_root: Path, playlist_root: Path) -> Settings:
    return Settings(
        media_root=media_root,
        playlist_root=playlist_root,
        base_url=BASE_URL,
    )


@pytest.fixture
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


# ---------------------------------------------------------------------------
# Sample playlist content
# ---------------------------------------------------------------------------

SAMPLE_PLS = """[playlist]
File1=/path/to/song1.mp3
Title1=First Song
Length1=180
File2=/path/to/song2.mp3
Title2=Second Song
Length2=240
NumberOfEntries=2
Version=2
"""

SAMPLE_PLS_UNORDERED = """[playlist]
Title3=Third
File3=/c.mp3
File1=/a.mp3
Length7=99
File10=/j.mp3
NumberOfEntries=3
"""


@pytest.fixture
def sample_tracks() -> List[Track]:
    return [
        Track(file="/album/song1.mp3", title="Song 1", length="180"),
        Track(file="/album/song2.mp3", title="Song 2", length="240"),
    ]


@pytest.fixture
def write_playlist(playlist_root: Path) -> Callable[[str, str], Path]:
    """Write raw text to ``<playlist_root>/<filename>`` and return the path."""

    def _write(filename: str, text: str) -> Path:
        path = playlist_root / filename
        path.write_text(text, encoding="utf-8")
        return path

    return _write
