"""
mediashelf - JSON API Routes

Provides the HTTP endpoints for:
- Directory listing of the media root (``/list``)
- Streaming media files (``/stream``)
- Playlist CRUD (``/playlists``)
- Health check (``/api/health``)

The core services live on ``app.state`` and are reached through the
request.  Failures raised by the core are translated into JSON error
responses by the exception handlers registered in ``mediashelf.main``.
"""

import os
import time
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import FileResponse
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from mediashelf.errors import NotFound
from mediashelf.services.content_lister import ContentLister
from mediashelf.services.path_sandbox import PathSandbox
from mediashelf.services.playlist_store import PlaylistStore
from mediashelf.services.pls_codec import Track

router = APIRouter()

# Track startup time for health check
_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------
class TrackIn(BaseModel):
    file: str = Field(min_length=1)
    title: Optional[str] = None
    length: Optional[str] = None

    @field_validator("length", mode="before")
    @classmethod
    def _length_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_track(self) -> Track:
        return Track(file=self.file, title=self.title, length=self.length)


class PlaylistName(BaseModel):
    name: str


def _tracks_payload(tracks: List[Track]) -> List[Dict[str, str]]:
    return [t.to_dict() for t in tracks]


def _lister(request: Request) -> ContentLister:
    return request.app.state.content_lister


def _media_sandbox(request: Request) -> PathSandbox:
    return request.app.state.media_sandbox


def _playlists(request: Request) -> PlaylistStore:
    return request.app.state.playlist_store


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/api/health")
async def health_check(request: Request):
    """Health check endpoint for the service."""
    settings = request.app.state.settings
    media_ok = os.path.isdir(settings.media_root)

    return {
        "status": "ok" if media_ok else "degraded",
        "media_root": "ok" if media_ok else "missing",
        "playlist_root_exists": os.path.isdir(settings.playlist_root),
        "uptime_seconds": round(time.time() - _START_TIME, 2),
        "version": settings.app_version,
    }


# ---------------------------------------------------------------------------
# Media browsing
# ---------------------------------------------------------------------------
@router.get("/list")
async def api_list_content(request: Request, path: str = Query("")):
    """List a directory below the media root."""
    entries = await _lister(request).list(path)
    return [entry.to_dict() for entry in entries]


@router.get("/stream")
async def api_stream(request: Request, path: str = Query("")):
    """Send a media file from below the media root."""
    confined = _media_sandbox(request).resolve(path)
    if not os.path.isfile(confined.absolute):
        raise NotFound(f"File not found: {confined.relative or '/'}")

    logger.debug("🎧 Streaming {}", confined.absolute)
    return FileResponse(confined.absolute, filename=os.path.basename(confined.absolute))


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------
@router.get("/playlists")
async def api_list_playlists(request: Request):
    return await _playlists(request).list()


@router.get("/playlists/{name}")
async def api_get_playlist(request: Request, name: str):
    return _tracks_payload(await _playlists(request).get(name))


@router.post("/playlists", status_code=201)
async def api_create_playlist(request: Request, body: PlaylistName):
    await _playlists(request).create(body.name)
    return {"message": f"Playlist {body.name} created"}


@router.post("/playlists/{name}/tracks")
async def api_add_tracks(request: Request, name: str, body: List[TrackIn]):
    """Append tracks; the playlist is created if it does not exist yet."""
    tracks = await _playlists(request).add(name, [t.to_track() for t in body])
    return _tracks_payload(tracks)


@router.delete("/playlists/{name}/tracks/{index}")
async def api_remove_track(request: Request, name: str, index: str):
    # The index stays a string here; the store validates it.
    tracks = await _playlists(request).remove(name, index)
    return _tracks_payload(tracks)


@router.patch("/playlists/{name}")
async def api_rename_playlist(request: Request, name: str, body: PlaylistName):
    await _playlists(request).rename(name, body.name)
    return {"message": f"Playlist {name} renamed to {body.name}"}


@router.delete("/playlists/{name}", status_code=204)
async def api_delete_playlist(request: Request, name: str):
    await _playlists(request).delete(name)
    return Response(status_code=204)
