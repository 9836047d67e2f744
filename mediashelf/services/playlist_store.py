"""
mediashelf - Playlist Store

CRUD for PLS playlists kept as one ``<name>.pls`` file per playlist below a
dedicated playlist root.

Every operation sanitizes the supplied name first (filename component only,
trailing ``.pls`` stripped) and then confines the resulting file path to the
playlist root, so traversal sequences never reach the filesystem.

The extension is matched case-insensitively everywhere: ``list()`` reports
``rock.PLS`` as ``rock``, and ``get("rock")`` opens ``rock.pls`` if present
and otherwise the existing case variant of the extension.  New playlists are
always written with a lower-case ``.pls``.

Writes go to a uniquely named sibling ``.tmp`` file which is then moved
over the target, so a failed write never leaves a half-written playlist
behind.

Read-modify-write sequences (add, remove) are not serialized unless the
store is built with ``serialize_writes=True``; without it two concurrent
writers to the same playlist can lose an update.
"""

import asyncio
import ntpath
import os
import posixpath
import re
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence, Union

import aiofiles
import aiofiles.os
from loguru import logger

from mediashelf.errors import AlreadyExists, InvalidArgument, NotFound, OutOfRange
from mediashelf.services.path_sandbox import ConfinedPath, PathSandbox
from mediashelf.services.pls_codec import Track, parse, serialize

PLS_EXTENSION = ".pls"
_INDEX_RE = re.compile(r"^[+-]?[0-9]+$")


# ---------------------------------------------------------------------------
# Name and index helpers
# ---------------------------------------------------------------------------
def sanitize_playlist_name(name: str) -> str:
    """
    Reduce *name* to a bare playlist name.

    ``"../rock"``, ``"a/b/rock.pls"`` and ``"rock.PLS"`` all become ``"rock"``.
    Both ``/`` and ``\\`` count as separators.
    """
    if not isinstance(name, str):
        raise InvalidArgument("Playlist name must be a string")

    base = ntpath.basename(posixpath.basename(name))
    if base.lower().endswith(PLS_EXTENSION):
        base = base[: -len(PLS_EXTENSION)]

    if base in ("", ".", ".."):
        raise InvalidArgument(f"Invalid playlist name: {name!r}")
    return base


def parse_track_index(index: Union[int, str]) -> int:
    """Accept an int or a decimal string; anything else is InvalidArgument."""
    if isinstance(index, bool):
        raise InvalidArgument("Track index must be an integer")
    if isinstance(index, int):
        return index
    if isinstance(index, str) and _INDEX_RE.match(index.strip()):
        return int(index.strip())
    raise InvalidArgument(f"Track index must be an integer, got {index!r}")


def _coerce_tracks(tracks: Iterable) -> List[Track]:
    if isinstance(tracks, (str, bytes)) or not isinstance(tracks, Sequence):
        raise InvalidArgument("Tracks must be a list")
    coerced = [t if isinstance(t, Track) else Track.from_dict(t) for t in tracks]
    # A track without a file would be written as "FileN=" and dropped on read.
    for track in coerced:
        if not isinstance(track.file, str) or not track.file:
            raise InvalidArgument("Track 'file' must be a non-empty string")
    return coerced


def _is_playlist_file(entry: os.DirEntry) -> bool:
    return entry.is_file() and entry.name.lower().endswith(PLS_EXTENSION)


def _scan_playlist_names(root: str) -> List[str]:
    with os.scandir(root) as scan:
        return [e.name[: -len(PLS_EXTENSION)] for e in scan if _is_playlist_file(e)]


def _find_case_variant(root: str, filename: str) -> Optional[str]:
    """Existing file in *root* whose name equals *filename* ignoring case."""
    wanted = filename.lower()
    try:
        with os.scandir(root) as scan:
            matches = sorted(e.name for e in scan if e.name.lower() == wanted and e.is_file())
    except FileNotFoundError:
        return None
    return matches[0] if matches else None


scan_playlist_names = aiofiles.os.wrap(_scan_playlist_names)
find_case_variant = aiofiles.os.wrap(_find_case_variant)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class PlaylistStore:
    """Playlist CRUD over a confined playlist directory."""

    def __init__(self, root: Union[str, "os.PathLike[str]"], serialize_writes: bool = False):
        self.sandbox = PathSandbox(root, label="playlist folder")
        self.serialize_writes = serialize_writes
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def root(self) -> str:
        return self.sandbox.root

    def path_for(self, name: str) -> ConfinedPath:
        """Canonical confined file path (lower-case ``.pls``) for playlist *name*."""
        return self.sandbox.resolve(sanitize_playlist_name(name) + PLS_EXTENSION)

    async def _existing(self, name: str) -> Optional[ConfinedPath]:
        """Path of the file backing *name*, or None if there is none."""
        path = self.path_for(name)
        if await aiofiles.os.path.isfile(path.absolute):
            return path
        variant = await find_case_variant(self.root, os.path.basename(path.absolute))
        return self.sandbox.resolve(variant) if variant else None

    async def _locate(self, name: str) -> ConfinedPath:
        return await self._existing(name) or self.path_for(name)

    # -- locking -----------------------------------------------------------
    @asynccontextmanager
    async def _guard(self, *names: str) -> AsyncIterator[None]:
        if not self.serialize_writes:
            yield
            return
        # Sorted acquisition so rename(a, b) and rename(b, a) cannot deadlock.
        locks = [self._locks.setdefault(n, asyncio.Lock()) for n in sorted(set(names))]
        for lock in locks:
            await lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()

    # -- file primitives ---------------------------------------------------
    async def _read_tracks(self, path: ConfinedPath) -> List[Track]:
        async with aiofiles.open(path.absolute, "r", encoding="utf-8") as f:
            return parse(await f.read())

    async def _write_tracks(self, path: ConfinedPath, tracks: Sequence[Track]) -> None:
        await aiofiles.os.makedirs(self.root, exist_ok=True)
        tmp_path = f"{path.absolute}.{uuid.uuid4().hex}.tmp"
        async with aiofiles.open(tmp_path, "w", encoding="utf-8", newline="") as f:
            await f.write(serialize(tracks))
        await aiofiles.os.replace(tmp_path, path.absolute)

    # -- operations --------------------------------------------------------
    async def list(self) -> List[str]:
        """
        Sorted playlist names; empty when the playlist root does not exist.

        Names come from regular files ending in ``.pls`` in any case, with
        the extension removed.
        """
        try:
            names = await scan_playlist_names(self.root)
        except FileNotFoundError:
            return []
        return sorted(names)

    async def get(self, name: str) -> List[Track]:
        path = await self._locate(name)
        try:
            return await self._read_tracks(path)
        except FileNotFoundError as exc:
            raise NotFound(f"Playlist not found: {sanitize_playlist_name(name)}") from exc

    async def create(self, name: str) -> None:
        key = sanitize_playlist_name(name)
        path = self.path_for(name)
        if await self._existing(name):
            raise AlreadyExists(f"Playlist already exists: {key}")

        await aiofiles.os.makedirs(self.root, exist_ok=True)
        try:
            async with aiofiles.open(path.absolute, "x", encoding="utf-8", newline="") as f:
                await f.write(serialize([]))
        except FileExistsError as exc:
            raise AlreadyExists(f"Playlist already exists: {key}") from exc
        logger.info("🎵 Created playlist {}", key)

    async def add(self, name: str, tracks: Sequence[Track]) -> List[Track]:
        """Append *tracks*, creating the playlist if needed; returns the result."""
        new_tracks = _coerce_tracks(tracks)
        key = sanitize_playlist_name(name)

        async with self._guard(key):
            path = await self._locate(name)
            try:
                existing = await self._read_tracks(path)
            except FileNotFoundError:
                existing = []
            combined = existing + new_tracks
            await self._write_tracks(path, combined)

        logger.info(
            "➕ Added {} track(s) to playlist {} ({} total)",
            len(new_tracks),
            key,
            len(combined),
        )
        return combined

    async def remove(self, name: str, index: Union[int, str]) -> List[Track]:
        """Remove the track at *index*; returns the remaining tracks."""
        position = parse_track_index(index)
        key = sanitize_playlist_name(name)

        async with self._guard(key):
            path = await self._locate(name)
            try:
                tracks = await self._read_tracks(path)
            except FileNotFoundError as exc:
                raise NotFound(f"Playlist not found: {key}") from exc

            if position < 0 or position >= len(tracks):
                raise OutOfRange(
                    f"Track index {position} out of range (0..{len(tracks) - 1})"
                    if tracks
                    else f"Track index {position} out of range (playlist is empty)"
                )

            del tracks[position]
            await self._write_tracks(path, tracks)

        logger.info("➖ Removed track {} from playlist {}", position, key)
        return tracks

    async def rename(self, old_name: str, new_name: str) -> None:
        old_key = sanitize_playlist_name(old_name)
        new_key = sanitize_playlist_name(new_name)
        target = self.path_for(new_name)

        async with self._guard(old_key, new_key):
            source = await self._existing(old_name)
            if source is None:
                raise NotFound(f"Playlist not found: {old_key}")
            if await self._existing(new_name):
                raise AlreadyExists(f"Playlist already exists: {new_key}")
            await aiofiles.os.rename(source.absolute, target.absolute)

        logger.info("✏️ Renamed playlist {} -> {}", old_key, new_key)

    async def delete(self, name: str) -> None:
        key = sanitize_playlist_name(name)

        async with self._guard(key):
            path = await self._locate(name)
            try:
                await aiofiles.os.remove(path.absolute)
            except FileNotFoundError as exc:
                raise NotFound(f"Playlist not found: {key}") from exc

        logger.info("🗑️ Deleted playlist {}", key)
