"""
mediashelf - Content Listing Service

Handles:
- Confining the requested directory to the media root
- Enumerating and filtering directory entries (directories + allowed audio)
- Building annotated listing rows with stream/list capability URLs
- Prepending a parent-link row below the root
- Caching listings per requested path with a TTL

Listings are sorted by case-folded name with the parent link always first.
"""

import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import aiofiles.os
from loguru import logger

from mediashelf.config import DEFAULT_AUDIO_EXTENSIONS
from mediashelf.errors import NotFound, PathRejected
from mediashelf.services.listing_cache import TTLCache
from mediashelf.services.path_sandbox import ConfinedPath, PathSandbox
from mediashelf.utils import encode_uri_component, relative_posix

PARENT_LINK_NAME = ".."

EntryFilter = Callable[[os.DirEntry], bool]


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ContentEntry:
    """One row of a directory listing, including the synthetic parent link."""

    name: str
    is_file: bool
    path: str  # root-relative, percent-encoded
    enter: str
    size: Optional[int] = None
    metadata: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "isFile": self.is_file,
            "path": self.path,
            "enter": self.enter,
        }
        if self.size is not None:
            data["size"] = self.size
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


# ---------------------------------------------------------------------------
# Entry filtering
# ---------------------------------------------------------------------------
def has_allowed_extension(name: str, extensions: Iterable[str]) -> bool:
    """Case-insensitive extension test; *extensions* are dotted and lower-case."""
    return os.path.splitext(name)[1].lower() in extensions


def directory_or_extension(extensions: Iterable[str]) -> EntryFilter:
    """Keep every directory, and files whose extension is in *extensions*."""
    allowed = frozenset(extensions)

    def _keep(entry: os.DirEntry) -> bool:
        if entry.is_dir():
            return True
        return entry.is_file() and has_allowed_extension(entry.name, allowed)

    return _keep


def _scan_directory(
    path: str, entry_filter: EntryFilter
) -> List[Tuple[str, bool, Optional[int]]]:
    """Blocking scan returning ``(name, is_file, size)`` for every kept entry."""
    rows = []
    with os.scandir(path) as scan:
        for entry in scan:
            if not entry_filter(entry):
                continue
            is_file = entry.is_file()
            rows.append((entry.name, is_file, entry.stat().st_size if is_file else None))
    return rows


# Runs in the default executor so iteration and stat calls never block the loop.
scan_directory = aiofiles.os.wrap(_scan_directory)


# ---------------------------------------------------------------------------
# Lister
# ---------------------------------------------------------------------------
class ContentLister:
    """Produces cached, filtered directory listings below one media root."""

    def __init__(
        self,
        sandbox: PathSandbox,
        cache: TTLCache,
        base_url: str = "",
        extensions: Iterable[str] = DEFAULT_AUDIO_EXTENSIONS,
        entry_filter: Optional[EntryFilter] = None,
    ):
        self.sandbox = sandbox
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.entry_filter = entry_filter or directory_or_extension(extensions)

    def enter_url(self, is_file: bool, encoded_path: str) -> str:
        """Capability URL that streams a file or lists a directory."""
        action = "stream" if is_file else "list"
        return f"{self.base_url}/{action}?path={encoded_path}"

    async def list(self, relative_path: str = "") -> List[ContentEntry]:
        """
        List the directory at *relative_path* below the media root.

        Raises :class:`PathRejected` for paths escaping the root (checked
        before the cache so a cached listing can never bypass it) and
        :class:`NotFound` when the directory does not exist.
        """
        key = relative_path or ""
        confined = self.sandbox.resolve(key)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("📦 Listing cache hit for {!r}", key)
            return list(cached)

        logger.debug("💿 Reading directory from disk: {}", confined.absolute)
        entries = await self._read_entries(confined)

        if not confined.is_root:
            entries.insert(0, self._parent_link(confined))

        self.cache.set(key, tuple(entries))
        return entries

    async def _read_entries(self, confined: ConfinedPath) -> List[ContentEntry]:
        try:
            rows = await scan_directory(confined.absolute, self.entry_filter)
        except FileNotFoundError as exc:
            raise NotFound(f"Directory not found: {confined.relative or '/'}") from exc

        rows.sort(key=lambda row: (row[0].casefold(), row[0]))
        return [self._build_entry(confined, *row) for row in rows]

    def _build_entry(
        self, confined: ConfinedPath, name: str, is_file: bool, size: Optional[int]
    ) -> ContentEntry:
        full_path = os.path.join(confined.absolute, name)
        encoded = encode_uri_component(relative_posix(full_path, self.sandbox.root))

        return ContentEntry(
            name=name,
            is_file=is_file,
            path=encoded,
            enter=self.enter_url(is_file, encoded),
            size=size,
        )

    def _parent_link(self, confined: ConfinedPath) -> ContentEntry:
        parent = os.path.dirname(confined.absolute)
        try:
            parent_rel = ConfinedPath(root=self.sandbox.root, absolute=parent).relative
        except PathRejected:
            parent_rel = ""
        encoded = encode_uri_component(parent_rel)
        return ContentEntry(
            name=PARENT_LINK_NAME,
            is_file=False,
            path=encoded,
            enter=self.enter_url(False, encoded),
        )
