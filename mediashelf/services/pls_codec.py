"""
mediashelf - PLS Playlist Codec

Parses and serializes the line-oriented PLS playlist format:

    [playlist]
    File1=/path/to/file.mp3
    Title1=Song Title
    Length1=123
    NumberOfEntries=1
    Version=2

Parsing is lenient: section headers, blank lines and unrecognized keys are
skipped, fields are grouped by their numeric suffix, and entries without a
``File`` value are dropped.  Serialization always renumbers tracks from 1.

Values are stored verbatim.  ``=`` inside a value is fine (only the first
one splits key from value) but newlines cannot be represented.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from mediashelf.errors import InvalidArgument

PLS_HEADER = "[playlist]"
PLS_VERSION = 2

_LINE_RE = re.compile(r"^(File|Title|Length)([0-9]+)=(.*)$", re.IGNORECASE)
_LINE_SPLIT_RE = re.compile(r"\r?\n")


@dataclass
class Track:
    """A playlist entry.  Order in a playlist is its list position."""

    file: str
    title: Optional[str] = None
    length: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"file": self.file}
        if self.title is not None:
            data["title"] = self.title
        if self.length is not None:
            data["length"] = self.length
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Track":
        """Build a Track from a mapping, raising InvalidArgument when malformed."""
        if not isinstance(data, Mapping):
            raise InvalidArgument(f"Track must be an object, got {type(data).__name__}")
        file = data.get("file")
        if not isinstance(file, str) or not file:
            raise InvalidArgument("Track 'file' must be a non-empty string")

        title = data.get("title")
        if title is not None and not isinstance(title, str):
            raise InvalidArgument("Track 'title' must be a string")

        length = data.get("length")
        if isinstance(length, bool):
            raise InvalidArgument("Track 'length' must be a string or integer")
        if isinstance(length, int):
            length = str(length)
        elif length is not None and not isinstance(length, str):
            raise InvalidArgument("Track 'length' must be a string or integer")

        return cls(file=file, title=title, length=length)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def parse(text: str) -> List[Track]:
    """Parse PLS *text* into tracks ordered by their numeric index."""
    fields: Dict[int, Dict[str, str]] = {}

    for line in _LINE_SPLIT_RE.split(text):
        stripped = line.strip()
        if not stripped or stripped.startswith("["):
            continue

        match = _LINE_RE.match(line.lstrip())
        if not match:
            continue

        key, index_str, value = match.groups()
        fields.setdefault(int(index_str), {})[key.lower()] = value

    tracks: List[Track] = []
    for index in sorted(fields):
        entry = fields[index]
        if not entry.get("file"):
            continue
        tracks.append(
            Track(file=entry["file"], title=entry.get("title"), length=entry.get("length"))
        )
    return tracks


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def serialize(tracks: Iterable[Track]) -> str:
    """Render *tracks* as PLS text, numbered contiguously from 1."""
    lines = [PLS_HEADER]
    count = 0
    for count, track in enumerate(tracks, start=1):
        lines.append(f"File{count}={track.file}")
        if track.title is not None:
            lines.append(f"Title{count}={track.title}")
        if track.length is not None:
            lines.append(f"Length{count}={track.length}")
    lines.append(f"NumberOfEntries={count}")
    lines.append(f"Version={PLS_VERSION}")
    return "\n".join(lines) + "\n"
