"""
mediashelf - Path Sandbox

Turns untrusted, client-supplied relative paths into absolute paths that are
guaranteed to stay inside a configured root directory.

The check is purely lexical: the raw path is treated as relative, joined to
the root and normalized, and the result must either be the root itself or
start with the root followed by a path separator.  A bare prefix test is
not enough (``/media2`` starts with ``/media``), so the separator is part of
the comparison.  Nothing here touches the filesystem.
"""

import os
from dataclasses import dataclass
from typing import Union

from loguru import logger

from mediashelf.errors import PathRejected
from mediashelf.utils import relative_posix


def _normalize_root(root: Union[str, "os.PathLike[str]"]) -> str:
    root_str = os.fspath(root)
    if not root_str:
        raise ValueError("Sandbox root must not be empty")
    return os.path.normpath(os.path.abspath(root_str))


def is_inside(root: str, candidate: str) -> bool:
    """True if the normalized absolute *candidate* is *root* or below it."""
    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def is_root_relative(path: str) -> bool:
    """True if *path* normalizes to the root itself (``""`` or ``"."``)."""
    return os.path.normpath(path or "") == os.curdir


@dataclass(frozen=True)
class ConfinedPath:
    """
    An absolute path proven to lie within ``root``.

    The invariant is re-checked on construction, so a ConfinedPath that
    escapes its root cannot be created by hand either.
    """

    root: str
    absolute: str

    def __post_init__(self):
        if not is_inside(self.root, self.absolute):
            raise PathRejected(
                f"Access denied: {self.absolute!r} is outside {self.root!r}"
            )

    @property
    def is_root(self) -> bool:
        return self.absolute == self.root

    @property
    def relative(self) -> str:
        """Root-relative path with ``/`` separators; empty for the root."""
        return relative_posix(self.absolute, self.root)

    def __fspath__(self) -> str:
        return self.absolute

    def __str__(self) -> str:
        return self.absolute


class PathSandbox:
    """Resolves raw paths against one immutable root."""

    def __init__(self, root: Union[str, "os.PathLike[str]"], label: str = "media folder"):
        self.root = _normalize_root(root)
        self.label = label

    def resolve(self, raw_path: str = "") -> ConfinedPath:
        """
        Resolve *raw_path* against the root.

        Raises :class:`PathRejected` if the normalized result escapes the root
        or the input contains a NUL byte.
        """
        raw_path = raw_path or ""
        if "\x00" in raw_path:
            logger.warning("🚫 Rejected path containing NUL byte")
            raise PathRejected("Access denied: path contains a NUL byte")

        # Leading separators would make os.path.join discard the root.
        relative = raw_path.lstrip("/" + os.sep)
        candidate = os.path.normpath(os.path.join(self.root, relative))

        if not is_inside(self.root, candidate):
            logger.warning("🚫 Rejected path outside root: {!r}", raw_path)
            raise PathRejected(
                f"Access denied: path is outside the configured {self.label}"
            )
        return ConfinedPath(root=self.root, absolute=candidate)

    def contains(self, raw_path: str) -> bool:
        """Non-raising variant of :meth:`resolve`."""
        try:
            self.resolve(raw_path)
        except PathRejected:
            return False
        return True

    def __repr__(self) -> str:
        return f"PathSandbox({self.root!r})"


def resolve_and_confine(root: Union[str, "os.PathLike[str]"], raw_path: str) -> ConfinedPath:
    """Resolve *raw_path* against *root* in one call."""
    return PathSandbox(root).resolve(raw_path)
