"""
mediashelf - Shared Utilities

Common helpers used across multiple modules to avoid duplication.
"""

import os
from urllib.parse import quote

# Characters left alone by JavaScript's encodeURIComponent besides
# the ones urllib.parse.quote never escapes.
_URI_COMPONENT_SAFE = "!~*'()"


def encode_uri_component(value: str) -> str:
    """
    Percent-encode *value* so it can be embedded as a single query value.

    Slashes are encoded too, so a whole relative path travels as one
    component.
    """
    return quote(value, safe=_URI_COMPONENT_SAFE)


def relative_posix(path: str, root: str) -> str:
    """
    Return *path* relative to *root* with ``/`` separators.

    The root itself maps to the empty string rather than ``"."``.
    """
    rel = os.path.relpath(path, root)
    if rel == os.curdir:
        return ""
    return rel.replace(os.sep, "/")
