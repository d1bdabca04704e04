from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Sequence

# Only the platform's own separators; "\" is an ordinary filename character on POSIX.
LOCAL_SEPARATORS = tuple(sep for sep in (os.sep, os.altsep) if sep)

UNMAPPABLE_SEGMENTS = ("", ".", "..")


def normalize_separators(
    path: str, separators: Sequence[str] = LOCAL_SEPARATORS
) -> str:
    for sep in separators:
        if sep != "/":
            path = path.replace(sep, "/")
    return path


def relative_path(
    path: str | os.PathLike,
    root: str | os.PathLike,
    separators: Sequence[str] = LOCAL_SEPARATORS,
) -> str:
    # Inputs are trusted: no ".." or "." collapsing.
    path_str = os.fspath(path)
    root_str = os.fspath(root)
    rel = path_str[len(root_str):] if path_str.startswith(root_str) else path_str
    if rel.startswith(tuple(separators)):
        rel = rel[1:]
    return normalize_separators(rel, separators)


def local_path_for_key(
    root: str | os.PathLike,
    key: str,
    separators: Sequence[str] = LOCAL_SEPARATORS,
) -> Optional[Path]:
    """Path whose ``relative_path`` is exactly ``key``, or None if none can exist.

    Keys with empty, "." or ".." segments, or with a segment holding a local
    separator, would resolve to a file listed under a different key.
    """
    segments = key.split("/")
    for segment in segments:
        if segment in UNMAPPABLE_SEGMENTS:
            return None
        if any(sep in segment for sep in separators):
            return None
    return Path(root).joinpath(*segments)


def key_in_prefix(key: str, prefix: str) -> bool:
    if not prefix:
        return True
    return key.startswith(prefix)


def prefix_base(prefix: str) -> str:
    """Directory part of an object-store prefix ("a/b/c" -> "a/b", "a/b/" -> "a/b")."""
    base, _, _ = prefix.rpartition("/")
    return base
