from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from .normalize import key_in_prefix, local_path_for_key, prefix_base, relative_path

logger = logging.getLogger(__name__)


def list_local_files(root: str | os.PathLike, prefix: str = "") -> List[str]:
    """Relative, "/"-separated paths of files under ``root`` matching ``prefix``.

    ``prefix`` follows object-store semantics: "logs/2024" matches both
    "logs/2024/a.txt" and "logs/2024-01.txt". The walk starts at the deepest
    directory the prefix names.
    """
    root_path = Path(root)
    base = prefix_base(prefix)
    start = local_path_for_key(root_path, base) if base else root_path
    if start is None:
        logger.warning("prefix %r names no local directory", prefix)
        return []
    if not start.is_dir():
        logger.warning("local directory not found: %s", start)
        return []

    out: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(start):
        for name in filenames:
            full = os.path.join(dirpath, name)
            if not os.path.isfile(full):
                continue
            rel = relative_path(full, root_path)
            if key_in_prefix(rel, prefix):
                out.append(rel)
    out.sort()
    logger.info("scanned local files: %d under %s", len(out), start)
    return out
