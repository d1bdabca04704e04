from __future__ import annotations

import base64
import hashlib
import os
from typing import BinaryIO, Optional, Sequence

DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024


class SizeMismatch(ValueError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"part sizes sum to {expected} bytes, file has {actual}")
        self.expected = expected
        self.actual = actual


class InvalidPartLayout(ValueError):
    pass


def sha256_base64(data: bytes) -> str:
    return _b64(hashlib.sha256(data).digest())


def composite_checksum(data: bytes, part_sizes: Sequence[int]) -> str:
    validate_part_sizes(part_sizes)
    total = sum(part_sizes)
    if total != len(data):
        raise SizeMismatch(total, len(data))
    combined = hashlib.sha256()
    offset = 0
    for size in part_sizes:
        combined.update(hashlib.sha256(data[offset : offset + size]).digest())
        offset += size
    return _b64(combined.digest())


def file_checksum(
    path: str | os.PathLike,
    part_sizes: Optional[Sequence[int]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Checksum of a local file as the object store reports it.

    Without ``part_sizes`` this is base64(SHA256(file)). With them it is the
    multipart form: base64(SHA256(SHA256(part1) + ... + SHA256(partN))), each
    part digest taken over exactly the recorded byte range. The file is streamed
    in ``chunk_size`` reads, so the result does not depend on chunking.
    """
    chunk_size = max(1, int(chunk_size))
    if part_sizes is None:
        with open(path, "rb") as f:
            digest = hashlib.sha256()
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
        return _b64(digest.digest())

    validate_part_sizes(part_sizes)
    total = sum(part_sizes)
    with open(path, "rb") as f:
        actual = os.fstat(f.fileno()).st_size
        if total != actual:
            raise SizeMismatch(total, actual)
        combined = hashlib.sha256()
        for size in part_sizes:
            combined.update(_hash_range(f, size, chunk_size, total))
        if f.read(1):
            raise SizeMismatch(total, os.fstat(f.fileno()).st_size)
    return _b64(combined.digest())


def validate_part_sizes(part_sizes: Sequence[int]) -> None:
    if not part_sizes:
        raise InvalidPartLayout("empty part size list")
    for index, size in enumerate(part_sizes, start=1):
        if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
            raise InvalidPartLayout(f"part {index} has invalid size {size!r}")


def _hash_range(f: BinaryIO, size: int, chunk_size: int, expected_total: int) -> bytes:
    digest = hashlib.sha256()
    remaining = size
    while remaining > 0:
        chunk = f.read(min(chunk_size, remaining))
        if not chunk:
            # file shrank while being read
            raise SizeMismatch(expected_total, f.tell())
        digest.update(chunk)
        remaining -= len(chunk)
    return digest.digest()


def _b64(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")
