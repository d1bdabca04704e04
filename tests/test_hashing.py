from __future__ import annotations

import base64
import hashlib
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from s3compare.utils.hashing import (
    InvalidPartLayout,
    SizeMismatch,
    composite_checksum,
    file_checksum,
    sha256_base64,
)

DATA = bytes(range(256)) * 41  # 10496 bytes


def _expected_composite(data: bytes, parts: list[int]) -> str:
    digests = b""
    offset = 0
    for size in parts:
        digests += hashlib.sha256(data[offset : offset + size]).digest()
        offset += size
    return base64.b64encode(hashlib.sha256(digests).digest()).decode("ascii")


def test_whole_file_checksum_independent_of_chunking(tmp_path: Path) -> None:
    path = tmp_path / "blob.bin"
    path.write_bytes(DATA)
    expected = base64.b64encode(hashlib.sha256(DATA).digest()).decode("ascii")
    assert sha256_base64(DATA) == expected
    for chunk_size in (1, 7, 1024, 1 << 20):
        assert file_checksum(path, chunk_size=chunk_size) == expected


def test_empty_file_checksum(tmp_path: Path) -> None:
    path = tmp_path / "empty"
    path.write_bytes(b"")
    assert file_checksum(path) == "47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU="


def test_multipart_checksum_is_hash_of_part_hashes(tmp_path: Path) -> None:
    parts = [4096, 4096, 2304]
    path = tmp_path / "multi.bin"
    path.write_bytes(DATA)
    expected = _expected_composite(DATA, parts)
    assert composite_checksum(DATA, parts) == expected
    for chunk_size in (3, 1000, 8192):
        assert file_checksum(path, parts, chunk_size=chunk_size) == expected
    assert expected != sha256_base64(DATA)


def test_multipart_checksum_depends_on_every_byte_and_part_order(tmp_path: Path) -> None:
    parts = [5, 5]
    data = b"helloworld"
    baseline = composite_checksum(data, parts)

    altered = bytearray(data)
    altered[7] ^= 0x01
    assert composite_checksum(bytes(altered), parts) != baseline

    # same bytes, different declared layout
    assert composite_checksum(data, [3, 7]) != baseline
    swapped = data[5:] + data[:5]
    assert composite_checksum(swapped, parts) != baseline


def test_size_mismatch_is_signalled(tmp_path: Path) -> None:
    path = tmp_path / "short.bin"
    path.write_bytes(b"0123456789")
    with pytest.raises(SizeMismatch) as excinfo:
        file_checksum(path, [5, 6])
    assert excinfo.value.expected == 11
    assert excinfo.value.actual == 10
    with pytest.raises(SizeMismatch):
        composite_checksum(b"0123456789", [5, 4])


@pytest.mark.parametrize("parts", [[], [5, 0, 5], [11, -1]])
def test_invalid_part_layout_fails_fast(tmp_path: Path, parts: list[int]) -> None:
    path = tmp_path / "ten.bin"
    path.write_bytes(b"0123456789")
    with pytest.raises(InvalidPartLayout):
        file_checksum(path, parts)
    with pytest.raises(InvalidPartLayout):
        composite_checksum(b"0123456789", parts)


def test_missing_file_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        file_checksum(tmp_path / "nope")
