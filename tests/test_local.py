from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from s3compare.local import list_local_files


def _touch(root: Path, rel: str, data: bytes = b"x") -> None:
    path = root.joinpath(*rel.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def test_lists_files_recursively_with_forward_slashes(tmp_path: Path) -> None:
    for rel in ("a.txt", "dir/b.txt", "dir/sub/c.txt"):
        _touch(tmp_path, rel)
    (tmp_path / "empty_dir").mkdir()
    assert list_local_files(tmp_path) == ["a.txt", "dir/b.txt", "dir/sub/c.txt"]


def test_prefix_uses_string_prefix_semantics(tmp_path: Path) -> None:
    for rel in (
        "logs/2024/a.txt",
        "logs/2024-01.txt",
        "logs/2023/b.txt",
        "other/2024/c.txt",
    ):
        _touch(tmp_path, rel)
    assert list_local_files(tmp_path, "logs/2024") == [
        "logs/2024-01.txt",
        "logs/2024/a.txt",
    ]
    assert list_local_files(tmp_path, "logs/2024/") == ["logs/2024/a.txt"]
    assert list_local_files(tmp_path, "lo") == [
        "logs/2023/b.txt",
        "logs/2024-01.txt",
        "logs/2024/a.txt",
    ]


def test_missing_prefix_directory_yields_nothing(tmp_path: Path) -> None:
    _touch(tmp_path, "a.txt")
    assert list_local_files(tmp_path, "nope/deeper/x") == []
    assert list_local_files(tmp_path / "absent") == []
