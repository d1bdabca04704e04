from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from s3compare.config import apply_overrides, default_config, load_config


def test_shipped_config_loads() -> None:
    config = load_config(PROJECT_ROOT / "configs" / "config.yaml")
    assert config.compare.concurrency > 0
    assert config.journal.backend in ("file", "memory")
    assert config.s3.page_size > 0


def test_sections_and_relative_paths(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "log_level: WARNING",
                "s3:",
                "  region: eu-west-1",
                "  endpoint: http://localhost:9000",
                "  max_parts: 50",
                "compare:",
                "  concurrency: 8",
                "  chunk_size_kb: 64",
                "journal:",
                "  backend: memory",
                "  dir: spill",
                "logging:",
                "  dir: logs",
                "  json: true",
            ]
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.log_level == "WARNING"
    assert config.s3.region == "eu-west-1"
    assert config.s3.endpoint == "http://localhost:9000"
    assert config.s3.max_parts == 50
    assert config.s3.page_size == 1000
    assert config.compare.concurrency == 8
    assert config.compare.chunk_size == 64 * 1024
    assert config.journal.backend == "memory"
    assert config.journal.dir == tmp_path.resolve() / "spill"
    assert config.logging.dir == tmp_path.resolve() / "logs"
    assert config.logging.json is True


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == default_config()


def test_invalid_configs_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(listing)

    zero = tmp_path / "zero.yaml"
    zero.write_text("compare:\n  concurrency: 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(zero)


def test_cli_overrides_win() -> None:
    config = apply_overrides(
        default_config(),
        region="ap-south-1",
        endpoint="https://s3.example.test",
        profile="backup",
        concurrency=5,
        journal_backend="memory",
        verbose=True,
    )
    assert config.s3.region == "ap-south-1"
    assert config.s3.endpoint == "https://s3.example.test"
    assert config.s3.profile == "backup"
    assert config.compare.concurrency == 5
    assert config.journal.backend == "memory"
    assert config.log_level == "DEBUG"

    untouched = apply_overrides(default_config(), region="", concurrency=None)
    assert untouched == default_config()
    with pytest.raises(ValueError):
        apply_overrides(default_config(), concurrency=-1)
