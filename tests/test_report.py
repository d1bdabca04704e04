from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from s3compare.models import ARTIFACT_KEYS, MismatchDetail, ReconciliationResult
from s3compare.report import (
    log_details,
    log_summary,
    result_json,
    summary_counts,
    write_report,
)


def _result() -> ReconciliationResult:
    result = ReconciliationResult(
        matches={"z.txt", "a.txt"},
        mismatches={"m.bin"},
        missing_checksum={"c.dat"},
        missing_locally={"d.log"},
        missing_on_s3={"e.tmp", "b.tmp"},
        compared_count=5,
    )
    result.mismatch_details["m.bin"] = MismatchDetail("m.bin", "remote=", "local=")
    return result


def test_json_artifact_has_sorted_lists_for_every_category() -> None:
    payload = json.loads(result_json(_result()))
    assert list(payload) == list(ARTIFACT_KEYS)
    assert payload["matches"] == ["a.txt", "z.txt"]
    assert payload["missing_on_s3"] == ["b.tmp", "e.tmp"]
    assert payload["unreadable"] == []


def test_summary_counts() -> None:
    counts = summary_counts(_result())
    assert counts["total"] == 5
    assert counts["matches"] == 2
    assert counts["missing_on_s3"] == 2
    assert counts["unreadable"] == 0


def test_write_report_creates_parent_dirs(tmp_path: Path) -> None:
    out = write_report(_result(), tmp_path / "reports" / "run.json")
    assert json.loads(out.read_text(encoding="utf-8"))["mismatches"] == ["m.bin"]


def test_log_details_lists_both_checksums(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="s3compare.report"):
        log_details(_result(), verbose=False)
        log_summary(_result())
    text = caplog.text
    assert "checksum mismatch: m.bin" in text
    assert "S3   : remote=" in text
    assert "Local: local=" in text
    assert "file found locally that is not on S3: b.tmp" in text
    assert "match: a.txt" not in text
    assert "Matches         : 2" in text


def test_verbose_lists_matches(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="s3compare.report"):
        log_details(_result(), verbose=True)
    assert "match: a.txt" in caplog.text
