from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict

from .models import ReconciliationResult

logger = logging.getLogger(__name__)


def summary_counts(result: ReconciliationResult) -> Dict[str, int]:
    return {
        "total": result.compared_count,
        "matches": len(result.matches),
        "mismatches": len(result.mismatches),
        "missing_checksum": len(result.missing_checksum),
        "missing_locally": len(result.missing_locally),
        "missing_on_s3": len(result.missing_on_s3),
        "unreadable": len(result.unreadable),
    }


def log_details(result: ReconciliationResult, verbose: bool = False) -> None:
    for path in sorted(result.missing_on_s3):
        logger.warning("file found locally that is not on S3: %s", path)
    for key in sorted(result.missing_checksum):
        reason = result.checksum_errors.get(key, "no checksum")
        logger.warning("missing SHA256 checksum (%s): %s", reason, key)
    for key in sorted(result.missing_locally):
        logger.warning("file on S3 doesn't exist locally: %s", key)
    for key in sorted(result.unreadable):
        logger.warning(
            "could not read local file (%s): %s", result.read_errors.get(key), key
        )
    for key in sorted(result.mismatches):
        detail = result.mismatch_details.get(key)
        logger.warning("checksum mismatch: %s", key)
        if detail is not None:
            logger.warning("    S3   : %s", detail.remote_checksum)
            logger.warning("    Local: %s", detail.local_checksum)
    if verbose:
        for key in sorted(result.matches):
            logger.info("match: %s", key)


def log_summary(result: ReconciliationResult) -> None:
    counts = summary_counts(result)
    logger.info("done comparing sums")
    logger.info("    Total           : %d", counts["total"])
    logger.info("    Matches         : %d", counts["matches"])
    logger.info("    Mismatches      : %d", counts["mismatches"])
    logger.info("    Missing Checksum: %d", counts["missing_checksum"])
    logger.info("    Missing Locally : %d", counts["missing_locally"])
    logger.info("    Missing on S3   : %d", counts["missing_on_s3"])
    logger.info("    Unreadable      : %d", counts["unreadable"])


def result_json(result: ReconciliationResult, indent: int | None = 2) -> str:
    return json.dumps(result.to_dict(), ensure_ascii=False, indent=indent)


def write_report(result: ReconciliationResult, path: str | Path) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result_json(result) + "\n", encoding="utf-8")
    logger.info("report saved to %s", output_path)
    return output_path
