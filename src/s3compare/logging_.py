from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, tzinfo
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")
LOCAL_TZ_NAMES = {"", "local", "system", "default"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; progress snapshots are lifted into ``meta``."""

    def __init__(
        self,
        run_id: str,
        tz: Optional[tzinfo] = None,
        include_run_id: bool = True,
    ) -> None:
        super().__init__()
        self._run_id = run_id if include_run_id else None
        self._tz = tz

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        snapshot = _json_object(message)
        payload: Dict[str, Any] = {
            "ts": _timestamp(record.created, self._tz),
            "level": record.levelname,
            "component": record.name,
        }
        if self._run_id:
            payload["run_id"] = self._run_id
        if snapshot is None:
            payload["event"] = message
        else:
            payload["event"] = snapshot.get("event") or "snapshot"
            payload["meta"] = snapshot
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


class TextFormatter(logging.Formatter):
    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        super().__init__()
        self._tz = tz

    def format(self, record: logging.LogRecord) -> str:
        line = "{} {:<7} {}".format(
            _timestamp(record.created, self._tz), record.levelname, record.getMessage()
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    *,
    log_dir: Optional[Path] = None,
    log_file: str = "s3compare.log",
    max_mb: int = 20,
    backup_count: int = 5,
    use_json: bool = False,
    to_console: bool = True,
    timezone_name: str = "local",
    include_run_id: bool = True,
    run_id: Optional[str] = None,
) -> str:
    run_id = run_id or uuid.uuid4().hex
    tz = _resolve_tz(timezone_name)
    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter(run_id, tz=tz, include_run_id=include_run_id)
    else:
        formatter = TextFormatter(tz=tz)

    handlers: List[logging.Handler] = []
    if log_dir:
        handlers.append(_rotating_handler(log_dir / log_file, max_mb, backup_count))
    # stdout carries the JSON report, never log lines
    if to_console or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    quiet_third_party(root.level)
    return run_id


def quiet_third_party(root_level: int) -> None:
    """SDK wire logging only shows up when the run itself is at DEBUG."""
    level = logging.DEBUG if root_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def _rotating_handler(path: Path, max_mb: int, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=max(1, int(max_mb)) * 1024 * 1024,
        backupCount=max(1, int(backup_count)),
        encoding="utf-8",
    )


def _json_object(message: str) -> Optional[Dict[str, Any]]:
    if not message.startswith("{"):
        return None
    try:
        parsed = json.loads(message)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _resolve_tz(name: str) -> Optional[tzinfo]:
    if str(name or "").lower() in LOCAL_TZ_NAMES:
        return None
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError):
        return None


def _timestamp(epoch_seconds: float, tz: Optional[tzinfo]) -> str:
    if tz is None:
        moment = datetime.fromtimestamp(epoch_seconds).astimezone()
    else:
        moment = datetime.fromtimestamp(epoch_seconds, tz=tz)
    return moment.isoformat(timespec="seconds")
