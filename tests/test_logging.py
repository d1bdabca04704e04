from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from s3compare.logging_ import NOISY_LOGGERS, JsonFormatter, setup_logging
from s3compare.observability import Observability


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord(
        "s3compare.reconcile", logging.INFO, __file__, 1, message, None, None
    )


def test_json_formatter_lifts_progress_events() -> None:
    formatter = JsonFormatter("run-1")
    metrics = Observability()
    metrics.set_phase("fetching")
    metrics.record_fetch(False)

    captured: list[str] = []

    class _Logger:
        def info(self, message: str) -> None:
            captured.append(message)

    metrics.maybe_log(_Logger(), force=True)
    payload = json.loads(formatter.format(_record(captured[0])))

    assert payload["event"] == "progress"
    assert payload["run_id"] == "run-1"
    assert payload["component"] == "s3compare.reconcile"
    assert payload["meta"]["phase"] == "fetching"
    assert payload["meta"]["counters"]["fetch.unavailable_total"] == 1


def test_json_formatter_plain_message() -> None:
    payload = json.loads(
        JsonFormatter("r", include_run_id=False).format(_record("listing objects"))
    )
    assert payload["event"] == "listing objects"
    assert "run_id" not in payload


def test_setup_logging_writes_rotating_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    try:
        run_id = setup_logging(
            "DEBUG",
            log_dir=tmp_path,
            log_file="run.log",
            use_json=True,
            to_console=False,
            run_id="abc",
        )
        logging.getLogger("s3compare.test").info("hello")
        assert logging.getLogger("botocore").level == logging.DEBUG
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)

    assert run_id == "abc"
    line = (tmp_path / "run.log").read_text(encoding="utf-8").splitlines()[-1]
    assert json.loads(line)["event"] == "hello"
