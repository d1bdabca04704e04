from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONCURRENCY = 32


@dataclass
class S3Config:
    region: str = "us-east-1"
    endpoint: str = ""
    profile: str = ""
    connect_timeout: int = 5
    read_timeout: int = 60
    max_attempts: int = 3
    page_size: int = 1000
    max_parts: int = 1000


@dataclass
class CompareConfig:
    concurrency: int = DEFAULT_CONCURRENCY
    chunk_size_kb: int = 8192

    @property
    def chunk_size(self) -> int:
        return max(1, self.chunk_size_kb) * 1024


@dataclass
class JournalConfig:
    backend: str = "file"
    dir: Optional[Path] = None
    encrypt: bool = False
    key_env: str = "S3COMPARE_JOURNAL_KEY"
    key_path: str = ""


@dataclass
class ObservabilityConfig:
    log_interval_sec: int = 30


@dataclass
class LoggingConfig:
    dir: Optional[Path] = None
    file_name: str = "s3compare.log"
    max_mb: int = 20
    backup_count: int = 5
    json: bool = False
    to_console: bool = True
    timezone: str = "local"


@dataclass
class Config:
    log_level: str = "INFO"
    s3: S3Config = field(default_factory=S3Config)
    compare: CompareConfig = field(default_factory=CompareConfig)
    journal: JournalConfig = field(default_factory=JournalConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_config() -> Config:
    return Config()


def load_config(path: str | Path) -> Config:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("config root must be a mapping")
    base_dir = config_path.resolve().parent

    s3_raw = _as_dict(raw.get("s3"))
    s3 = S3Config(
        region=str(s3_raw.get("region") or "us-east-1"),
        endpoint=str(s3_raw.get("endpoint") or ""),
        profile=str(s3_raw.get("profile") or ""),
        connect_timeout=int(s3_raw.get("connect_timeout", 5)),
        read_timeout=int(s3_raw.get("read_timeout", 60)),
        max_attempts=int(s3_raw.get("max_attempts", 3)),
        page_size=int(s3_raw.get("page_size", 1000)),
        max_parts=int(s3_raw.get("max_parts", 1000)),
    )

    compare_raw = _as_dict(raw.get("compare"))
    compare = CompareConfig(
        concurrency=_positive(
            compare_raw.get("concurrency", DEFAULT_CONCURRENCY), "compare.concurrency"
        ),
        chunk_size_kb=_positive(
            compare_raw.get("chunk_size_kb", 8192), "compare.chunk_size_kb"
        ),
    )

    journal_raw = _as_dict(raw.get("journal"))
    journal = JournalConfig(
        backend=str(journal_raw.get("backend", "file")),
        dir=_resolve_path(journal_raw.get("dir"), base_dir),
        encrypt=bool(journal_raw.get("encrypt", False)),
        key_env=str(journal_raw.get("key_env", "S3COMPARE_JOURNAL_KEY")),
        key_path=str(_resolve_path(journal_raw.get("key_path"), base_dir) or ""),
    )

    observability_raw = _as_dict(raw.get("observability"))
    observability = ObservabilityConfig(
        log_interval_sec=int(observability_raw.get("log_interval_sec", 30)),
    )

    logging_raw = _as_dict(raw.get("logging"))
    logging_config = LoggingConfig(
        dir=_resolve_path(logging_raw.get("dir"), base_dir),
        file_name=str(logging_raw.get("file_name", "s3compare.log")),
        max_mb=int(logging_raw.get("max_mb", 20)),
        backup_count=int(logging_raw.get("backup_count", 5)),
        json=bool(logging_raw.get("json", False)),
        to_console=bool(logging_raw.get("to_console", True)),
        timezone=str(logging_raw.get("timezone", "local")),
    )

    return Config(
        log_level=str(raw.get("log_level", "INFO")),
        s3=s3,
        compare=compare,
        journal=journal,
        observability=observability,
        logging=logging_config,
    )


def apply_overrides(
    config: Config,
    *,
    region: Optional[str] = None,
    endpoint: Optional[str] = None,
    profile: Optional[str] = None,
    concurrency: Optional[int] = None,
    journal_backend: Optional[str] = None,
    verbose: bool = False,
) -> Config:
    if region:
        config.s3.region = region
    if endpoint:
        config.s3.endpoint = endpoint
    if profile:
        config.s3.profile = profile
    if concurrency is not None:
        config.compare.concurrency = _positive(concurrency, "--concurrency")
    if journal_backend:
        config.journal.backend = journal_backend
    if verbose:
        config.log_level = "DEBUG"
    return config


def _resolve_path(value: Any, base_dir: Path) -> Optional[Path]:
    if value in (None, ""):
        return None
    path = Path(str(value)).expanduser()
    if path.is_absolute():
        return path
    return base_dir / path


def _positive(value: Any, name: str) -> int:
    number = int(value)
    if number <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return number


def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}
