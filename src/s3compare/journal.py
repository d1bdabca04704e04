from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import IO, Iterator, List, Optional

from .config import JournalConfig
from .models import ChecksumRecord
from .utils.crypto import (
    decrypt_text,
    encrypt_text,
    generate_key,
    load_key,
    unwrap_encrypted,
    validate_key,
    wrap_encrypted,
)

logger = logging.getLogger(__name__)


class JournalStateError(RuntimeError):
    pass


class ChecksumJournal:
    """Append-only record spill, sealed once and then read exactly once."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sealed = False
        self._consumed = False
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, record: ChecksumRecord) -> None:
        with self._lock:
            if self._sealed:
                raise JournalStateError("journal is sealed")
            self._write(record)
            self._count += 1

    def seal(self) -> None:
        with self._lock:
            if self._sealed:
                return
            self._finish_writes()
            self._sealed = True

    def __iter__(self) -> Iterator[ChecksumRecord]:
        with self._lock:
            if not self._sealed:
                raise JournalStateError("journal must be sealed before reading")
            if self._consumed:
                raise JournalStateError("journal has already been read")
            self._consumed = True
        return self._read()

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _write(self, record: ChecksumRecord) -> None:
        raise NotImplementedError

    def _finish_writes(self) -> None:
        pass

    def _read(self) -> Iterator[ChecksumRecord]:
        raise NotImplementedError


class MemoryJournal(ChecksumJournal):
    def __init__(self) -> None:
        super().__init__()
        self._records: List[ChecksumRecord] = []

    def _write(self, record: ChecksumRecord) -> None:
        self._records.append(record)

    def _read(self) -> Iterator[ChecksumRecord]:
        records, self._records = self._records, []
        yield from records


class FileJournal(ChecksumJournal):
    def __init__(
        self,
        directory: Optional[Path] = None,
        key: Optional[bytes] = None,
    ) -> None:
        super().__init__()
        if directory is not None:
            Path(directory).mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix="s3compare-", suffix=".jsonl", dir=directory
        )
        self.path = Path(name)
        self._key = key
        self._fh: Optional[IO[str]] = os.fdopen(fd, "a", encoding="utf-8")
        logger.debug("checksum journal at %s", self.path)

    def _write(self, record: ChecksumRecord) -> None:
        if self._fh is None:
            raise JournalStateError("journal is closed")
        line = json.dumps(record.to_dict(), separators=(",", ":"))
        if self._key is not None:
            line = wrap_encrypted(encrypt_text(line, self._key))
        self._fh.write(line + "\n")

    def _finish_writes(self) -> None:
        if self._fh is None:
            return
        self._fh.flush()
        os.fsync(self._fh.fileno())
        self._fh.close()
        self._fh = None

    def _read(self) -> Iterator[ChecksumRecord]:
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                yield self._decode(line)

    def _decode(self, line: str) -> ChecksumRecord:
        payload = json.loads(line)
        token = unwrap_encrypted(payload)
        if token is not None:
            if self._key is None:
                raise JournalStateError("encrypted journal line but no key")
            payload = json.loads(decrypt_text(token, self._key))
        return ChecksumRecord.from_dict(payload)

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                self._fh.close()
                self._fh = None
            self._sealed = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


def open_journal(config: JournalConfig) -> ChecksumJournal:
    backend = config.backend.strip().lower()
    if backend == "memory":
        return MemoryJournal()
    if backend != "file":
        raise ValueError(f"unknown journal backend: {config.backend}")
    key = None
    if config.encrypt:
        key = load_key(config.key_env, config.key_path)
        if key is None:
            logger.info("no journal key configured, using an ephemeral key")
            key = generate_key()
        validate_key(key)
    return FileJournal(config.dir, key=key)
