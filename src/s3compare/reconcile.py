from __future__ import annotations

import logging
import os
import stat
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .journal import ChecksumJournal
from .local import list_local_files
from .models import (
    INVALID_FILE_SIZE,
    INVALID_PART_LAYOUT,
    ChecksumRecord,
    MismatchDetail,
    ReconciliationResult,
    RemoteObject,
)
from .normalize import local_path_for_key
from .observability import Observability
from .pool import WorkerPool
from .remote import S3Inventory
from .utils.hashing import (
    DEFAULT_CHUNK_SIZE,
    InvalidPartLayout,
    SizeMismatch,
    file_checksum,
)

logger = logging.getLogger(__name__)


class Reconciler:
    """Classifies every remote key and local path of one bucket/prefix.

    Phases: complete remote listing, local walk, key-space diff
    (``missing_on_s3``), bounded checksum fetch into the journal, then a
    single pass over the sealed journal hashing local files. The outcome for a
    key never depends on the order in which records or files are processed.
    """

    def __init__(
        self,
        inventory: S3Inventory,
        root: str | os.PathLike,
        prefix: str = "",
        *,
        concurrency: int = 32,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        metrics: Optional[Observability] = None,
    ) -> None:
        self.inventory = inventory
        self.root = Path(root)
        self.prefix = prefix or ""
        self.concurrency = max(1, int(concurrency))
        self.chunk_size = max(1, int(chunk_size))
        self._metrics = metrics
        self._lock = threading.Lock()

    def run(self, journal: ChecksumJournal) -> ReconciliationResult:
        result = ReconciliationResult()

        objects = self.list_remote()
        result.remote_count = len(objects)

        self._phase("scanning")
        local_paths = list_local_files(self.root, self.prefix)
        result.local_count = len(local_paths)
        result.missing_on_s3 = self.diff_local(
            (obj.key for obj in objects), local_paths
        )

        self._phase("fetching")
        self.fetch_checksums(objects, journal)
        journal.seal()

        self._phase("comparing")
        self.compare(journal, result)
        self._phase("done")
        if self._metrics:
            self._metrics.maybe_log(logger, force=True)
        return result

    def list_remote(self) -> List[RemoteObject]:
        self._phase("listing")
        return self.inventory.list_objects(self.prefix)

    def diff_local(
        self, remote_keys: Iterable[str], local_paths: Iterable[str]
    ) -> Set[str]:
        keys = set(remote_keys)
        missing = {path for path in local_paths if path not in keys}
        for path in sorted(missing):
            logger.debug("local file not on S3: %s", path)
        return missing

    def fetch_checksums(
        self, objects: List[RemoteObject], journal: ChecksumJournal
    ) -> None:
        logger.info(
            "fetching checksums for %d objects (%d workers)",
            len(objects),
            self.concurrency,
        )

        def _fetch(obj: RemoteObject) -> None:
            journal.append(self.inventory.fetch_record(obj.key))
            if self._metrics:
                self._metrics.maybe_log(logger)

        with WorkerPool(
            _fetch, workers=self.concurrency, name="fetch", metrics=self._metrics
        ) as pool:
            for obj in objects:
                pool.submit(obj)
        logger.info("fetched %d checksum records", journal.count)

    def compare(self, journal: ChecksumJournal, result: ReconciliationResult) -> None:
        logger.info("calculating and comparing checksums")

        def _compare(record: ChecksumRecord) -> None:
            self.compare_record(record, result)
            if self._metrics:
                self._metrics.maybe_log(logger)

        with WorkerPool(
            _compare, workers=self.concurrency, name="compare", metrics=self._metrics
        ) as pool:
            for record in journal:
                pool.submit(record)
        logger.info("compared %d records", result.compared_count)

    def compare_record(
        self, record: ChecksumRecord, result: ReconciliationResult
    ) -> str:
        key = record.key
        path = local_path_for_key(self.root, key)
        size = 0
        detail: Optional[MismatchDetail] = None
        error: Optional[str] = None
        # unmappable keys cannot name any file the local walk reported
        present = False
        if path is not None:
            try:
                st = path.stat()
                present = stat.S_ISREG(st.st_mode)
                size = st.st_size
            except (FileNotFoundError, NotADirectoryError):
                present = False
            except (OSError, ValueError) as exc:
                present = True
                error = str(exc)

        if not present:
            outcome = "missing_locally"
        elif record.checksum is None:
            outcome = "missing_checksum"
        elif error is not None:
            outcome = "unreadable"
        else:
            try:
                local_sum = file_checksum(path, record.part_sizes, self.chunk_size)
            except SizeMismatch:
                local_sum = INVALID_FILE_SIZE
            except InvalidPartLayout:
                local_sum = INVALID_PART_LAYOUT
            except (OSError, ValueError) as exc:
                local_sum = None
                error = str(exc)
            if local_sum is None:
                outcome = "unreadable"
            elif local_sum == record.checksum:
                outcome = "matches"
            else:
                outcome = "mismatches"
                detail = MismatchDetail(key, record.checksum, local_sum)

        with self._lock:
            getattr(result, outcome).add(key)
            result.compared_count += 1
            if detail is not None:
                result.mismatch_details[key] = detail
            if outcome == "unreadable":
                result.read_errors[key] = error or "unreadable"
            if outcome == "missing_checksum":
                result.checksum_errors[key] = record.error or "no checksum"
        logger.debug("%s: %s", outcome, key)
        if self._metrics:
            read = size if outcome in ("matches", "mismatches") else 0
            self._metrics.record_compare(outcome, read)
        return outcome

    def _phase(self, name: str) -> None:
        if self._metrics:
            self._metrics.set_phase(name)
