from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

from .observability import Observability

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class WorkerError(RuntimeError):
    def __init__(self, item: Any, exc: BaseException) -> None:
        super().__init__(f"worker failed on {item!r}: {exc}")
        self.item = item
        self.exc = exc


class WorkerPool(Generic[T]):
    """Fixed number of threads draining a bounded queue.

    ``submit`` blocks while the queue is full, so at most
    ``workers + queue_size`` items are in flight at any time.
    """

    def __init__(
        self,
        handler: Callable[[T], None],
        workers: int = 32,
        queue_size: Optional[int] = None,
        name: str = "worker",
        metrics: Optional[Observability] = None,
    ) -> None:
        self._handler = handler
        self._workers = max(1, int(workers))
        size = queue_size if queue_size is not None else self._workers * 2
        self._queue: queue.Queue[Any] = queue.Queue(maxsize=max(1, int(size)))
        self._name = name
        self._metrics = metrics
        self._threads: List[threading.Thread] = []
        self._errors: List[Tuple[Any, BaseException]] = []
        self._errors_lock = threading.Lock()
        self._abort = threading.Event()
        self._closed = False

    @property
    def workers(self) -> int:
        return self._workers

    def start(self) -> None:
        for index in range(self._workers):
            thread = threading.Thread(
                target=self._run, name=f"{self._name}-{index}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

    def submit(self, item: T) -> None:
        if self._closed:
            raise RuntimeError("pool is closed")
        if self._abort.is_set():
            self._raise_first_error()
        self._queue.put(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join()
        self._raise_first_error()

    def __enter__(self) -> "WorkerPool[T]":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        # caller is already failing: stop workers without masking its error
        self._abort.set()
        self._drain()
        self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                if self._abort.is_set():
                    continue
                self._handler(item)
            except Exception as exc:
                logger.exception("%s failed on %r", self._name, item)
                with self._errors_lock:
                    self._errors.append((item, exc))
                self._abort.set()
            finally:
                self._queue.task_done()
                if self._metrics:
                    self._metrics.set_gauge(
                        f"{self._name}.queue_depth", self._queue.qsize()
                    )

    def _drain(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()

    def _raise_first_error(self) -> None:
        with self._errors_lock:
            if not self._errors:
                return
            item, exc = self._errors[0]
        raise WorkerError(item, exc) from exc
