"""Record sinks: where finished :class:`PageRecord` rows are written.

Workers push records in completion order; both sinks are safe to share
between threads.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import IO, Any, Protocol, runtime_checkable

from markdown_maker.items import PageRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class RecordSink(Protocol):
    """Anything that accepts finished records."""

    def push(self, record: PageRecord) -> None:
        ...


class JsonlDataset:
    """Stream records to a JSON Lines file, one row per URL.

    Usage::

        with JsonlDataset("out/dataset.jsonl") as dataset:
            dataset.push(record)
    """

    def __init__(self, path: str | Path, *, append: bool = False) -> None:
        self.path = Path(path)
        self._mode = "a" if append else "w"
        self._handle: IO[str] | None = None
        self._lock = threading.Lock()
        self.count = 0

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open(self._mode, encoding="utf-8")
        logger.info("Dataset open → %s", self.path)

    def close(self) -> None:
        with self._lock:
            if self._handle:
                self._handle.close()
                self._handle = None
        logger.info("Dataset: wrote %d record(s) to %s", self.count, self.path)

    def __enter__(self) -> JsonlDataset:
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def push(self, record: PageRecord) -> None:
        line = json.dumps(record.to_dataset_row(), ensure_ascii=False)
        with self._lock:
            if self._handle is None:
                raise RuntimeError(f"Dataset {self.path} is not open")
            self._handle.write(line + "\n")
            self._handle.flush()
            self.count += 1


class MemoryDataset:
    """Keep records in memory (used by :func:`~markdown_maker.runner.convert_batch`)."""

    def __init__(self) -> None:
        self.records: list[PageRecord] = []
        self._lock = threading.Lock()

    def push(self, record: PageRecord) -> None:
        with self._lock:
            self.records.append(record)
