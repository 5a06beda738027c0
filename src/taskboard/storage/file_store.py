"""YAML-file document store.

All collections live in a single ``documents.yaml`` inside the
``.taskboard/`` state directory.  A transaction holds a thread lock and an
inter-process file lock from the first read until the commit, loads the file,
and writes it back atomically (write-tmp-then-replace) only if the block
succeeded and staged at least one write.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from filelock import FileLock, Timeout
from loguru import logger

from ..constants import COLLECTIONS, LOCK_TIMEOUT, SCHEMA_VERSION
from ..errors import InternalError
from ..io_utils import _atomic_write_yaml, _load_data_with_error
from .documents import SnapshotTransaction
from .interfaces import DocumentGateway


class YamlDocumentStore(DocumentGateway):
    def __init__(self, path: Path, lock_path: Path, *, timeout: float = LOCK_TIMEOUT) -> None:
        self._path = path
        self._lock = FileLock(str(lock_path), timeout=timeout)
        self._thread_lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, list[dict[str, Any]]]:
        raw, err = _load_data_with_error(self._path, {})
        if err:
            # Refuse to continue rather than overwrite a file we could not read.
            raise InternalError(f"Cannot read document store: {err}")
        collections: dict[str, list[dict[str, Any]]] = {name: [] for name in COLLECTIONS}
        for name, items in (raw.get("collections") or {}).items():
            if isinstance(items, list):
                collections[str(name)] = [item for item in items if isinstance(item, dict)]
        return collections

    def _save(self, collections: dict[str, list[dict[str, Any]]]) -> None:
        _atomic_write_yaml(self._path, {"schema_version": SCHEMA_VERSION, "collections": collections})

    @contextmanager
    def transaction(self) -> Iterator[SnapshotTransaction]:
        with self._thread_lock:
            try:
                self._lock.acquire()
            except Timeout as exc:
                raise InternalError(f"Timed out waiting for {self._lock.lock_file}") from exc
            try:
                tx = SnapshotTransaction(self._load())
                yield tx
                if tx.dirty:
                    self._save(tx.collections)
                    logger.debug("Committed document store {}", self._path.name)
            finally:
                self._lock.release()
