"""In-memory document collections with snapshot transactions.

A transaction works on a deep copy of every collection.  The copy replaces
the committed state only when the ``with`` block exits without raising, so
an exception anywhere in an operation discards all of its writes.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .interfaces import DocumentGateway, DocumentTransaction, Filter, Sort


def _matches(doc: dict[str, Any], filter: Optional[Filter]) -> bool:
    for field_name, expected in (filter or {}).items():
        actual = doc.get(field_name)
        if isinstance(expected, dict):
            if "$ne" in expected and actual == expected["$ne"]:
                return False
            if "$in" in expected and actual not in expected["$in"]:
                return False
            if "$nin" in expected and actual in expected["$nin"]:
                return False
            continue
        if actual != expected:
            return False
    return True


def sort_value(value: Any) -> tuple[int, Any]:
    # None sorts below every value; mixed scalars compare as strings.
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    return (2, str(value))


def sort_documents(docs: list[dict[str, Any]], sort: Optional[Sort]) -> list[dict[str, Any]]:
    """Stable multi-key sort; equal keys keep insertion order for ascending fields."""
    out = list(docs)
    for field_name, direction in reversed(list(sort or [])):
        out.sort(key=lambda d: sort_value(d.get(field_name)), reverse=direction < 0)
    return out


class SnapshotTransaction(DocumentTransaction):
    def __init__(self, collections: dict[str, list[dict[str, Any]]]) -> None:
        self.collections = collections
        self.dirty = False

    def _docs(self, collection: str) -> list[dict[str, Any]]:
        return self.collections.setdefault(collection, [])

    # -- reads ---------------------------------------------------------------

    def find_one(self, collection: str, filter: Optional[Filter] = None) -> Optional[dict[str, Any]]:
        for doc in self._docs(collection):
            if _matches(doc, filter):
                return copy.deepcopy(doc)
        return None

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        docs = [doc for doc in self._docs(collection) if _matches(doc, filter)]
        if sort:
            # Reverse first so that, under a descending sort, ties favour the later insert.
            if all(direction < 0 for _, direction in sort):
                docs.reverse()
            docs = sort_documents(docs, sort)
        docs = docs[max(skip, 0):]
        if limit is not None:
            docs = docs[:limit]
        return [copy.deepcopy(doc) for doc in docs]

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        return sum(1 for doc in self._docs(collection) if _matches(doc, filter))

    # -- writes --------------------------------------------------------------

    def save(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        if not doc.get("id"):
            raise ValueError(f"Document saved to {collection} has no id")
        stored = copy.deepcopy(doc)
        docs = self._docs(collection)
        for idx, existing in enumerate(docs):
            if existing.get("id") == stored["id"]:
                docs[idx] = stored
                break
        else:
            docs.append(stored)
        self.dirty = True
        return copy.deepcopy(stored)

    def update_one(self, collection: str, filter: Filter, patch: dict[str, Any]) -> bool:
        for doc in self._docs(collection):
            if _matches(doc, filter):
                doc.update(copy.deepcopy(patch))
                self.dirty = True
                return True
        return False

    def update_many(self, collection: str, filter: Filter, patch: dict[str, Any]) -> int:
        updated = 0
        for doc in self._docs(collection):
            if _matches(doc, filter):
                doc.update(copy.deepcopy(patch))
                updated += 1
        if updated:
            self.dirty = True
        return updated

    def delete_one(self, collection: str, filter: Filter) -> bool:
        docs = self._docs(collection)
        for idx, doc in enumerate(docs):
            if _matches(doc, filter):
                del docs[idx]
                self.dirty = True
                return True
        return False


class MemoryDocumentStore(DocumentGateway):
    """Process-local gateway; one transaction at a time."""

    def __init__(self, initial: Optional[dict[str, list[dict[str, Any]]]] = None) -> None:
        self._data: dict[str, list[dict[str, Any]]] = copy.deepcopy(initial or {})
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[SnapshotTransaction]:
        with self._lock:
            tx = SnapshotTransaction(copy.deepcopy(self._data))
            yield tx
            if tx.dirty:
                self._data = tx.collections

    def dump(self) -> dict[str, list[dict[str, Any]]]:
        with self._lock:
            return copy.deepcopy(self._data)
