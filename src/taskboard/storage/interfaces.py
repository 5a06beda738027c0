from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, Optional, Sequence, TypeVar

T = TypeVar("T")

Filter = dict[str, Any]
Sort = Sequence[tuple[str, int]]


class DocumentTransaction(ABC):
    """Handle passed through every core operation.

    Reads observe the writes already staged in the same transaction.
    """

    @abstractmethod
    def find_one(self, collection: str, filter: Optional[Filter] = None) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def save(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        """Insert *doc*, or replace the document with the same ``id``."""
        raise NotImplementedError

    @abstractmethod
    def update_one(self, collection: str, filter: Filter, patch: dict[str, Any]) -> bool:
        raise NotImplementedError

    @abstractmethod
    def update_many(self, collection: str, filter: Filter, patch: dict[str, Any]) -> int:
        raise NotImplementedError

    @abstractmethod
    def delete_one(self, collection: str, filter: Filter) -> bool:
        raise NotImplementedError


class DocumentGateway(ABC):
    @abstractmethod
    def transaction(self) -> AbstractContextManager[DocumentTransaction]:
        """Open a unit of work; staged writes commit only if the block exits cleanly."""
        raise NotImplementedError

    def with_transaction(self, fn: Callable[[DocumentTransaction], T]) -> T:
        with self.transaction() as tx:
            return fn(tx)


class AttachmentStore(ABC):
    """Records attachment references; the bytes live elsewhere."""

    @abstractmethod
    def create_attachments(
        self,
        tx: DocumentTransaction,
        actor_id: str,
        organization_id: str,
        files: Sequence[Any],
    ) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def delete_attachments(self, tx: DocumentTransaction, refs: Sequence[str]) -> int:
        raise NotImplementedError


class NotificationSink(ABC):
    @abstractmethod
    def notify(self, user_ids: Sequence[str], event: dict[str, Any]) -> None:
        raise NotImplementedError
