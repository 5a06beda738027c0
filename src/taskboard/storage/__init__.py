from .documents import MemoryDocumentStore, SnapshotTransaction
from .file_store import YamlDocumentStore
from .interfaces import AttachmentStore, DocumentGateway, DocumentTransaction, NotificationSink

__all__ = [
    "AttachmentStore",
    "DocumentGateway",
    "DocumentTransaction",
    "MemoryDocumentStore",
    "NotificationSink",
    "SnapshotTransaction",
    "YamlDocumentStore",
]
