from .attachments import DocumentAttachmentStore
from .notifications import EventLogNotifier, NullNotifier

__all__ = ["DocumentAttachmentStore", "EventLogNotifier", "NullNotifier"]
