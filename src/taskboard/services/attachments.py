from __future__ import annotations

from typing import Any, Sequence

from loguru import logger

from ..domain.models import Attachment, now_iso
from ..storage.interfaces import AttachmentStore, DocumentTransaction

COLLECTION = "attachments"


class DocumentAttachmentStore(AttachmentStore):
    """Keep attachment reference records in the ``attachments`` collection.

    Upload of the bytes happens outside the core; ``storage_key`` is where the
    uploader is expected to put them.
    """

    def create_attachments(
        self,
        tx: DocumentTransaction,
        actor_id: str,
        organization_id: str,
        files: Sequence[Any],
    ) -> list[dict[str, Any]]:
        refs: list[dict[str, Any]] = []
        for item in files:
            data = item.model_dump() if hasattr(item, "model_dump") else dict(item)
            attachment = Attachment(
                organization_id=organization_id,
                uploaded_by=actor_id,
                filename=str(data.get("filename") or ""),
                content_type=str(data.get("content_type") or "application/octet-stream"),
                size=int(data.get("size") or 0),
            )
            attachment.storage_key = f"{organization_id}/{attachment.id}/{attachment.filename}"
            refs.append(tx.save(COLLECTION, attachment.to_dict()))
        if refs:
            logger.debug("Recorded {} attachment reference(s) for {}", len(refs), actor_id)
        return refs

    def delete_attachments(self, tx: DocumentTransaction, refs: Sequence[str]) -> int:
        if not refs:
            return 0
        return tx.update_many(
            COLLECTION,
            {"id": {"$in": list(refs)}, "deleted_at": None},
            {"deleted_at": now_iso()},
        )
