from __future__ import annotations

import re
from typing import Optional

from ..errors import IssueSequenceCorrupted
from ..storage.interfaces import DocumentTransaction
from .models import Project

ISSUE_KEY_RE = re.compile(r"^(?P<prefix>[A-Z0-9]+)-(?P<number>\d+)$")


def parse_issue_key(issue_key: object) -> Optional[tuple[str, int]]:
    """Split ``ABC-12`` into ``("ABC", 12)``; None when the key does not parse."""
    if not isinstance(issue_key, str):
        return None
    match = ISSUE_KEY_RE.match(issue_key)
    if not match:
        return None
    return match.group("prefix"), int(match.group("number"))


class IssueKeySequencer:
    """Allocate ``{PROJECT_KEY}-{N}`` identifiers.

    Must be called with the same transaction that inserts the task, so the
    read of the newest task and the insert are serialized together.
    """

    @staticmethod
    def next(tx: DocumentTransaction, project: Project) -> str:
        latest = tx.find(
            "tasks",
            {"project_id": project.id},
            sort=[("created_at", -1)],
            limit=1,
        )
        if not latest:
            return f"{project.key}-1"
        issue_key = latest[0].get("issue_key")
        parsed = parse_issue_key(issue_key)
        if parsed is None:
            raise IssueSequenceCorrupted(project.id, issue_key)
        return f"{project.key}-{parsed[1] + 1}"
