"""In-memory wiring for tests and embedders that want the core without files.

:func:`build_world` registers a manager, a member and an outsider in one
organization and creates a project whose board is ready for tasks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .domain.models import Actor
from .engine import BoardService, ProjectService, RankMaintenance, TaskLifecycle, UserDirectory
from .results import Result
from .storage.documents import MemoryDocumentStore
from .storage.interfaces import NotificationSink

ORG = "org-1"


class RecordingNotifier(NotificationSink):
    """Keep every notification in memory, in delivery order."""

    def __init__(self) -> None:
        self.sent: list[tuple[list[str], dict[str, Any]]] = []

    def notify(self, user_ids: Sequence[str], event: dict[str, Any]) -> None:
        self.sent.append((list(user_ids), event))

    def types(self) -> list[str]:
        return [event["type"] for _, event in self.sent]


def ok(result: Result) -> Any:
    """Return the payload of a successful result; fail loudly otherwise."""
    assert result.ok, result.to_dict()
    return result.data


@dataclass
class World:
    store: MemoryDocumentStore
    notifier: RecordingNotifier
    config: dict[str, Any]
    users: UserDirectory
    projects: ProjectService
    boards: BoardService
    tasks: TaskLifecycle
    ranks: RankMaintenance
    manager: Actor
    member: Actor
    outsider: Actor
    project_id: str
    board_id: str


def build_world(
    store: Optional[MemoryDocumentStore] = None,
    notifier: Optional[RecordingNotifier] = None,
    config: Optional[dict[str, Any]] = None,
) -> World:
    store = store if store is not None else MemoryDocumentStore()
    notifier = notifier if notifier is not None else RecordingNotifier()
    config = config if config is not None else {}
    deps = {"notifier": notifier, "config": config}

    users = UserDirectory(store, **deps)
    for user_id, username in (("u-manager", "manny"), ("u-member", "mel"), ("u-outsider", "otto")):
        ok(users.register_user(ORG, {"id": user_id, "username": username, "firstname": username.title()}))

    manager = Actor(id="u-manager", organization_id=ORG)
    projects = ProjectService(store, **deps)
    created = ok(projects.create_project(manager, {"name": "Alpha Core", "key": "abc", "members": ["u-member"]}))
    notifier.sent.clear()

    return World(
        store=store,
        notifier=notifier,
        config=config,
        users=users,
        projects=projects,
        boards=BoardService(store, **deps),
        tasks=TaskLifecycle(store, **deps),
        ranks=RankMaintenance(store, **deps),
        manager=manager,
        member=Actor(id="u-member", organization_id=ORG),
        outsider=Actor(id="u-outsider", organization_id=ORG),
        project_id=created["project"]["id"],
        board_id=created["board"]["id"],
    )
