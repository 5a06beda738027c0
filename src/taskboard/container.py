from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .config import load_config
from .constants import DOCUMENTS_FILE, DOCUMENTS_LOCK_FILE, EVENTS_FILE, EVENTS_LOCK_FILE
from .engine import BoardService, ProjectService, RankMaintenance, TaskLifecycle, UserDirectory
from .services.attachments import DocumentAttachmentStore
from .services.notifications import EventLogNotifier
from .storage.bootstrap import ensure_state_root
from .storage.file_store import YamlDocumentStore


class TaskboardContainer:
    """Wire the file-backed store, sinks, config and services for one data directory."""

    def __init__(self, data_dir: Path, config: Optional[dict[str, Any]] = None) -> None:
        self.data_dir = data_dir.resolve()
        self.state_root = ensure_state_root(self.data_dir)

        if config is None:
            config, err = load_config(self.data_dir)
            if err:
                logger.warning("Ignoring unreadable config: {}", err)
        self.config = config

        self.store = YamlDocumentStore(self.state_root / DOCUMENTS_FILE, self.state_root / DOCUMENTS_LOCK_FILE)
        self.attachments = DocumentAttachmentStore()
        self.notifier = EventLogNotifier(self.state_root / EVENTS_FILE, self.state_root / EVENTS_LOCK_FILE)

        deps = {"attachments": self.attachments, "notifier": self.notifier, "config": self.config}
        self.users = UserDirectory(self.store, **deps)
        self.projects = ProjectService(self.store, **deps)
        self.boards = BoardService(self.store, **deps)
        self.tasks = TaskLifecycle(self.store, **deps)
        self.ranks = RankMaintenance(self.store, **deps)
