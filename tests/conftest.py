from __future__ import annotations

from typing import Any

import pytest

from taskboard.storage.documents import MemoryDocumentStore
from taskboard.testing import RecordingNotifier, World, build_world


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config() -> dict[str, Any]:
    return {"limits": {"max_task_attachments": 3}, "pagination": {"default_limit": 20, "max_limit": 50}}


@pytest.fixture
def world(store: MemoryDocumentStore, notifier: RecordingNotifier, config: dict[str, Any]) -> World:
    return build_world(store, notifier, config)
