from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from ..constants import (
    CONFIG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_TASK_ATTACHMENTS,
    DEFAULT_PAGE_LIMIT,
    DOCUMENTS_FILE,
    EVENTS_FILE,
    MAX_PAGE_LIMIT,
    SCHEMA_VERSION,
    STATE_DIR_NAME,
)
from ..errors import InternalError
from ..io_utils import _atomic_write_yaml, _load_data_with_error


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _needs_archive(base: Path) -> bool:
    documents = base / DOCUMENTS_FILE
    if not documents.exists():
        return False
    data, err = _load_data_with_error(documents, {})
    if err:
        raise InternalError(f"Cannot read document store: {err}")
    try:
        version = int(data.get("schema_version"))
    except (TypeError, ValueError):
        version = None
    return version != SCHEMA_VERSION


def ensure_state_root(data_dir: Path) -> Path:
    """Create ``<data_dir>/.taskboard`` with a default config.

    A state directory written by an incompatible schema is moved aside to
    ``.taskboard_legacy_<stamp>`` instead of being read.  An unreadable
    document store is reported, never archived.
    """
    base = data_dir / STATE_DIR_NAME

    if _needs_archive(base):
        archive_target = data_dir / f"{STATE_DIR_NAME}_legacy_{_utc_stamp()}"
        base.rename(archive_target)
        logger.warning("Archived incompatible state directory to {}", archive_target)

    base.mkdir(parents=True, exist_ok=True)

    events = base / EVENTS_FILE
    if not events.exists():
        events.touch()

    config_path = base / CONFIG_FILE
    config, err = _load_data_with_error(config_path, {})
    if err:
        raise InternalError(f"Cannot read configuration: {err}")
    if not config_path.exists():
        config = {
            "schema_version": SCHEMA_VERSION,
            "limits": {"max_task_attachments": DEFAULT_MAX_TASK_ATTACHMENTS},
            "pagination": {"default_limit": DEFAULT_PAGE_LIMIT, "max_limit": MAX_PAGE_LIMIT},
            "logging": {"level": DEFAULT_LOG_LEVEL, "file": None},
        }
        _atomic_write_yaml(config_path, config)

    return base
