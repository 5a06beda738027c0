"""Load optional taskboard configuration from `.taskboard/config.yaml`."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from loguru import logger

from .constants import (
    CONFIG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_TASK_ATTACHMENTS,
    DEFAULT_PAGE_LIMIT,
    ENV_LOG_LEVEL,
    ENV_MAX_TASK_ATTACHMENTS,
    MAX_PAGE_LIMIT,
    STATE_DIR_NAME,
)
from .io_utils import _load_data_with_error


def load_config(data_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional config file.

    Args:
        data_dir: Directory holding the `.taskboard/` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = data_dir.resolve() / STATE_DIR_NAME / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _positive_int(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer {} value: {!r}", name, value)
        return default
    if parsed < 1:
        logger.warning("Ignoring non-positive {} value: {!r}", name, value)
        return default
    return parsed


def get_limits_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the `limits` block, or an empty dict if not present."""
    raw = _get_nested(config, "limits")
    return raw if isinstance(raw, dict) else {}


def get_max_task_attachments(config: dict[str, Any]) -> int:
    """Maximum number of attachments a task may reference.

    ``TASKBOARD_MAX_TASK_ATTACHMENTS`` takes precedence over the config file.
    """
    env_value = os.environ.get(ENV_MAX_TASK_ATTACHMENTS)
    if env_value:
        return _positive_int(env_value, DEFAULT_MAX_TASK_ATTACHMENTS, ENV_MAX_TASK_ATTACHMENTS)
    return _positive_int(
        get_limits_config(config).get("max_task_attachments"),
        DEFAULT_MAX_TASK_ATTACHMENTS,
        "limits.max_task_attachments",
    )


def get_pagination_config(config: dict[str, Any]) -> dict[str, int]:
    """Return `{"default_limit", "max_limit"}` for task listings."""
    raw = _get_nested(config, "pagination")
    raw = raw if isinstance(raw, dict) else {}
    max_limit = _positive_int(raw.get("max_limit"), MAX_PAGE_LIMIT, "pagination.max_limit")
    default_limit = _positive_int(raw.get("default_limit"), DEFAULT_PAGE_LIMIT, "pagination.default_limit")
    return {"default_limit": min(default_limit, max_limit), "max_limit": max_limit}


def get_logging_config(config: dict[str, Any]) -> dict[str, Any]:
    """Return `{"level", "file"}`; ``TASKBOARD_LOG_LEVEL`` overrides the level."""
    raw = _get_nested(config, "logging")
    raw = raw if isinstance(raw, dict) else {}
    level = os.environ.get(ENV_LOG_LEVEL) or raw.get("level") or DEFAULT_LOG_LEVEL
    log_file = raw.get("file")
    return {"level": str(level).upper(), "file": str(log_file) if log_file else None}
