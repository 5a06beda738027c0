STATE_DIR_NAME = ".taskboard"
CONFIG_FILE = "config.yaml"
DOCUMENTS_FILE = "documents.yaml"
DOCUMENTS_LOCK_FILE = "documents.lock"
EVENTS_FILE = "events.jsonl"
EVENTS_LOCK_FILE = "events.lock"
LOCK_TIMEOUT = 30  # seconds

SCHEMA_VERSION = 1

COLLECTIONS = ("projects", "boards", "tasks", "users", "attachments")

DEFAULT_MAX_TASK_ATTACHMENTS = 20
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
DEFAULT_LOG_LEVEL = "INFO"

ENV_MAX_TASK_ATTACHMENTS = "TASKBOARD_MAX_TASK_ATTACHMENTS"
ENV_LOG_LEVEL = "TASKBOARD_LOG_LEVEL"
