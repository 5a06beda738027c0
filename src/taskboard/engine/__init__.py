"""Service layer over the document gateway.

Each public method returns a :class:`taskboard.results.Result`.
"""

from .boards import BoardService
from .projects import ProjectService
from .ranks import RankMaintenance
from .tasks import TaskLifecycle
from .users import UserDirectory

__all__ = ["BoardService", "ProjectService", "RankMaintenance", "TaskLifecycle", "UserDirectory"]
