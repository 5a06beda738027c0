"""Provide the public `taskboard` package exports."""

from __future__ import annotations

from .container import TaskboardContainer
from .domain.models import Actor
from .domain.rank import RankKey
from .results import Result

__version__ = "0.1.0"

__all__ = ["Actor", "RankKey", "Result", "TaskboardContainer", "__version__"]
