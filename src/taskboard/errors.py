"""Error taxonomy shared by the domain layer and the services.

Domain code raises these exceptions; the service layer converts them into
:class:`taskboard.results.Result` values so callers never see an uncaught
fault.  Each class carries a stable ``code`` that the boundary layer maps
onto a transport status.
"""

from __future__ import annotations

from typing import Any, Optional


class TaskboardError(Exception):
    """Base class for every error the core reports to its callers."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, *, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: list[dict[str, Any]] = list(errors or [])

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


class ValidationError(TaskboardError):
    """Bad shape, range or pattern.  ``errors`` lists every violated field."""

    code = "VALIDATION_ERROR"
    http_status = 400

    @classmethod
    def from_fields(cls, errors: list[dict[str, Any]], message: str = "Validation failed") -> "ValidationError":
        return cls(message, errors=errors)


class InvalidStatus(ValidationError):
    """The requested status is not a live column key on the active board."""

    def __init__(self, status: str, valid: list[str]) -> None:
        super().__init__(
            f"Invalid status '{status}'. Must be one of: {', '.join(valid)}",
            errors=[{"field": "status", "message": f"must be one of {valid}"}],
        )
        self.status = status
        self.valid = list(valid)


class NotFoundError(TaskboardError):
    """Missing entity, or an entity owned by another organization."""

    code = "NOT_FOUND"
    http_status = 404


class ForbiddenError(TaskboardError):
    code = "FORBIDDEN"
    http_status = 403


class ConflictError(TaskboardError):
    """Duplicate keys, invalid rank ranges, occupied columns."""

    code = "CONFLICT"
    http_status = 409


class InvalidRange(ConflictError):
    """``between`` was called with equal or inverted bounds, or with no room left."""

    def __init__(self, prev: Optional[str], next_: Optional[str], reason: str = "bounds must satisfy prev < next") -> None:
        super().__init__(f"Invalid rank range ({prev!r}, {next_!r}): {reason}")
        self.prev = prev
        self.next = next_


class InternalError(TaskboardError):
    code = "INTERNAL_ERROR"
    http_status = 500


class IssueSequenceCorrupted(InternalError):
    """The newest issue key of a project cannot be parsed as ``<prefix>-<n>``."""

    def __init__(self, project_id: str, issue_key: Any) -> None:
        super().__init__(
            f"Cannot continue issue sequence for project {project_id}: "
            f"unparsable issue key {issue_key!r}"
        )
        self.project_id = project_id
        self.issue_key = issue_key
