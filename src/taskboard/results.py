"""Uniform result shape returned by every public service operation."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from loguru import logger

from .errors import TaskboardError

F = TypeVar("F", bound=Callable[..., Any])

_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "INTERNAL_ERROR": 500,
}


@dataclass
class Result:
    ok: bool
    data: Any = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def success(cls, data: Any = None) -> "Result":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, exc: TaskboardError) -> "Result":
        return cls(
            ok=False,
            error_code=exc.code,
            error_message=exc.message,
            errors=list(exc.errors),
        )

    @property
    def http_status(self) -> int:
        if self.ok:
            return 200
        return _STATUS_BY_CODE.get(self.error_code or "", 500)

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        payload: dict[str, Any] = {
            "ok": False,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


def operation(name: str) -> Callable[[F], F]:
    """Wrap a service method so it returns a :class:`Result` instead of raising.

    Domain errors become failures with their own code; anything else is
    logged with its traceback and reported as ``INTERNAL_ERROR``.  The
    wrapped method runs its writes inside a transaction, so by the time an
    exception reaches this wrapper the staged writes have been discarded.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Result:
            try:
                data = fn(*args, **kwargs)
            except TaskboardError as exc:
                if exc.http_status >= 500:
                    logger.error("{} failed: {}", name, exc.message)
                else:
                    logger.warning("{} refused ({}): {}", name, exc.code, exc.message)
                return Result.failure(exc)
            except Exception:
                logger.exception("{} failed with an unexpected error", name)
                return Result(ok=False, error_code="INTERNAL_ERROR", error_message="Internal server error")
            return Result.success(data)

        return wrapper  # type: ignore[return-value]

    return decorator
