"""Result values returned by every public connector operation."""

from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, Literal, Union

import structlog
from pydantic import BaseModel

from src.resolvers.core.errors import ErrorKind, ResolverError

logger = structlog.get_logger(__name__)


class Success(BaseModel):
    """Operation completed. ``value`` holds instances, bytes or a payload."""

    ok: Literal[True] = True
    value: Any = None
    id: str | None = None
    message: str | None = None

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"result": "success"}
        if self.id is not None:
            out["id"] = self.id
        if self.message is not None:
            out["message"] = self.message
        return out


class Failure(BaseModel):
    ok: Literal[False] = False
    kind: ErrorKind
    message: str
    code: str | None = None
    status: int | None = None

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"result": "error", "message": self.message}
        if self.code is not None:
            out["code"] = self.code
        return out


Result = Union[Success, Failure]


def returns_result(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Result]]:
    """Wrap an async connector operation so it never raises.

    ``ResolverError`` becomes its ``Failure``; anything else becomes a
    ``Failure`` of kind ``unexpected``. Plain return values are wrapped in
    ``Success``.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            value = await func(*args, **kwargs)
        except ResolverError as exc:
            logger.warning(
                "resolver_operation_failed",
                operation=func.__qualname__,
                kind=exc.kind.value,
                error=exc.message,
                code=exc.code,
            )
            return exc.to_failure()
        except Exception as exc:
            logger.exception("resolver_operation_crashed", operation=func.__qualname__)
            return Failure(kind=ErrorKind.unexpected, message=str(exc) or type(exc).__name__)
        if isinstance(value, (Success, Failure)):
            return value
        return Success(value=value)

    return wrapper


__all__ = ["Success", "Failure", "Result", "returns_result"]
