"""Result type used where collaborators may be unavailable."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why an operation did not produce a value."""

    UNAVAILABLE = "unavailable"  # collaborator down; caller proceeds
    INVALID = "invalid"  # bad input; caller rejects it


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or an error kind with a short detail message."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def unavailable(cls, detail: str) -> "Result[T]":
        return cls(error=ErrorKind.UNAVAILABLE, detail=detail)

    @classmethod
    def invalid(cls, detail: str) -> "Result[T]":
        return cls(error=ErrorKind.INVALID, detail=detail)

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` when the operation failed."""

        if self.error is not None or self.value is None:
            return default
        return self.value


__all__ = ["ErrorKind", "Result"]
