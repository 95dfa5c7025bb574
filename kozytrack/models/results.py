"""Tagged results returned across component boundaries.

Core operations return a Result instead of mixing raised exceptions with
falsy sentinels. Callers branch on the outcome tag.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Outcome(str, Enum):
    OK = "ok"
    SOFT_FAILURE = "soft_failure"
    FATAL = "fatal"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a core operation with an optional value and error text."""

    outcome: Outcome
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(Outcome.OK, value=value)

    @classmethod
    def soft(cls, error: str) -> "Result[T]":
        return cls(Outcome.SOFT_FAILURE, error=error)

    @classmethod
    def fatal(cls, error: str) -> "Result[T]":
        return cls(Outcome.FATAL, error=error)

    @property
    def is_ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def is_fatal(self) -> bool:
        return self.outcome is Outcome.FATAL
