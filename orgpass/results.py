"""Typed results returned by the engines."""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from orgpass.errors import OrgPassError, StorageError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of an engine call.

    Exactly one of ``value`` or ``error`` is meaningful: ``ok`` tells which.
    """

    value: Optional[T] = None
    error: Optional[OrgPassError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: OrgPassError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value


def attempt(fn: Callable[[], T]) -> Result[T]:
    """
    Run ``fn`` and fold business errors into a Result.

    StorageError is re-raised untouched.
    """
    try:
        return Result.success(fn())
    except StorageError:
        raise
    except OrgPassError as e:
        return Result.failure(e)


async def attempt_async(fn: Callable[[], Awaitable[T]]) -> Result[T]:
    """Awaitable counterpart of attempt()."""
    try:
        return Result.success(await fn())
    except StorageError:
        raise
    except OrgPassError as e:
        return Result.failure(e)


class InviteEligibility(str, Enum):
    """Outcome of checking whether an email can be invited."""

    ELIGIBLE = "eligible"
    ALREADY_MEMBER = "already_member"
    INVITATION_ALREADY_SENT = "invitation_already_sent"


class AcceptOutcome(str, Enum):
    """Outcome of accepting an invitation."""

    SUCCESS = "success"
    EXPIRED = "expired"
    WRONG_EMAIL = "wrong_email"
    ALREADY_MEMBER = "already_member"
    NOT_FOUND = "not_found"
