"""
orgpass exception hierarchy.

Business rejections (validation, authorization, missing entities, conflicts
and invariant violations) are carried back to callers inside a Result.
StorageError is the one kind that is raised through to the caller so that
infrastructure failures stay distinguishable from rule rejections.
"""

from typing import Any


class OrgPassError(Exception):
    """Base exception for all orgpass errors."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    @property
    def code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details})"


class ValidationError(OrgPassError):
    """Input has the wrong shape or is out of range."""

    http_status = 400


class PermissionDenied(OrgPassError):
    """The acting user lacks the permission the operation requires."""

    http_status = 403


class Forbidden(PermissionDenied):
    """The acting user has no access to the organization at all."""

    pass


class NotFound(OrgPassError):
    """Referenced entity is missing or belongs to another organization."""

    http_status = 404


class Conflict(OrgPassError):
    """Operation conflicts with existing state."""

    http_status = 409


class DuplicateName(Conflict):
    """A role with this name already exists in the organization."""

    pass


class InvitationAlreadySent(Conflict):
    """An invitation for this email already exists in the organization."""

    pass


class AlreadyMember(Conflict):
    """The user is already a member of the organization."""

    pass


class InvariantViolation(OrgPassError):
    """Operation would break an organization-wide invariant."""

    http_status = 409


class LastRoleError(InvariantViolation):
    """The only role of an organization cannot be deleted."""

    pass


class LastRoleManageHolderError(InvariantViolation):
    """At least one role must keep the role.manage permission."""

    pass


class NoReplacementRole(InvariantViolation):
    """No role is available to take over the members of a deleted role."""

    pass


class StorageError(OrgPassError):
    """Transaction or database failure."""

    http_status = 500


class EmailDeliveryError(OrgPassError):
    """The email collaborator failed to deliver a message."""

    http_status = 502


class BillingGatewayError(OrgPassError):
    """The billing collaborator rejected or failed a request."""

    http_status = 502
