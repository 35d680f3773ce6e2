"""
Exceptions raised by the IAM Policy Engine.

Errors fall into three groups: local conflicts detected against the fetched
policy, principal classification failures, and backend failures raised by a
resource updater or principal service.
"""

from typing import Optional


class IamPolicyError(Exception):
    """Base class for all IAM Policy Engine errors."""


class NilPolicyError(IamPolicyError, ValueError):
    """No policy was supplied to set."""


class AlreadyBoundError(IamPolicyError):
    """The principal already holds the role in the policy."""

    def __init__(self, principal_id: str, role_id: str):
        super().__init__(f"principal \"{principal_id}\" has existing role binding \"{role_id}\"")
        self.principal_id = principal_id
        self.role_id = role_id


class NotBoundError(IamPolicyError):
    """The principal does not hold the role in the policy."""

    def __init__(self, principal_id: str, role_id: str):
        super().__init__(
            f"principal \"{principal_id}\" with role binding \"{role_id}\" does not exist in policy"
        )
        self.principal_id = principal_id
        self.role_id = role_id


class PrincipalResolutionError(IamPolicyError):
    """A principal could not be resolved to exactly one known type."""


class BackendError(IamPolicyError):
    """A resource updater or principal service call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def with_context(self, context: str) -> "BackendError":
        """Return an error of the same class with the message prefixed by context."""
        return self.__class__(f"{context}: {self}", status_code=self.status_code)


class PolicyConflictError(BackendError):
    """The supplied etag does not match the resource's current policy."""


def wrap_backend_error(error: Exception, context: str) -> BackendError:
    """
    Attach operation context to an error raised by a backend.

    Backend errors keep their class so conflicts stay conflicts; anything
    else is reported as a generic BackendError.
    """
    if isinstance(error, BackendError):
        return error.with_context(context)
    return BackendError(f"{context}: {error}")
