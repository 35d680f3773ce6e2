"""
Resource Updater contract for the IAM Policy Engine.

A resource updater knows how to fetch and store the IAM policy of one
specific resource (an organization, a project, a group, ...). The policy
setter only ever talks to resources through this interface.
"""

from abc import ABC, abstractmethod

from ..models import Policy


class ResourceUpdater(ABC):
    """Abstract base class for per-resource-kind policy storage."""

    @abstractmethod
    def get_iam_policy(self) -> Policy:
        """
        Get the existing IAM policy attached to the resource.

        Returns:
            The current policy, including its etag

        Raises:
            BackendError: If the policy could not be retrieved
        """
        pass

    @abstractmethod
    def set_iam_policy(self, policy: Policy) -> Policy:
        """
        Replace the existing IAM policy attached to the resource.

        Args:
            policy: Policy to store; its etag must match the current one

        Returns:
            The stored policy as returned by the backend

        Raises:
            PolicyConflictError: If the etag is stale
            BackendError: If the policy could not be stored
        """
        pass
