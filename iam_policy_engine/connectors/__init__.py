"""
Connectors Package for the IAM Policy Engine.

This package provides the HTTP client, per-resource-kind policy updaters,
the IAM service principal client, and in-memory mocks of both.
"""

from .base_connector import ApiClient
from .iam_service import IamServiceClient
from .mock_connector import MockPrincipalDirectory, MockResourceUpdater, mock_list_roles
from .resource_manager import (
    GroupPolicyUpdater,
    OrganizationPolicyUpdater,
    ProjectPolicyUpdater,
    group_resource_name,
    list_roles,
)

__all__ = [
    "ApiClient",
    "GroupPolicyUpdater",
    "IamServiceClient",
    "MockPrincipalDirectory",
    "MockResourceUpdater",
    "OrganizationPolicyUpdater",
    "ProjectPolicyUpdater",
    "group_resource_name",
    "list_roles",
    "mock_list_roles",
]
