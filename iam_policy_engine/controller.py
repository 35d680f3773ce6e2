"""
Policy Controller for the IAM Policy Engine.

Wires the configured profile to concrete connectors and hands out policy
setters and displayers for organizations, projects and groups. Used by both
the CLI and the REST API.
"""

import logging
from typing import List, Optional

from .config import Profile, load_profile
from .connectors import (
    ApiClient,
    GroupPolicyUpdater,
    IamServiceClient,
    MockPrincipalDirectory,
    MockResourceUpdater,
    OrganizationPolicyUpdater,
    ProjectPolicyUpdater,
    group_resource_name,
    list_roles,
    mock_list_roles,
)
from .engine import PolicyDisplayer, PolicySetter, PrincipalClient, ResourceUpdater
from .models import Role

logger = logging.getLogger(__name__)

RESOURCE_KINDS = ("organization", "project", "group")


class PolicyController:
    """Builds updaters, setters and displayers for the configured profile."""

    def __init__(self, config_path: Optional[str] = None, mock_mode: bool = False,
                 profile: Optional[Profile] = None):
        """
        Initialize the controller.

        Args:
            config_path: YAML profile to load
            mock_mode: If True, use the in-memory mock backend
            profile: Already loaded profile, overrides config_path
        """
        self.profile = profile if profile is not None else load_profile(config_path)
        self.mock_mode = mock_mode
        self._api_client: Optional[ApiClient] = None
        self._principals: Optional[PrincipalClient] = None

        logger.info(f"Initialized PolicyController (mock_mode={mock_mode})")

    @property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            self._api_client = ApiClient.from_profile(self.profile)
        return self._api_client

    @property
    def principals(self) -> PrincipalClient:
        if self._principals is None:
            if self.mock_mode:
                self._principals = MockPrincipalDirectory(storage_path=self.profile.mock_state_file)
            else:
                self._principals = IamServiceClient(self.api_client)
        return self._principals

    def organization_for(self, kind: str, resource_id: Optional[str] = None) -> str:
        """Get the organization whose principals are bound on the resource."""
        if kind == "organization" and resource_id:
            return resource_id
        return self.profile.require_organization()

    def updater(self, kind: str, resource_id: Optional[str] = None) -> ResourceUpdater:
        """
        Get the policy updater for a resource.

        Args:
            kind: One of "organization", "project" or "group"
            resource_id: Organization ID, project ID or group name. Organizations
                         and projects default to the profile's.

        Returns:
            ResourceUpdater for the resource
        """
        if kind not in RESOURCE_KINDS:
            raise ValueError(f"Unsupported resource kind: {kind}")

        organization_id = self.organization_for(kind, resource_id)
        if kind == "organization":
            resource_id = organization_id
        elif kind == "project":
            resource_id = resource_id or self.profile.require_project()
        else:
            if not resource_id:
                raise ValueError("a group resource name must be specified")
            resource_id = group_resource_name(resource_id, organization_id)

        if self.mock_mode:
            return MockResourceUpdater(
                resource_key=f"{kind}/{resource_id}",
                storage_path=self.profile.mock_state_file,
            )

        if kind == "organization":
            return OrganizationPolicyUpdater(self.api_client, resource_id)
        elif kind == "project":
            return ProjectPolicyUpdater(self.api_client, resource_id)
        return GroupPolicyUpdater(self.api_client, resource_id)

    def setter(self, kind: str, resource_id: Optional[str] = None) -> PolicySetter:
        updater = self.updater(kind, resource_id)
        return PolicySetter(self.organization_for(kind, resource_id), updater, self.principals)

    def displayer(self, kind: str, resource_id: Optional[str] = None) -> PolicyDisplayer:
        """Fetch a resource's policy and resolve its principals for display."""
        policy = self.updater(kind, resource_id).get_iam_policy()
        organization_id = self.organization_for(kind, resource_id)
        return PolicyDisplayer(organization_id, policy, self.principals).resolve()

    def roles(self) -> List[Role]:
        organization_id = self.profile.require_organization()
        if self.mock_mode:
            return mock_list_roles(self.profile.mock_state_file)
        return list_roles(self.api_client, organization_id)
