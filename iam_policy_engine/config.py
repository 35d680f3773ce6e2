"""
Configuration for the IAM Policy Engine.

Loads the active profile (organization, project, API address and
credentials) from a YAML file, with environment variable overrides.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_API_ADDRESS = "https://api.cloud.hashicorp.com"

ENV_OVERRIDES = {
    "IAM_POLICY_ORGANIZATION_ID": "organization_id",
    "IAM_POLICY_PROJECT_ID": "project_id",
    "IAM_POLICY_API_ADDRESS": "api_address",
    "IAM_POLICY_ACCESS_TOKEN": "access_token",
}


class Profile(BaseModel):
    """Settings used to reach the resource manager and IAM services."""
    organization_id: Optional[str] = Field(None, description="Organization ID")
    project_id: Optional[str] = Field(None, description="Project ID")
    api_address: str = Field(DEFAULT_API_ADDRESS, description="Base URL of the API")
    access_token: Optional[str] = Field(None, description="Bearer token for API requests")
    timeout: float = Field(30.0, description="Request timeout in seconds")
    mock_state_file: Optional[str] = Field(None, description="State file for the mock backend")

    def require_organization(self) -> str:
        if not self.organization_id:
            raise ValueError("Organization ID must be configured")
        return self.organization_id

    def require_project(self) -> str:
        self.require_organization()
        if not self.project_id:
            raise ValueError("Project ID must be configured")
        return self.project_id


def load_profile(path: Optional[Union[str, Path]] = None) -> Profile:
    """
    Load the profile from a YAML file and the environment.

    Args:
        path: YAML file to read. Missing files are ignored.

    Returns:
        The resolved Profile
    """
    data = {}
    if path is not None:
        config_file = Path(path)
        if config_file.exists():
            with open(config_file, encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Loaded profile from {config_file}")
        else:
            logger.warning(f"Profile file not found: {config_file}")

    for env_var, field in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field] = value

    return Profile(**data)
