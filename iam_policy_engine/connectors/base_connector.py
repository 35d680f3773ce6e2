"""
Base Connector for the IAM Policy Engine.

This module provides the HTTP client shared by the resource manager and IAM
service connectors, mapping transport and API failures to BackendError.
"""

import logging
from typing import Any, Dict, Optional

import requests

from ..config import Profile
from ..errors import BackendError, PolicyConflictError

logger = logging.getLogger(__name__)

# Status codes the API uses when a policy etag no longer matches.
CONFLICT_STATUS_CODES = (409, 412)


class ApiClient:
    """
    Thin JSON client for the cloud API.

    Each request raises BackendError on failure; etag mismatches are raised
    as PolicyConflictError.
    """

    def __init__(self, api_address: str, access_token: Optional[str] = None,
                 timeout: float = 30.0, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            api_address: Base URL of the API
            access_token: Bearer token sent with every request
            timeout: Request timeout in seconds
            session: Session to reuse, mainly for tests
        """
        self.api_address = api_address.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if access_token:
            self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    @classmethod
    def from_profile(cls, profile: Profile) -> "ApiClient":
        return cls(profile.api_address, profile.access_token, profile.timeout)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request("GET", path, params=params)

    def put(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", path, json=body)

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_address}/{path.lstrip('/')}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise BackendError(str(e)) from e

        if not response.ok:
            message = self._error_message(response)
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            if response.status_code in CONFLICT_STATUS_CODES:
                raise PolicyConflictError(message, status_code=response.status_code)
            raise BackendError(message, status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("message"):
            return f"[{response.status_code}] {payload['message']}"
        return f"[{response.status_code}] {response.reason or 'request failed'}"
