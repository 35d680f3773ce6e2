"""
FastAPI Server for the IAM Policy Engine.

Provides REST API endpoints for reading IAM policies, replacing them, and
adding or removing single role bindings on organizations, projects and groups.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from ..controller import PolicyController
from ..errors import (
    AlreadyBoundError,
    BackendError,
    IamPolicyError,
    NilPolicyError,
    NotBoundError,
    PolicyConflictError,
    PrincipalResolutionError,
)
from ..models import FlattenedBinding, Policy

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Resource collections exposed by the API."""
    organizations = "organizations"
    projects = "projects"
    groups = "groups"

    @property
    def kind(self) -> str:
        return self.value[:-1]


# Pydantic models for API requests/responses
class BindingRequest(BaseModel):
    """Role binding to add."""
    principal_id: str = Field(..., description="ID of the principal to bind")
    role_id: str = Field(..., description="Role ID, with or without the roles/ prefix")


class PolicyResponse(BaseModel):
    """IAM policy with its bindings flattened for display."""
    policy: Policy
    bindings: List[FlattenedBinding]


# Global components (initialized on startup)
controller: Optional[PolicyController] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global controller

    logger.info("Initializing IAM Policy Engine API server components")
    controller = PolicyController(
        os.environ.get("IAM_POLICY_CONFIG"),
        mock_mode=os.environ.get("IAM_POLICY_MOCK", "").lower() in ("1", "true", "yes"),
    )

    yield

    logger.info("Shutting down IAM Policy Engine API server")


app = FastAPI(
    title="IAM Policy Engine API",
    description="Read and update IAM policies for organizations, projects and groups",
    version="1.0.0",
    lifespan=lifespan
)


def _get_controller() -> PolicyController:
    if not controller:
        raise HTTPException(status_code=503, detail="Policy controller not available")
    return controller


def _http_error(error: Exception) -> HTTPException:
    """Map an engine error to the HTTP status reported to clients."""
    if isinstance(error, (AlreadyBoundError, PolicyConflictError)):
        status_code = 409
    elif isinstance(error, NotBoundError):
        status_code = 404
    elif isinstance(error, NilPolicyError):
        status_code = 400
    elif isinstance(error, PrincipalResolutionError):
        status_code = 422
    elif isinstance(error, BackendError):
        status_code = 502
    elif isinstance(error, ValueError):
        status_code = 400
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=str(error))


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "controller": controller is not None,
            "mock_mode": bool(controller and controller.mock_mode),
        }
    }


@app.get("/{kind}/{resource_id}/iam-policy", response_model=PolicyResponse)
def read_policy(kind: ResourceKind, resource_id: str):
    """Get a resource's IAM policy with its principals resolved."""
    try:
        displayer = _get_controller().displayer(kind.kind, resource_id)
    except (IamPolicyError, ValueError) as e:
        logger.error(f"Error reading IAM policy for {kind.kind} {resource_id}: {e}")
        raise _http_error(e) from e

    return PolicyResponse(policy=displayer.policy, bindings=displayer.flatten())


@app.put("/{kind}/{resource_id}/iam-policy", response_model=Policy)
def set_policy(kind: ResourceKind, resource_id: str, policy: Policy):
    """
    Replace a resource's IAM policy.

    If the policy carries no etag, the existing policy's etag is used.
    """
    try:
        return _get_controller().setter(kind.kind, resource_id).set_policy(policy)
    except (IamPolicyError, ValueError) as e:
        logger.error(f"Error setting IAM policy for {kind.kind} {resource_id}: {e}")
        raise _http_error(e) from e


@app.post("/{kind}/{resource_id}/iam-policy/bindings", response_model=Policy)
def add_binding(kind: ResourceKind, resource_id: str, binding: BindingRequest):
    """Bind a principal to a role on the resource."""
    try:
        setter = _get_controller().setter(kind.kind, resource_id)
        return setter.add_binding(binding.principal_id, binding.role_id)
    except (IamPolicyError, ValueError) as e:
        logger.error(f"Error adding binding for {kind.kind} {resource_id}: {e}")
        raise _http_error(e) from e


@app.delete("/{kind}/{resource_id}/iam-policy/bindings", response_model=Policy)
def delete_binding(
    kind: ResourceKind,
    resource_id: str,
    principal_id: str = Query(..., description="ID of the bound principal"),
    role_id: str = Query(..., description="Role ID to remove the binding for"),
):
    """Remove a principal's role binding from the resource."""
    try:
        return _get_controller().setter(kind.kind, resource_id).delete_binding(principal_id, role_id)
    except (IamPolicyError, ValueError) as e:
        logger.error(f"Error deleting binding for {kind.kind} {resource_id}: {e}")
        raise _http_error(e) from e


@app.get("/roles")
def get_roles() -> List[Dict[str, Any]]:
    """List the roles available in the configured organization."""
    try:
        return [role.model_dump() for role in _get_controller().roles()]
    except (IamPolicyError, ValueError) as e:
        raise _http_error(e) from e


def start_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Start the FastAPI server."""
    uvicorn.run(
        "iam_policy_engine.api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    start_server()
