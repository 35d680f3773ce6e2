"""
Core data models for the IAM Policy Engine.

This module defines the Pydantic models used throughout the system
for IAM policies, bindings, principals and the flattened display rows.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, model_validator

from .errors import PrincipalResolutionError


class MemberType(str, Enum):
    """Type of a member inside a policy binding."""
    USER = "USER"
    GROUP = "GROUP"
    SERVICE_PRINCIPAL = "SERVICE_PRINCIPAL"


class PrincipalType(str, Enum):
    """Type of a principal as reported by the IAM service."""
    USER = "PRINCIPAL_TYPE_USER"
    GROUP = "PRINCIPAL_TYPE_GROUP"
    SERVICE = "PRINCIPAL_TYPE_SERVICE"
    UNSPECIFIED = "PRINCIPAL_TYPE_UNSPECIFIED"


class PrincipalView(str, Enum):
    """Level of detail requested when looking up principals."""
    BASIC = "PRINCIPAL_VIEW_BASIC"
    FULL = "PRINCIPAL_VIEW_FULL"


# Validation context key that makes the policy models drop unknown fields.
IGNORE_EXTRA = "ignore_extra"


class _PolicyModel(BaseModel):
    """
    Base for the policy document models.

    Unknown fields are rejected, except when validating with
    context={IGNORE_EXTRA: True}, which is how replies from the resource
    manager are read.
    """
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _drop_unknown_fields(cls, data: Any, info: ValidationInfo) -> Any:
        if info.context and info.context.get(IGNORE_EXTRA) and isinstance(data, dict):
            return {k: v for k, v in data.items() if k in cls.model_fields}
        return data


class PolicyMember(_PolicyModel):
    """A principal bound to a role."""

    member_id: str = Field(..., description="Principal ID")
    member_type: MemberType = Field(..., description="USER, GROUP or SERVICE_PRINCIPAL")


class PolicyBinding(_PolicyModel):
    """A role and the members bound to it."""

    role_id: str = Field(..., description="Role ID, e.g. roles/viewer")
    members: List[PolicyMember] = Field(default_factory=list)


class Policy(_PolicyModel):
    """IAM policy attached to a resource."""

    bindings: List[PolicyBinding] = Field(default_factory=list)
    etag: str = Field("", description="Version token used for optimistic concurrency")


class UserDetails(BaseModel):
    full_name: str = ""
    email: str = ""


class GroupDetails(BaseModel):
    display_name: str = ""
    resource_name: str = ""


class ServiceDetails(BaseModel):
    name: str = ""
    resource_name: str = ""


class _PrincipalBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str

    @property
    def principal_type(self) -> PrincipalType:
        return PrincipalType(self.type)


class UserPrincipal(_PrincipalBase):
    type: Literal["PRINCIPAL_TYPE_USER"] = "PRINCIPAL_TYPE_USER"
    user: Optional[UserDetails] = None

    @property
    def display_name(self) -> str:
        return self.user.full_name if self.user else ""

    @property
    def member_type(self) -> MemberType:
        return MemberType.USER


class GroupPrincipal(_PrincipalBase):
    type: Literal["PRINCIPAL_TYPE_GROUP"] = "PRINCIPAL_TYPE_GROUP"
    group: Optional[GroupDetails] = None

    @property
    def display_name(self) -> str:
        return self.group.display_name if self.group else ""

    @property
    def member_type(self) -> MemberType:
        return MemberType.GROUP


class ServicePrincipal(_PrincipalBase):
    type: Literal["PRINCIPAL_TYPE_SERVICE"] = "PRINCIPAL_TYPE_SERVICE"
    service: Optional[ServiceDetails] = None

    @property
    def display_name(self) -> str:
        return self.service.name if self.service else ""

    @property
    def member_type(self) -> MemberType:
        return MemberType.SERVICE_PRINCIPAL


class UnspecifiedPrincipal(_PrincipalBase):
    """A principal the IAM service could not classify."""
    type: Literal["PRINCIPAL_TYPE_UNSPECIFIED"] = "PRINCIPAL_TYPE_UNSPECIFIED"

    @property
    def display_name(self) -> str:
        raise PrincipalResolutionError(
            f"invalid principal type for principal \"{self.id}\": {self.type}"
        )

    @property
    def member_type(self) -> MemberType:
        raise PrincipalResolutionError(
            f"unsupported principal type ({self.type}) for IAM Policy"
        )


class UnrecognizedPrincipal(_PrincipalBase):
    """A principal of a type this package does not know about yet."""
    type: str

    @property
    def principal_type(self) -> PrincipalType:
        raise PrincipalResolutionError(
            f"unknown principal type ({self.type}) for principal \"{self.id}\""
        )

    @property
    def display_name(self) -> str:
        return ""

    @property
    def member_type(self) -> MemberType:
        raise PrincipalResolutionError(
            f"unsupported principal type ({self.type}) for IAM Policy"
        )


_KnownPrincipal = Annotated[
    Union[UserPrincipal, GroupPrincipal, ServicePrincipal, UnspecifiedPrincipal],
    Field(discriminator="type"),
]

Principal = Union[_KnownPrincipal, UnrecognizedPrincipal]

_principal_adapter = TypeAdapter(_KnownPrincipal)

_KNOWN_PRINCIPAL_TYPES = {t.value for t in PrincipalType}


def parse_principal(data: Dict) -> Principal:
    """
    Parse a principal record as returned by the IAM service.

    Records whose type is set but not one of PrincipalType are returned as
    UnrecognizedPrincipal, so they can still be listed without a name.

    Args:
        data: Raw principal record

    Returns:
        The matching principal variant

    Raises:
        PrincipalResolutionError: If the record is malformed
    """
    try:
        record_type = data.get("type") if isinstance(data, dict) else None
        if isinstance(record_type, str) and record_type and record_type not in _KNOWN_PRINCIPAL_TYPES:
            return UnrecognizedPrincipal.model_validate(data)
        return _principal_adapter.validate_python(data)
    except ValueError as e:
        raise PrincipalResolutionError(f"failed to parse principal record: {e}") from e


class FlattenedBinding(BaseModel):
    """One (role, member) pair of a policy, labelled for display."""
    role_id: str
    principal_name: str = ""
    principal_id: str
    principal_type: str


class Role(BaseModel):
    """Role available in an organization."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str = ""


# Type aliases for convenience
BindingMap = Dict[str, Dict[str, MemberType]]
Principals = List[Principal]
