"""User profile and role models."""

from enum import Enum
from typing import Any, Dict, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

USERS_COLLECTION = "users"
ROLES_COLLECTION = "roles"


class Role(str, Enum):
    """Authorization role stored on the profile."""

    ADMIN = "admin"
    CONTRIBUTOR = "contributor"
    VIEWER = "viewer"

    @property
    def can_write(self) -> bool:
        return self in WRITER_ROLES


WRITER_ROLES = frozenset({Role.ADMIN, Role.CONTRIBUTOR})


def parse_role(value: Any) -> Role:
    """Stored role value to Role; anything unknown is the least privileged role."""
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        return Role.VIEWER


class UserProfile(BaseModel):
    """
    Persisted per-identity role and status document (``users/{uid}``).

    Field names are snake_case in Python and camelCase in the store.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    uid: str = Field(exclude=True)
    email: str = ""
    display_name: str = ""
    role: Role = Role.VIEWER
    disabled: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None
    deleted_at: Optional[str] = None

    @pydantic.field_validator("role", mode="before")
    @classmethod
    def role_defaults_to_viewer(cls, v):
        return parse_role(v)

    @pydantic.field_validator("email", "display_name", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return "" if v is None else v

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at)

    @classmethod
    def from_document(cls, uid: str, data: Dict[str, Any]) -> "UserProfile":
        fields = {k: v for k, v in data.items() if k in _STORE_KEYS}
        return cls(uid=uid, **fields)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_STORE_KEYS = {
    to_camel(name) for name in UserProfile.model_fields if name != "uid"
}


class ProfileUpdate(BaseModel):
    """Self-service profile edit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    display_name: str = Field(..., max_length=100)

    @pydantic.field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v):
        return v.strip()
