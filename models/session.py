"""Identity and session values."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.profile import Role


class Identity(BaseModel):
    """An account at the identity provider."""

    uid: str
    email: str = ""
    display_name: str = ""
    disabled: bool = False
    claims: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None


class Session(BaseModel):
    """
    Authenticated identity paired with its resolved role.

    Immutable: a role or status change produces a new Session.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str = ""
    display_name: str = ""
    role: Role = Role.VIEWER
    disabled: bool = False

    @property
    def can_write(self) -> bool:
        return self.role.can_write

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
