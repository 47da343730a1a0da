"""Request payloads of the administrative endpoints."""

from typing import Optional

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool
from pydantic.alias_generators import to_camel

from models.profile import Role


class _AdminRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateUserRequest(_AdminRequest):
    """Body of POST /admin/create-user and of adminCreateUser."""

    email: EmailStr
    display_name: str = Field("", max_length=100)
    role: Role = Role.VIEWER

    @pydantic.field_validator("display_name", mode="before")
    @classmethod
    def strip_display_name(cls, v):
        return (v or "").strip()


class UpdateUserRequest(_AdminRequest):
    uid: str = Field(..., min_length=1)
    role: Optional[Role] = None
    disabled: Optional[StrictBool] = None
    display_name: Optional[str] = Field(None, max_length=100)


class UidRequest(_AdminRequest):
    uid: str = Field(..., min_length=1)


class EmailRequest(_AdminRequest):
    email: EmailStr
