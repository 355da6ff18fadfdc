from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from vidtube.models.base import PyObjectId
from vidtube.models.users import User


class UserPublic(BaseModel):
    """A user as exposed to clients and attached to authenticated requests."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: PyObjectId = Field(..., alias="_id")
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = Field(default="", alias="coverImage")
    watch_history: List[PyObjectId] = Field(default_factory=list, alias="watchHistory")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls.model_validate(user.to_public())


class RegisterForm(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    fullname: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self) -> "LoginRequest":
        if not (self.username or self.email):
            raise ValueError("Username or email is required.")
        return self


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    model_config = ConfigDict(populate_by_name=True)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1, alias="oldPassword")
    new_password: str = Field(..., min_length=8, max_length=72, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class UpdateAccountRequest(BaseModel):
    fullname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def require_change(self) -> "UpdateAccountRequest":
        if self.fullname is None and self.email is None:
            raise ValueError("Fullname or email is required.")
        return self
