from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from vidtube.models.base import PyObjectId, Record

PRIVATE_FIELDS = {"password", "refresh_token"}


class User(Record):
    username: str = Field(..., min_length=3, max_length=20)
    email: str = Field(..., min_length=3)
    fullname: str = Field(..., min_length=1)
    avatar: str = Field(..., min_length=1)
    cover_image: str = Field(default="", alias="coverImage")
    watch_history: List[PyObjectId] = Field(default_factory=list, alias="watchHistory")
    # bcrypt hash, never the plain password
    password: str
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    @field_validator("username", "email", mode="before")
    @classmethod
    def normalize(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude=PRIVATE_FIELDS)
