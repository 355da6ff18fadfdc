from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=5000)


class PlaylistCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)


class PlaylistUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=5000)

    @model_validator(mode="after")
    def require_change(self) -> "PlaylistUpdate":
        if self.name is None and self.description is None:
            raise ValueError("Name or description is required.")
        return self
