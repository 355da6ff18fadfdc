from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    status_code: int = Field(..., alias="statusCode")
    data: Any = None
    message: str = "Success"
    success: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    status_code: int = Field(..., alias="statusCode")
    message: str
    success: bool = False
    errors: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
