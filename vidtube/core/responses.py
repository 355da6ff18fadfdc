from typing import Any, List, Optional

from bson import ObjectId
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube.core.errors import ApiError, InternalError
from vidtube.schemas.response import ApiResponse, ErrorResponse

ENCODERS = {ObjectId: str}


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def respond(
    data: Any = None,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    body = ApiResponse(status_code=status_code, data=_plain(data), message=message, success=status_code < 400)
    content = jsonable_encoder(body.model_dump(by_alias=True), custom_encoder=ENCODERS)
    return JSONResponse(content=content, status_code=status_code)


def error_response(status_code: int, message: str, errors: Optional[List[Any]] = None) -> JSONResponse:
    body = ErrorResponse(status_code=status_code, message=message, errors=errors or [])
    return JSONResponse(
        content=jsonable_encoder(body.model_dump(by_alias=True), custom_encoder=ENCODERS),
        status_code=status_code,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.opt(exception=exc).error(f"Internal error on {request.method} {request.url.path}: {exc.message}")
    elif exc.retryable:
        logger.warning(f"Retryable failure on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request.", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.default_message)
