# vidtube/core/responses.py
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    statusCode: int
    data: Any = None
    message: str = "Success"
    success: bool = True


class ApiErrorResponse(ApiResponse):
    success: bool = False
    errors: List[Any] = Field(default_factory=list)


def respond(data: Any, message: str = "Success", status_code: int = 200) -> JSONResponse:
    body = ApiResponse(statusCode=status_code, data=jsonable_encoder(data), message=message,
                       success=status_code < 400)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def error_response(status_code: int, message: str, errors: Optional[List[Any]] = None,
                   headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body = ApiErrorResponse(statusCode=status_code, message=message, errors=errors or [])
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)
