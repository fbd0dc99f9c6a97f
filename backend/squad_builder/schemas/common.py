"""Common API response schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: every payload is returned under ``data``."""

    data: T


class ErrorResponse(BaseModel):
    """Body FastAPI returns for ``HTTPException`` failures."""

    detail: str
