from decimal import Decimal
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, PlainSerializer

T = TypeVar("T")

# Decimal in Python, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint: {success, message, data}."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
