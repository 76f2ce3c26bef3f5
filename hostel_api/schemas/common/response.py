from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ApiResponse(MessageResponse, Generic[T]):
    data: Optional[T] = None
