from typing import Optional, List, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# Paginated response wrapper: used by all list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses
class ErrorResponse(BaseModel):
    error: str
    message: str


class OverbookedError(ErrorResponse):
    available: int
    requested: int


class GroupFailureError(ErrorResponse):
    member: Optional[dict] = None
    cause: Optional[dict] = None
