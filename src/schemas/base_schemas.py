# src/schemas/base_schemas.py
import math
from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        protected_namespaces=(),
    )


class RequestSchema(BaseSchema):
    """Request bodies accept both camelCase and snake_case keys"""

    model_config = ConfigDict(alias_generator=to_camel)


class TimestampMixin(BaseSchema):
    """Mixin for timestamps"""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IDMixin(BaseSchema):
    """Mixin for ID field"""

    id: UUID


class ApiResponse(BaseSchema, Generic[T]):
    """Success envelope returned by every endpoint"""

    success: bool = True
    status_code: int = Field(200, alias="statusCode")
    message: str = "Success"
    data: Optional[T] = None


class Pagination(BaseSchema):
    current_page: int
    total_pages: int
    total_items: int
    limit: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            limit=limit,
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        )


class PaginatedResponse(BaseSchema, Generic[T]):
    """Paginated response schema"""

    items: List[T]
    pagination: Pagination
