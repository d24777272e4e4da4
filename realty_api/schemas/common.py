"""Shared Schemas - response envelope and camelCase base model

Every JSON response has the shape {"success": bool, "data"?: ..., "error"?: str}.
Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON, accepts either on input"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope"""

    success: bool = True
    data: T | None = None
    message: str | None = None


class Pagination(CamelModel):
    """Page metadata for list endpoints"""

    page: int
    limit: int
    total: int
    pages: int
