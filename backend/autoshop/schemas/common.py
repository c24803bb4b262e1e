"""Shared schema base classes."""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for payloads exchanged in camelCase with the service-of-record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiEnvelope(CamelModel, Generic[T]):
    """Response wrapper used by the service-of-record."""
    status: str
    message: Optional[str] = None
    data: Optional[T] = None
    timestamp: Optional[datetime] = None
    path: Optional[str] = None


def dump_wire(model: BaseModel, **kwargs: Any) -> dict:
    """Serialize a schema to its camelCase JSON form, omitting unset fields."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True, **kwargs)
