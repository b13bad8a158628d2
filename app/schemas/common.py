from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, TypeVar

T = TypeVar("T")


class APIModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python, reads ORM objects."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, alias_generator=to_camel)


class Envelope(APIModel, Generic[T]):
    success: bool = True
    data: T


class CountEnvelope(Envelope[T], Generic[T]):
    count: int


class PageEnvelope(Envelope[T], Generic[T]):
    count: int
    page: int
    total_pages: int


class MessageOut(APIModel):
    message: str


def envelope(data, **meta):
    body = {"success": True, "data": data}
    body.update(meta)
    return body


def paginated(data, page: int, limit: int, total: int, count: int = None):
    if count is None:
        count = len(data)
    return envelope(data, count=count, page=page, total_pages=-(-total // limit))
