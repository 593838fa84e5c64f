"""Shared schema base and the response envelope."""
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field
from pydantic.alias_generators import to_camel

from sensus.core.gate import sanitize_text


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def _clean(value: str) -> str:
    cleaned = sanitize_text(value)
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


Name = Annotated[str, Field(max_length=100), AfterValidator(_clean)]
Text = Annotated[str, Field(max_length=10000), AfterValidator(_clean)]


class PaginationSchema(CamelModel):
    limit: int
    offset: int
    total: int
    has_more: bool


def envelope(data: Any = None, message: str | None = None, **extra) -> dict:
    """Success envelope: {success, data?, message?, ...}."""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    body.update(extra)
    return body


def dump(model: BaseModel) -> dict:
    return model.model_dump(by_alias=True, mode="json")
