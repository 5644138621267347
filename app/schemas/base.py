# app/schemas/base.py
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from app.core.errors import ValidationFailed, from_pydantic


def to_camel(s: str) -> str:
    parts = s.split("_")
    return parts[0] + "".join(p.title() for p in parts[1:])


class BaseSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class InputSchema(BaseSchema):
    """Request bodies: every field enumerated, unknown keys rejected."""

    model_config = ConfigDict(extra="forbid")


S = TypeVar("S", bound=BaseModel)


def parse_payload(schema: Type[S], data: Dict[str, Any], errors: Optional[List[Dict[str, str]]] = None) -> S:
    """Validate ``data`` against ``schema``; report every bad field at once.

    ``errors`` are problems already found by the caller; they are merged
    with the schema's own errors into a single ValidationFailed.
    """
    errors = list(errors or [])
    try:
        parsed = schema.model_validate(data)
    except ValidationError as exc:
        raise from_pydantic(exc, extra=errors)
    if errors:
        raise ValidationFailed(errors)
    return parsed
