import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


def to_jsonable(value: Any) -> Any:
    """Reduce a value to JSON-native types, recursing into containers."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, Enum):
        return value.value
    # datetime is a date subclass
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(item) for item in value]
    return value


class CamelCaseBaseModel(BaseModel):
    """
    Model exchanged with the mobile client.

    Accepts either camelCase or snake_case keys on input; dump with
    ``by_alias=True`` to emit camelCase with JSON-native values.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_serializer("*")
    def serialize_field(self, value):
        return to_jsonable(value)
