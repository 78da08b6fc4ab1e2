"""Type-tagged text serialization for cached values."""

import json
from enum import Enum
from typing import Any

from kvstash.shared.errors import ContentInvalidError


class ValueType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    OBJECT = "object"


def value_type_of(content: Any) -> ValueType:
    if isinstance(content, str):
        return ValueType.STRING
    # bool is an int subclass but round-trips through JSON, not float()
    if isinstance(content, (int, float)) and not isinstance(content, bool):
        return ValueType.NUMBER
    return ValueType.OBJECT


def encode_value(content: Any) -> tuple[str, ValueType]:
    """Serialize ``content`` to its stored text form plus the tag to reverse it.

    Raises:
        ContentInvalidError: If content is None or not JSON-serializable.
    """
    if content is None:
        raise ContentInvalidError("Content is undefined")

    value_type = value_type_of(content)
    if value_type is ValueType.STRING:
        return content, value_type
    if value_type is ValueType.NUMBER:
        return repr(content), value_type

    try:
        return json.dumps(content, separators=(",", ":"), allow_nan=False), value_type
    except (TypeError, ValueError) as e:
        raise ContentInvalidError(f"Content is not serializable: {e}") from e


def decode_value(text: str, value_type: ValueType | str) -> Any:
    value_type = ValueType(value_type)
    if value_type is ValueType.OBJECT:
        return json.loads(text)
    if value_type is ValueType.NUMBER:
        try:
            return int(text)
        except ValueError:
            return float(text)
    return text
