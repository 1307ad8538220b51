"""Key-case conversion between persisted documents and dataclasses."""

import re
from typing import Any, Literal

# Keys whose persisted spelling is not plain camelCase.
_SNAKE_TO_CAMEL_OVERRIDES = {"photo_url": "photoURL"}
_CAMEL_TO_SNAKE_OVERRIDES = {v: k for k, v in _SNAKE_TO_CAMEL_OVERRIDES.items()}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_to_camel(key: str) -> str:
    if key in _SNAKE_TO_CAMEL_OVERRIDES:
        return _SNAKE_TO_CAMEL_OVERRIDES[key]
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(key: str) -> str:
    if key in _CAMEL_TO_SNAKE_OVERRIDES:
        return _CAMEL_TO_SNAKE_OVERRIDES[key]
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def convert_keys(
    data: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """
    Recursively converts dict keys between snake_case and camelCase.

    Only use this on records with a fixed schema. Maps keyed by ids
    (games, columns, relationship entries) must be converted per value,
    otherwise ids such as Firebase uids get rewritten.
    """
    convert = snake_to_camel if direction == "snake_to_camel" else camel_to_snake
    if isinstance(data, dict):
        return {convert(k): convert_keys(v, direction) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [convert_keys(item, direction) for item in data]
    return data
