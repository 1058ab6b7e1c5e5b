"""
Flatten decoded secret documents into dot-addressed string maps.

Consumers such as templating layers only understand flat ``str -> str``
maps, so nested documents are normalized before they are exposed:

    {"a": {"b": "c"}}      -> {"a.b": "c"}
    {"a": {"b": [1, 2]}}   -> {"a.b.0": "1", "a.b.1": "2"}
    {"x": None}            -> {"x": "null"}

Mapping keys are labels, list indices are positional. Every leaf of the
input tree yields exactly one entry.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Iterator, Union

from sopsfile.core.errors import KeyNotFoundError

Scalar = Union[str, int, float, bool]
NestedValue = Union[None, Scalar, list["NestedValue"], dict[str, "NestedValue"]]
FlatMap = dict[str, str]

NULL_VALUE = "null"


def stringify(value: Any) -> str:
    """Render a scalar the way it reads in the source document."""
    if value is None:
        return NULL_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def convert_map(original: Mapping[Any, Any]) -> dict[str, Any]:
    """Coerce arbitrary hashable mapping keys (YAML ints, bools, dates) to strings."""
    return {stringify(key): value for key, value in original.items()}


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _flatten_value(key: str, value: Any) -> Iterator[tuple[str, str]]:
    if isinstance(value, Mapping):
        for child_key, child_value in flatten(convert_map(value)).items():
            yield f"{key}.{child_key}", child_value
    elif _is_sequence(value):
        for child_key, child_value in flatten_slice(value).items():
            yield f"{key}.{child_key}", child_value
    elif value is None:
        yield key, NULL_VALUE
    else:
        yield key, stringify(value)


def flatten(data: Mapping[Any, Any]) -> FlatMap:
    """Flatten a nested mapping, joining keys with dots."""
    ret: FlatMap = {}
    for key, value in convert_map(data).items():
        ret.update(_flatten_value(key, value))
    return dict(sorted(ret.items()))


def flatten_slice(data: list[Any] | tuple[Any, ...]) -> FlatMap:
    """Flatten a sequence, using the zero-based index as the key at this level."""
    ret: FlatMap = {}
    for idx, value in enumerate(data):
        ret.update(_flatten_value(str(idx), value))
    return dict(sorted(ret.items()))


def flatten_from_key(data: Mapping[Any, Any], key: str) -> FlatMap:
    """Flatten only the subtree under ``key``, keeping ``key`` as the prefix.

    Raises:
        KeyNotFoundError: if ``key`` is missing or null at the top level
    """
    value = convert_map(data).get(key)
    if value is None:
        raise KeyNotFoundError(key)
    return dict(sorted(_flatten_value(key, value)))
