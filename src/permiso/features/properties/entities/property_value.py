"""Property value codec.

A property value is one of a small fixed set of shapes: null, string,
finite number, boolean, ordered list, or string-keyed map, nested freely.
Anything else is rejected at the edge so equality and storage round trips
stay well defined.
"""

import json
import math
from typing import Any, Dict, List, Union

from ....core.exceptions import ValidationError


PropertyValue = Union[None, str, int, float, bool, List["PropertyValue"], Dict[str, "PropertyValue"]]


def normalize_property_value(value: Any, path: str = "value") -> PropertyValue:
    """Validate ``value`` and return it in canonical Python form.

    Tuples become lists. Non-finite floats, non-string map keys and any other
    type raise ValidationError naming the offending path.
    """
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{path} must be a finite number", details={"path": path})
        return value
    if isinstance(value, (list, tuple)):
        return [normalize_property_value(item, f"{path}[{index}]") for index, item in enumerate(value)]
    if isinstance(value, dict):
        normalized: Dict[str, PropertyValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(
                    f"{path} has a non-string key {key!r}", details={"path": path}
                )
            normalized[key] = normalize_property_value(item, f"{path}.{key}")
        return normalized
    raise ValidationError(
        f"{path} has unsupported type {type(value).__name__}",
        details={"path": path, "type": type(value).__name__},
    )


def encode_property_value(value: Any) -> str:
    """Serialize a property value to canonical JSON (sorted keys, compact)."""
    return json.dumps(
        normalize_property_value(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def decode_property_value(raw: str) -> PropertyValue:
    """Deserialize canonical JSON produced by ``encode_property_value``."""
    try:
        return normalize_property_value(json.loads(raw))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Stored property value is not valid JSON: {e}")
