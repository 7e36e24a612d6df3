"""Property entities and value codec."""

from .property import OwnerKind, OwnerRef, Property, PropertyInput
from .property_value import (
    PropertyValue,
    normalize_property_value,
    encode_property_value,
    decode_property_value,
)

__all__ = [
    "OwnerKind",
    "OwnerRef",
    "Property",
    "PropertyInput",
    "PropertyValue",
    "normalize_property_value",
    "encode_property_value",
    "decode_property_value",
]
