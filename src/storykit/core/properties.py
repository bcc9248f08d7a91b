"""
Property metadata extraction for props schema types.

Produces the descriptors a preview UI needs to build an editor for a
component: semantic kind, default value, enum choices, display text.
"""

from __future__ import annotations

import inspect
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, get_args

from storykit.core.models import PropertyDescriptor, PropertyKind
from storykit.core.schema import (
    SchemaField,
    collection_factory,
    enum_choices,
    is_collection_type,
    is_enum_type,
    is_literal_type,
    is_simple_type,
    is_value_type,
    schema_fields,
    unwrap_optional,
)

# Checked in order: datetime is a date subclass
_ZERO_VALUES: tuple[tuple[type, Any], ...] = (
    (datetime, datetime.min),
    (date, date.min),
    (time, time.min),
    (Decimal, Decimal(0)),
    (int, 0),
    (float, 0.0),
)

_UPPER_BOUNDARY_RE = re.compile(r"(?<=.)([A-Z])")


def classify(annotation: Any) -> tuple[PropertyKind, bool, Any]:
    """
    Classify a property annotation.

    Returns:
        ``(kind, nullable, inner)`` where ``inner`` is the annotation with
        any ``Optional`` wrapper removed.
    """
    inner, optional = unwrap_optional(annotation)

    if is_enum_type(inner) or is_literal_type(inner):
        kind = PropertyKind.ENUM
    elif is_collection_type(inner):
        kind = PropertyKind.COLLECTION
    elif is_simple_type(inner):
        kind = PropertyKind.PRIMITIVE
    else:
        kind = PropertyKind.COMPLEX

    return kind, optional or not is_value_type(inner), inner


def default_for_type(annotation: Any) -> Any:
    """
    Type-based default value.

    - Enum: first declared member (first value for a Literal)
    - Text: empty string
    - Boolean: False
    - Collection: empty instance of the collection shape
    - Other value types: zero value (absent when Optional)
    - Reference types: None
    """
    inner, optional = unwrap_optional(annotation)

    if is_enum_type(inner):
        members = list(inner)
        return members[0] if members else None
    if is_literal_type(inner):
        args = get_args(inner)
        return args[0] if args else None
    if is_collection_type(inner):
        return collection_factory(inner)()
    if not inspect.isclass(inner):
        # Unions, TypeVars, Any, parameterized mappings
        return None
    if issubclass(inner, bool):
        return False
    if issubclass(inner, str):
        return inner()
    if optional:
        return None
    for value_type, zero in _ZERO_VALUES:
        if issubclass(inner, value_type):
            return zero
    return None


def default_for_field(field: SchemaField) -> Any:
    """Declared default if the schema has one, else the type-based default."""
    if field.has_default:
        return field.make_default()
    return default_for_type(field.annotation)


def display_name_for(name: str) -> str:
    """
    Derive display text from a property name.

    ``MaxWidth`` -> ``Max Width``; ``max_width`` -> ``Max Width``.
    """
    if "_" in name:
        words = [w for w in name.split("_") if w]
        return " ".join(w[:1].upper() + w[1:] for w in words)
    spaced = _UPPER_BOUNDARY_RE.sub(r" \1", name)
    return spaced[:1].upper() + spaced[1:]


def get_properties(schema_type: type | None) -> list[PropertyDescriptor]:
    """
    Get metadata for all properties of a props schema type.

    Args:
        schema_type: Props schema type (None yields an empty list)

    Returns:
        Descriptors sorted by property name
    """
    if schema_type is None:
        return []

    descriptors: list[PropertyDescriptor] = []
    for field in schema_fields(schema_type):
        kind, nullable, inner = classify(field.annotation)
        descriptors.append(
            PropertyDescriptor(
                name=field.name,
                type=field.annotation,
                kind=kind,
                nullable=nullable,
                default_value=default_for_field(field),
                enum_choices=enum_choices(inner) if kind == PropertyKind.ENUM else None,
                display_name=field.display_name or display_name_for(field.name),
                description=field.description,
            )
        )

    return sorted(descriptors, key=lambda d: (d.name.lower(), d.name))


def get_default_values(schema_type: type | None) -> dict[str, Any]:
    """
    Get default values for all properties of a props schema type.

    Every call builds fresh containers, so callers may mutate the result.
    """
    return {d.name: d.default_value for d in get_properties(schema_type)}
