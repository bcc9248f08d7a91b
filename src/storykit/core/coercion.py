"""
Value coercion: untyped property values -> typed props instances.

Input values come from HTML forms and query strings (text), from parsed
JSON (dicts, lists, scalars) or from story presets (already typed). Each
property converts on its own; one bad value never loses the others.
"""

from __future__ import annotations

import inspect
import logging
from datetime import date, datetime, time
from enum import Enum
from typing import Any, get_args

from storykit.core.deserializer import StructuredDeserializer, parse_enum, validate_value
from storykit.core.errors import UnresolvedInterfaceError
from storykit.core.properties import default_for_field
from storykit.core.resolution import HtmlContent, read_html_content
from storykit.core.schema import (
    bare_instance,
    build_instance,
    is_collection_type,
    is_enum_type,
    is_literal_type,
    is_simple_type,
    is_union,
    is_value_type,
    schema_fields,
    unwrap_optional,
)

logger = logging.getLogger(__name__)

_TRUE_TEXT = "true"
_FALSE_TEXT = "false"


def create_instance(
    schema_type: type,
    values: dict[str, Any],
    deserializer: StructuredDeserializer | None = None,
) -> Any:
    """
    Create an instance of a props schema type from a property value map.

    Keys match property names case-insensitively; unknown keys and
    read-only properties are ignored. A value that fails to convert is
    logged and skipped, leaving that property at its default. Values the
    constructor itself rejects (validators, ``__post_init__``) are dropped
    one at a time until construction succeeds.

    Args:
        schema_type: Props schema type to instantiate
        values: Property name -> raw value
        deserializer: JSON deserializer for collection and complex values
            (defaults to the process-wide registry's)

    Returns:
        Instance of ``schema_type``

    Raises:
        UnresolvedInterfaceError: If a nested interface type has no
            concrete implementation
    """
    if deserializer is None:
        from storykit.core.registry import get_registry

        deserializer = get_registry().deserializer

    fields = {f.name.lower(): f for f in schema_fields(schema_type)}
    converted: dict[str, Any] = {}

    for key, raw in values.items():
        field = fields.get(str(key).lower())
        if field is None or not field.writable:
            logger.debug(f"Ignoring {key!r}: no writable property on {schema_type.__name__}")
            continue
        try:
            converted[field.name] = convert_value(raw, field.annotation, deserializer)
        except UnresolvedInterfaceError:
            raise
        except Exception as e:
            logger.warning(f"Error setting property {key}: {e}")

    return _build_keeping_valid(schema_type, converted)


def convert_value(value: Any, target_type: Any, deserializer: StructuredDeserializer) -> Any:
    """
    Convert one raw value to a property's declared type.

    Raises:
        ValueError, TypeError, KeyError: Value cannot be converted
        DeserializationError: JSON text or node does not fit the type
    """
    inner, optional = unwrap_optional(target_type)

    if value is None:
        if not optional and is_value_type(inner):
            raise ValueError(f"None is not a valid {getattr(inner, '__name__', inner)}")
        return None

    if inner is Any or inner is object:
        return value
    if inspect.isclass(inner) and type(value) is inner:
        return value

    if is_union(inner):
        return _convert_union(value, inner, deserializer)

    if is_enum_type(inner):
        return parse_enum(value, inner)
    if is_literal_type(inner):
        return deserializer.deserialize(value, inner)

    if inspect.isclass(inner) and issubclass(inner, str):
        text = value.name if isinstance(value, Enum) else str(value)
        return text if inner is str else inner(text)

    if inner is bool:
        if isinstance(value, str):
            return parse_bool(value)
        return bool(value)

    if is_simple_type(inner):
        return _convert_simple(value, inner)

    # Collections and complex types
    if _is_instance(value, inner):
        return value
    if inner is HtmlContent and isinstance(value, str):
        return read_html_content(value)
    if isinstance(value, str):
        if not value.strip():
            raise ValueError(f"Empty text cannot be read as {_label(inner)}")
        return deserializer.loads(value, target_type)
    if isinstance(value, (dict, list, tuple)) or (is_collection_type(inner) and isinstance(value, (set, frozenset))):
        return deserializer.deserialize(value, target_type)

    # Assumed pre-typed
    return value


def parse_bool(text: str) -> bool:
    """Parse ``"true"``/``"false"`` (case-insensitive, surrounding whitespace ignored)."""
    normalized = text.strip().lower()
    if normalized == _TRUE_TEXT:
        return True
    if normalized == _FALSE_TEXT:
        return False
    raise ValueError(f"String {text!r} was not recognized as a valid Boolean")


def _convert_union(value: Any, target: Any, deserializer: StructuredDeserializer) -> Any:
    for alternative in get_args(target):
        if alternative is type(None):
            continue
        try:
            return convert_value(value, alternative, deserializer)
        except UnresolvedInterfaceError:
            raise
        except Exception:
            continue
    raise ValueError(f"{value!r} does not match any of {_label(target)}")


def _convert_simple(value: Any, target: type) -> Any:
    """Numeric and temporal conversions, validated by pydantic in lax mode."""
    if isinstance(value, str):
        value = value.strip()
    elif isinstance(value, datetime) and target in (date, time):
        # pydantic only reads midnight datetimes as dates
        value = value.date() if target is date else value.time()
    elif type(value) is date and target is datetime:
        value = datetime.combine(value, time.min)
    return validate_value(value, target)


def _build_keeping_valid(schema_type: type, values: dict[str, Any]) -> Any:
    """
    Construct the instance, dropping supplied values the constructor rejects.

    The first supplied property (input order) whose removal lets
    construction succeed is dropped; failing that, the first remaining one
    is, and construction is retried. When even the defaults are rejected
    the instance is built without running its constructor.
    """
    remaining = dict(values)
    while True:
        try:
            return build_instance(schema_type, remaining, default_for_field)
        except Exception as e:
            reason = e
        if not remaining:
            break
        dropped = _first_rejected(schema_type, remaining) or next(iter(remaining))
        logger.warning(f"Error setting property {dropped} on {schema_type.__name__}: {reason}")
        del remaining[dropped]

    logger.warning(f"Could not construct {schema_type.__name__} from its defaults ({reason}); skipping its constructor")
    return bare_instance(schema_type, default_for_field)


def _first_rejected(schema_type: type, values: dict[str, Any]) -> str | None:
    for name in values:
        trial = {key: value for key, value in values.items() if key != name}
        try:
            build_instance(schema_type, trial, default_for_field)
        except Exception:
            continue
        return name
    return None


def _is_instance(value: Any, target: Any) -> bool:
    if not inspect.isclass(target):
        return False
    try:
        return isinstance(value, target)
    except TypeError:
        # Non-runtime-checkable protocols
        return False


def _label(target: Any) -> str:
    if inspect.isclass(target):
        return target.__name__
    return str(target).replace("typing.", "")
