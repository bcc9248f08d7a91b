"""
Structured (JSON) deserialization into annotated Python types.

Reads parsed JSON nodes (``dict``/``list``/scalars from ``json.loads``)
into the declared type of a schema property. Leaf and container types are
validated with a pydantic ``TypeAdapter`` (lax mode). This module adds
the rules props need on top of that:

- dataclasses, pydantic models and plain annotated classes are read with
  case-insensitive property names; unknown members are ignored
- enums by member name (case-insensitive) or value, ``Literal`` strings
  ignoring case
- interfaces, through an ``InterfaceResolver``
- JSON booleans are never read as numbers

Values that already have the target type pass through untouched.
"""

from __future__ import annotations

import collections.abc as abc
import functools
import inspect
import json
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, get_args, get_origin

from pydantic import PydanticUserError, TypeAdapter, ValidationError

from storykit.core.errors import (
    DeserializationError,
    ErrorContext,
    MalformedInputError,
    UnresolvedInterfaceError,
    make_deserialization_error,
)
from storykit.core.properties import default_for_field
from storykit.core.resolution import HtmlContent, InterfaceResolver, read_html_content
from storykit.core.schema import (
    build_instance,
    collection_element_type,
    collection_factory,
    is_collection_type,
    is_enum_type,
    is_interface,
    is_literal_type,
    is_schema_type,
    is_union,
    is_value_type,
    qualified_name,
    schema_fields,
    unwrap_annotated,
    unwrap_optional,
)

logger = logging.getLogger(__name__)


# =============================================================================
# pydantic validation
# =============================================================================


@functools.lru_cache(maxsize=256)
def _cached_adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def type_adapter(target: Any) -> TypeAdapter[Any] | None:
    """
    Get a pydantic ``TypeAdapter`` for a type.

    Returns:
        The adapter, or None when pydantic cannot build a schema for the type
    """
    try:
        return _cached_adapter(target)
    except PydanticUserError:
        return None
    except TypeError:
        # Unhashable annotations are not cached
        try:
            return TypeAdapter(target)
        except PydanticUserError:
            return None


def validate_value(value: Any, target: Any) -> Any:
    """
    Validate a value against a type with pydantic's lax conversions.

    Raises:
        ValidationError: Value does not fit the type (a ValueError)
        TypeError: pydantic cannot handle the type
    """
    adapter = type_adapter(target)
    if adapter is None:
        raise TypeError(f"Cannot convert {type(value).__name__} to {_type_label(target)}")
    return adapter.validate_python(value)


def _validation_error(error: ValidationError, path: str, target: Any) -> DeserializationError:
    first = error.errors()[0]
    location = path + "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in first["loc"])
    return make_deserialization_error(
        f"Expected {_type_label(target)}: {first['msg']}", location, _as_type(target)
    )


# =============================================================================
# Deserializer
# =============================================================================


class StructuredDeserializer:
    """
    Reads JSON text or parsed JSON nodes into typed values.

    Args:
        resolver: Interface resolution hook. Without one, reaching an
            interface type is a DeserializationError.
    """

    def __init__(self, resolver: InterfaceResolver | None = None) -> None:
        self.resolver = resolver

    def loads(self, text: str, target: Any) -> Any:
        """Parse JSON text and deserialize it into ``target``."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise make_deserialization_error(f"Invalid JSON: {e}", "$", _as_type(target)) from e
        return self.deserialize(data, target)

    def deserialize(self, data: Any, target: Any, path: str = "$") -> Any:
        """Deserialize a parsed JSON node into ``target``."""
        target, _ = unwrap_annotated(target)
        if is_interface(target):
            return self._read_interface(data, target, path)
        return self._read_type(data, target, path)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _read_type(self, data: Any, target: Any, path: str) -> Any:
        if target is Any or target is object:
            return data
        if is_union(target):
            return self._read_union(data, target, path)
        if is_literal_type(target):
            return self._read_literal(data, target, path)

        if data is None:
            if is_value_type(target):
                raise make_deserialization_error(
                    f"null is not a valid {_type_label(target)}", path, _as_type(target)
                )
            return None

        if inspect.isclass(target):
            if _is_bool_for_number(data, target):
                raise make_deserialization_error(
                    f"Expected {_type_label(target)}, got bool", path, target
                )
            if isinstance(data, target):
                return data
            if is_enum_type(target):
                return self._read_enum(data, target, path)
            if is_schema_type(target):
                return self._read_object(data, target, path)

        if _needs_walk(target):
            if is_collection_type(target):
                return self._read_collection(data, target, path)
            return self._read_mapping(data, target, path)

        return self._validate(data, target, path)

    def _validate(self, data: Any, target: Any, path: str) -> Any:
        adapter = type_adapter(target)
        if adapter is None:
            # No pydantic schema: let the type build itself from the node
            try:
                return target(data)
            except (TypeError, ValueError) as e:
                raise make_deserialization_error(
                    f"Cannot convert {type(data).__name__} to {_type_label(target)}: {e}",
                    path,
                    _as_type(target),
                ) from e
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise _validation_error(e, path, target) from e

    def _read_interface(self, data: Any, interface: type, path: str) -> Any:
        if self.resolver is None:
            raise make_deserialization_error(
                f"Cannot deserialize abstract type {qualified_name(interface)} without an interface resolver",
                path,
                interface,
            )
        if interface is HtmlContent:
            return read_html_content(data, path)

        try:
            concrete = self.resolver.resolve(interface)
        except UnresolvedInterfaceError as e:
            raise UnresolvedInterfaceError(e.interface_name, ErrorContext(path=path)) from None

        if data is None or isinstance(data, concrete):
            return data
        # The concrete type is read directly so the hook does not re-enter
        # for it; its own interface-typed fields resolve afresh.
        return self._read_type(data, concrete, path)

    # -------------------------------------------------------------------------
    # Readers
    # -------------------------------------------------------------------------

    def _read_union(self, data: Any, target: Any, path: str) -> Any:
        inner, optional = unwrap_optional(target)
        if data is None and optional:
            return None
        alternatives = get_args(inner) if is_union(inner) else (inner,)
        errors: list[str] = []
        for alternative in alternatives:
            if alternative is type(None):
                continue
            try:
                return self.deserialize(data, alternative, path)
            except UnresolvedInterfaceError:
                raise
            except DeserializationError as e:
                errors.append(e.message)
        raise make_deserialization_error(
            f"Value does not match any of {_type_label(target)}: {'; '.join(errors)}", path
        )

    def _read_literal(self, data: Any, target: Any, path: str) -> Any:
        choices = get_args(target)
        if data in choices:
            return data
        if isinstance(data, str):
            for choice in choices:
                if isinstance(choice, str) and choice.lower() == data.lower():
                    return choice
        raise make_deserialization_error(f"{data!r} is not one of {list(choices)}", path)

    def _read_enum(self, data: Any, target: type, path: str) -> Any:
        try:
            return parse_enum(data, target)
        except (KeyError, ValueError) as e:
            raise make_deserialization_error(
                f"{data!r} is not a member of {target.__name__}", path, target
            ) from e

    def _read_collection(self, data: Any, target: Any, path: str) -> Any:
        if not isinstance(data, (list, tuple)):
            raise make_deserialization_error(
                f"Expected JSON array for {_type_label(target)}, got {type(data).__name__}", path
            )
        args = get_args(target)
        factory = collection_factory(target)
        if factory is tuple and args and args[-1] is not Ellipsis:
            if len(args) != len(data):
                raise make_deserialization_error(
                    f"Expected {len(args)} items for {_type_label(target)}, got {len(data)}", path
                )
            return tuple(
                self.deserialize(item, arg, f"{path}[{i}]") for i, (item, arg) in enumerate(zip(data, args))
            )
        element_type = collection_element_type(target)
        return factory(self.deserialize(item, element_type, f"{path}[{i}]") for i, item in enumerate(data))

    def _read_mapping(self, data: Any, target: Any, path: str) -> Any:
        if not isinstance(data, dict):
            raise make_deserialization_error(
                f"Expected JSON object for {_type_label(target)}, got {type(data).__name__}", path
            )
        args = get_args(target)
        key_type, value_type = (args[0], args[1]) if len(args) == 2 else (Any, Any)
        return {
            self.deserialize(key, key_type, f"{path}.{key}"): self.deserialize(
                value, value_type, f"{path}.{key}"
            )
            for key, value in data.items()
        }

    def _read_object(self, data: Any, target: type, path: str) -> Any:
        if not isinstance(data, dict):
            raise make_deserialization_error(
                f"Expected JSON object for {target.__name__}, got {type(data).__name__}", path, target
            )
        fields = {f.name.lower(): f for f in schema_fields(target) if f.writable}
        values: dict[str, Any] = {}
        for key, raw in data.items():
            field = fields.get(str(key).lower())
            if field is None:
                continue
            values[field.name] = self.deserialize(raw, field.annotation, f"{path}.{key}")
        try:
            return build_instance(target, values, default_for_field)
        except (TypeError, ValueError) as e:
            raise make_deserialization_error(f"Cannot construct {target.__name__}: {e}", path, target) from e


def parse_enum(value: Any, enum_type: type) -> Any:
    """
    Parse an enum member.

    Strings match member names case-insensitively, then member values.
    Other values go through ``enum_type(value)``.

    Raises:
        KeyError: No member with that name or value
        ValueError: Non-string value that is not a member value
    """
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        text = value.strip()
        for member in enum_type:  # type: ignore[attr-defined]
            if member.name.lower() == text.lower():
                return member
        for member in enum_type:  # type: ignore[attr-defined]
            if isinstance(member.value, str) and member.value.lower() == text.lower():
                return member
        raise KeyError(value)
    return enum_type(value)


def parse_props_json(
    text: str,
    schema_type: type,
    deserializer: StructuredDeserializer,
) -> dict[str, Any]:
    """
    Read a whole JSON props document into a property value map.

    Top-level members are matched to properties case-insensitively and
    keyed by the declared property name. Scalars are kept (strings bound
    for an ``HtmlContent`` property become ``Markup``; numbers are
    narrowed to the declared numeric type); arrays and objects are
    deserialized into the declared type. Nulls and unknown members are
    dropped.

    Raises:
        MalformedInputError: If the text is not JSON or not a JSON object
        UnresolvedInterfaceError: If a nested interface cannot be resolved
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedInputError(f"Props JSON must be an object, got {type(data).__name__}")

    fields = {f.name.lower(): f for f in schema_fields(schema_type)}
    values: dict[str, Any] = {}

    for key, raw in data.items():
        field = fields.get(key.lower())
        if field is None or raw is None:
            continue
        inner, _ = unwrap_optional(field.annotation)

        if isinstance(raw, str):
            value: Any = read_html_content(raw) if inner is HtmlContent else raw
        elif isinstance(raw, bool):
            value = raw
        elif isinstance(raw, (int, float)):
            value = _narrow_number(raw, inner)
        else:
            try:
                value = deserializer.deserialize(raw, field.annotation, f"$.{key}")
            except UnresolvedInterfaceError:
                raise
            except DeserializationError as e:
                logger.warning(f"Error deserializing property {key}: {e}")
                continue

        values[field.name] = value

    return values




def _narrow_number(raw: int | float, target: Any) -> Any:
    """Give a JSON number the declared numeric type when it fits."""
    if not _is_number_type(target):
        return raw
    try:
        return validate_value(raw, target)
    except ValidationError:
        return raw


def _needs_walk(target: Any) -> bool:
    """True for containers whose items need the props reading rules."""
    origin = get_origin(target)
    if origin is None or not inspect.isclass(origin):
        return False
    if not (is_collection_type(target) or issubclass(origin, abc.Mapping)):
        return False
    return any(_has_props_rules(arg) for arg in get_args(target))


def _has_props_rules(tp: Any) -> bool:
    tp, _ = unwrap_annotated(tp)
    if tp is Ellipsis or tp is Any:
        return False
    if is_literal_type(tp):
        return True
    if is_union(tp) or get_origin(tp) is not None:
        return any(_has_props_rules(arg) for arg in get_args(tp))
    return is_enum_type(tp) or is_interface(tp) or is_schema_type(tp)


def _is_number_type(target: Any) -> bool:
    return (
        inspect.isclass(target)
        and issubclass(target, (int, float, Decimal))
        and not issubclass(target, (bool, Enum))
    )


def _is_bool_for_number(data: Any, target: type) -> bool:
    return isinstance(data, bool) and _is_number_type(target)


def _as_type(target: Any) -> type | None:
    return target if inspect.isclass(target) else None


def _type_label(target: Any) -> str:
    if inspect.isclass(target):
        return target.__name__
    return str(target).replace("typing.", "")
