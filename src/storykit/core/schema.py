"""
Props schema introspection.

A props schema is any of:

- a ``@dataclass`` class,
- a pydantic ``BaseModel`` subclass,
- a plain class whose public attributes are declared with annotations
  (constructed with no arguments, then populated attribute by attribute).

Display metadata can be attached with ``Annotated`` markers::

    @dataclass
    class ButtonProps:
        text: Annotated[str, DisplayName("Label"), Description("Button caption")] = "Click me"
        max_width: int = field(default=0, metadata={"display_name": "Max width"})

pydantic ``Field(title=..., description=...)`` is honoured as well.
"""

from __future__ import annotations

import collections
import collections.abc as abc
import copy
import dataclasses
import inspect
import logging
import types
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

logger = logging.getLogger(__name__)

MISSING: Any = dataclasses.MISSING

# Types that travel as a single form/query value
SIMPLE_TYPES: tuple[type, ...] = (bool, int, float, str, Decimal, datetime, date, time)

# Value types whose absence is not representable without Optional
VALUE_TYPES: tuple[type, ...] = (bool, int, float, Decimal, datetime, date, time)

_COLLECTION_ORIGINS: frozenset[Any] = frozenset(
    {
        list,
        tuple,
        set,
        frozenset,
        collections.deque,
        abc.Iterable,
        abc.Collection,
        abc.Sequence,
        abc.MutableSequence,
        abc.Set,
        abc.MutableSet,
    }
)


# =============================================================================
# Annotation markers
# =============================================================================


class DisplayName:
    """``Annotated`` marker overriding a property's display name."""

    def __init__(self, text: str):
        self.text = text

    def __repr__(self) -> str:
        return f"DisplayName({self.text!r})"


class Description:
    """``Annotated`` marker attaching a description to a property."""

    def __init__(self, text: str):
        self.text = text

    def __repr__(self) -> str:
        return f"Description({self.text!r})"


# =============================================================================
# Type classification
# =============================================================================


def unwrap_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    """Strip ``Annotated`` layers, returning the base type and collected metadata."""
    extras: tuple[Any, ...] = ()
    while get_origin(tp) is Annotated:
        args = get_args(tp)
        tp = args[0]
        extras = extras + tuple(args[1:])
    return tp, extras


def is_union(tp: Any) -> bool:
    return get_origin(tp) in (Union, types.UnionType)


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """
    Split ``Optional[X]`` / ``X | None`` into ``(X, True)``.

    Unions with several non-None members keep the remaining union.
    Anything else comes back as ``(tp, False)``.
    """
    tp, _ = unwrap_annotated(tp)
    if not is_union(tp):
        return tp, False
    args = get_args(tp)
    rest = tuple(a for a in args if a is not type(None))
    if len(rest) == len(args):
        return tp, False
    if len(rest) == 1:
        return unwrap_annotated(rest[0])[0], True
    return Union[rest], True  # type: ignore[return-value]


def is_enum_type(tp: Any) -> bool:
    return inspect.isclass(tp) and issubclass(tp, Enum)


def is_literal_type(tp: Any) -> bool:
    return get_origin(tp) is Literal


def enum_choices(tp: Any) -> tuple[str, ...]:
    """Member names of an enum (declaration order) or the values of a Literal."""
    if is_enum_type(tp):
        return tuple(member.name for member in tp)
    if is_literal_type(tp):
        return tuple(str(v) for v in get_args(tp))
    return ()


def is_pydantic_model(tp: Any) -> bool:
    return inspect.isclass(tp) and issubclass(tp, BaseModel)


def is_interface(tp: Any) -> bool:
    """True for Protocol classes and abstract classes."""
    if not inspect.isclass(tp):
        return False
    if getattr(tp, "_is_protocol", False):
        return True
    return inspect.isabstract(tp)


def is_collection_type(tp: Any) -> bool:
    """
    True for list/sequence/set/tuple/iterable abstractions.

    Text and byte strings and mappings are never collections.
    """
    tp, _ = unwrap_annotated(tp)
    origin = get_origin(tp) or tp
    if not inspect.isclass(origin):
        return False
    if issubclass(origin, (str, bytes, bytearray)) or issubclass(origin, abc.Mapping):
        return False
    if origin in _COLLECTION_ORIGINS:
        return True
    # NamedTuple subclasses are records, not collections
    if issubclass(origin, tuple) and hasattr(origin, "_fields"):
        return False
    return issubclass(origin, (list, tuple, set, frozenset, collections.deque))


def collection_element_type(tp: Any) -> Any:
    tp, _ = unwrap_annotated(tp)
    args = [a for a in get_args(tp) if a is not Ellipsis]
    return args[0] if args else Any


def collection_factory(tp: Any) -> Callable[[Any], Any]:
    """Concrete constructor for a collection annotation (``list`` for abstract shapes)."""
    tp, _ = unwrap_annotated(tp)
    origin = get_origin(tp) or tp
    if origin in (list, tuple, set, frozenset, collections.deque):
        return origin
    if origin in (abc.Set, abc.MutableSet):
        return set
    if inspect.isclass(origin) and origin not in _COLLECTION_ORIGINS and not inspect.isabstract(origin):
        return origin
    return list


def is_simple_type(tp: Any) -> bool:
    """True for primitives, text, Decimal, temporal types, enums and Literals."""
    if is_enum_type(tp) or is_literal_type(tp):
        return True
    return inspect.isclass(tp) and issubclass(tp, SIMPLE_TYPES)


def is_value_type(tp: Any) -> bool:
    if is_enum_type(tp) or is_literal_type(tp):
        return True
    return inspect.isclass(tp) and issubclass(tp, VALUE_TYPES)


def is_schema_type(tp: Any) -> bool:
    """True for classes that are read field by field (dataclass, pydantic, annotated class)."""
    if not inspect.isclass(tp) or is_simple_type(tp) or is_collection_type(tp):
        return False
    if dataclasses.is_dataclass(tp) or is_pydantic_model(tp):
        return True
    if issubclass(tp, abc.Mapping) or tp.__module__ == "builtins":
        return False
    return bool(_public_hints(tp))


def qualified_name(tp: Any) -> str:
    module = getattr(tp, "__module__", None)
    name = getattr(tp, "__qualname__", None) or getattr(tp, "__name__", repr(tp))
    return f"{module}.{name}" if module else name


# =============================================================================
# Schema fields
# =============================================================================


@dataclass(frozen=True)
class SchemaField:
    """One public property of a schema type."""

    name: str
    annotation: Any
    declared_on: type
    default: Any = MISSING
    default_factory: Callable[[], Any] | None = None
    display_name: str | None = None
    description: str | None = None
    writable: bool = True

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not None

    def make_default(self) -> Any:
        """Build the declared default (a fresh copy each call)."""
        if self.default_factory is not None:
            return self.default_factory()
        return copy.deepcopy(self.default)


def schema_fields(schema_type: type) -> list[SchemaField]:
    """
    List the public properties of a schema type in declaration order.

    Properties declared only on an interface base (Protocol or abstract
    class) and not redeclared on a concrete class are left out.
    """
    if dataclasses.is_dataclass(schema_type):
        fields = _dataclass_fields(schema_type)
    elif is_pydantic_model(schema_type):
        fields = _pydantic_fields(schema_type)
    else:
        fields = _plain_fields(schema_type)

    seen = {f.name for f in fields}
    fields.extend(f for f in _property_fields(schema_type) if f.name not in seen)

    return [f for f in fields if f.declared_on is schema_type or not is_interface(f.declared_on)]


def find_field(schema_type: type, name: str) -> SchemaField | None:
    """Case-insensitive property lookup."""
    wanted = name.lower()
    for f in schema_fields(schema_type):
        if f.name.lower() == wanted:
            return f
    return None


def _resolved_hints(schema_type: type) -> dict[str, Any]:
    try:
        return get_type_hints(schema_type, include_extras=True)
    except Exception as e:
        # Unresolvable forward references: fall back to raw annotations
        logger.debug(f"Could not resolve type hints for {qualified_name(schema_type)}: {e}")
        raw: dict[str, Any] = {}
        for klass in reversed(schema_type.__mro__):
            raw.update(inspect.get_annotations(klass))
        return raw


def _public_hints(schema_type: type) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for name, hint in _resolved_hints(schema_type).items():
        base = unwrap_annotated(hint)[0]
        if name.startswith("_") or base is ClassVar or get_origin(base) is ClassVar:
            continue
        result[name] = hint
    return result


def _declaring_class(schema_type: type, name: str) -> type:
    for klass in schema_type.__mro__:
        if name in inspect.get_annotations(klass) or name in vars(klass):
            return klass
    return schema_type


def _markers(extras: tuple[Any, ...]) -> tuple[str | None, str | None]:
    display = next((m.text for m in extras if isinstance(m, DisplayName)), None)
    description = next((m.text for m in extras if isinstance(m, Description)), None)
    return display, description


def _dataclass_fields(schema_type: type) -> list[SchemaField]:
    hints = _resolved_hints(schema_type)
    result: list[SchemaField] = []
    for f in dataclasses.fields(schema_type):
        if f.name.startswith("_"):
            continue
        annotation, extras = unwrap_annotated(hints.get(f.name, f.type))
        display, description = _markers(extras)
        result.append(
            SchemaField(
                name=f.name,
                annotation=annotation,
                declared_on=_declaring_class(schema_type, f.name),
                default=f.default,
                default_factory=None if f.default_factory is MISSING else f.default_factory,
                display_name=f.metadata.get("display_name", display),
                description=f.metadata.get("description", description),
                writable=f.init,
            )
        )
    return result


def _pydantic_fields(schema_type: type[BaseModel]) -> list[SchemaField]:
    result: list[SchemaField] = []
    for name, info in schema_type.model_fields.items():
        # pydantic has already moved Annotated extras into info.metadata
        annotation, extras = unwrap_annotated(info.annotation)
        display, description = _markers(extras + tuple(info.metadata))
        factory = info.default_factory
        result.append(
            SchemaField(
                name=name,
                annotation=annotation,
                declared_on=_declaring_class(schema_type, name),
                default=MISSING if info.is_required() or factory is not None else info.default,
                default_factory=factory,  # type: ignore[arg-type]
                display_name=info.title or display,
                description=info.description or description,
            )
        )
    return result


def _plain_fields(schema_type: type) -> list[SchemaField]:
    result: list[SchemaField] = []
    for name, hint in _public_hints(schema_type).items():
        annotation, extras = unwrap_annotated(hint)
        display, description = _markers(extras)
        default = inspect.getattr_static(schema_type, name, MISSING)
        if isinstance(default, property):
            continue
        result.append(
            SchemaField(
                name=name,
                annotation=annotation,
                declared_on=_declaring_class(schema_type, name),
                default=default,
                display_name=display,
                description=description,
            )
        )
    return result


def _property_fields(schema_type: type) -> list[SchemaField]:
    """Public ``@property`` members with a return annotation."""
    result: list[SchemaField] = []
    for klass in reversed(schema_type.__mro__):
        if klass is object or klass is BaseModel:
            continue
        for name, member in vars(klass).items():
            if name.startswith("_") or not isinstance(member, property) or member.fget is None:
                continue
            try:
                hint = get_type_hints(member.fget, include_extras=True).get("return", Any)
            except Exception:
                hint = inspect.get_annotations(member.fget).get("return", Any)
            annotation, extras = unwrap_annotated(hint)
            display, description = _markers(extras)
            # Later (more derived) declarations replace earlier ones
            result = [f for f in result if f.name != name]
            result.append(
                SchemaField(
                    name=name,
                    annotation=annotation,
                    declared_on=klass,
                    default=MISSING,
                    display_name=display,
                    description=description or inspect.getdoc(member),
                    writable=member.fset is not None,
                )
            )
    return result


# =============================================================================
# Construction
# =============================================================================


def build_instance(
    schema_type: type,
    values: dict[str, Any],
    fill_missing: Callable[[SchemaField], Any],
) -> Any:
    """
    Construct a schema instance from already-typed property values.

    Keys must be exact field names. Fields absent from ``values`` keep
    their declared default; required fields without one are populated with
    ``fill_missing(field)``. Read-only properties are ignored.
    """
    fields = schema_fields(schema_type)

    if dataclasses.is_dataclass(schema_type):
        init_names = {f.name for f in dataclasses.fields(schema_type) if f.init}
        instance = schema_type(**_constructor_kwargs(fields, init_names, values, fill_missing))
        handled = init_names
    elif is_pydantic_model(schema_type):
        model_names = set(schema_type.model_fields)
        instance = schema_type.model_construct(
            **_constructor_kwargs(fields, model_names, values, fill_missing)
        )
        handled = model_names
    else:
        instance = schema_type()
        handled = set()
        for f in fields:
            if f.writable and f.name not in values and not f.has_default and not hasattr(instance, f.name):
                values = {**values, f.name: fill_missing(f)}

    for f in fields:
        if f.name in handled or f.name not in values or not f.writable:
            continue
        try:
            setattr(instance, f.name, values[f.name])
        except (AttributeError, TypeError) as e:
            logger.warning(f"Error setting property {f.name} on {schema_type.__name__}: {e}")
    return instance


def bare_instance(schema_type: type, fill_missing: Callable[[SchemaField], Any]) -> Any:
    """
    Build an instance without running its constructor or validators.

    Every writable field gets its declared default, or ``fill_missing(field)``.
    """
    if is_pydantic_model(schema_type):
        return schema_type.model_construct()

    instance = object.__new__(schema_type)
    for f in schema_fields(schema_type):
        if not f.writable:
            continue
        value = f.make_default() if f.has_default else fill_missing(f)
        try:
            object.__setattr__(instance, f.name, value)
        except AttributeError as e:
            logger.warning(f"Error setting property {f.name} on {schema_type.__name__}: {e}")
    return instance


def _constructor_kwargs(
    fields: list[SchemaField],
    names: set[str],
    values: dict[str, Any],
    fill_missing: Callable[[SchemaField], Any],
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for f in fields:
        if f.name not in names:
            continue
        if f.name in values:
            kwargs[f.name] = values[f.name]
        elif not f.has_default:
            kwargs[f.name] = fill_missing(f)
    return kwargs


def readable_values(instance: Any) -> dict[str, Any]:
    """Read every public property of a schema instance."""
    values: dict[str, Any] = {}
    for f in schema_fields(type(instance)):
        try:
            values[f.name] = getattr(instance, f.name)
        except AttributeError:
            continue
    return values
