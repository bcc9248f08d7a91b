"""
Data model for discovered components, stories, and property metadata.

Component and property records carry live Python type objects, so they
are frozen dataclasses. Stories are plain data and use pydantic.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# =============================================================================
# Components
# =============================================================================


class AtomicLevel(StrEnum):
    """Atomic design category of a component, in display order."""

    ATOMS = "atoms"
    MOLECULES = "molecules"
    ORGANISMS = "organisms"
    TEMPLATES = "templates"
    PAGES = "pages"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: str | None) -> AtomicLevel:
        """Parse a category segment case-insensitively (UNKNOWN if unrecognised)."""
        if not text:
            return cls.UNKNOWN
        try:
            return cls(text.lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def order(self) -> int:
        return _LEVEL_ORDER[self]


_LEVEL_ORDER: dict[AtomicLevel, int] = {
    AtomicLevel.ATOMS: 1,
    AtomicLevel.MOLECULES: 2,
    AtomicLevel.ORGANISMS: 3,
    AtomicLevel.TEMPLATES: 4,
    AtomicLevel.PAGES: 5,
    AtomicLevel.UNKNOWN: 99,
}


@dataclass(frozen=True)
class ComponentDefinition:
    """
    A discovered component.

    Attributes:
        name: Component name (``Button`` for ``ButtonStories``)
        category: Category segment as found in the module path
        atomic_level: Parsed category
        path: Template reference handed to the renderer
        resource_name: Qualified name of the stories type
        model_type: Props schema type, if one was found
    """

    name: str
    category: str
    atomic_level: AtomicLevel
    path: str
    resource_name: str = ""
    model_type: type | None = None

    @property
    def order(self) -> int:
        return self.atomic_level.order

    @property
    def identity(self) -> tuple[str, str]:
        return (self.category.lower(), self.name.lower())

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "atomic_level": str(self.atomic_level),
            "path": self.path,
            "resource_name": self.resource_name,
            "model_type": _type_name(self.model_type),
            "order": self.order,
        }


# =============================================================================
# Stories
# =============================================================================


class StoryDefinition(BaseModel):
    """
    A named preset of property values for one component.

    Example:
        StoryDefinition(
            component_name="Button",
            name="primary",
            display_name="Primary",
            description="Default call to action",
            properties={"text": "Save", "variant": Variant.PRIMARY},
        )
    """

    component_name: str = Field(default="", description="Owning component name")
    name: str = Field(description="Story key, unique per component")
    display_name: str = Field(default="", description="Human-readable title")
    description: str = Field(default="", description="What this variant shows")
    properties: dict[str, Any] = Field(
        default_factory=dict, description="Property name -> preset value"
    )

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


# =============================================================================
# Property metadata
# =============================================================================


class PropertyKind(StrEnum):
    """Semantic classification of a schema property."""

    PRIMITIVE = "primitive"
    ENUM = "enum"
    COLLECTION = "collection"
    COMPLEX = "complex"


@dataclass(frozen=True)
class PropertyDescriptor:
    """Metadata about one property of a props schema type."""

    name: str
    type: Any
    kind: PropertyKind
    nullable: bool = False
    default_value: Any = None
    enum_choices: tuple[str, ...] | None = None
    display_name: str = ""
    description: str | None = None

    @property
    def is_enum(self) -> bool:
        return self.kind == PropertyKind.ENUM

    @property
    def is_collection(self) -> bool:
        return self.kind == PropertyKind.COLLECTION

    @property
    def is_complex(self) -> bool:
        # Collections count as complex: they cannot travel as a single form value
        return self.kind in (PropertyKind.COLLECTION, PropertyKind.COMPLEX)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "name": self.name,
            "type": _type_name(self.type),
            "kind": str(self.kind),
            "nullable": self.nullable,
            "default_value": _jsonable(self.default_value),
            "enum_choices": list(self.enum_choices) if self.enum_choices is not None else None,
            "display_name": self.display_name,
            "description": self.description,
        }


# =============================================================================
# Discovery results
# =============================================================================


@dataclass(frozen=True)
class SkipDiagnostic:
    """Record of something discovery skipped instead of failing."""

    source: str
    stage: str
    reason: str

    def __str__(self) -> str:
        return f"[{self.stage}] {self.source}: {self.reason}"


@dataclass
class DiscoveryResult(Generic[T]):
    """
    Items produced by a best-effort discovery pass plus what was skipped.

    Iterating or taking ``len()`` works on the items.
    """

    items: T
    diagnostics: list[SkipDiagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)  # type: ignore[call-overload]

    def __len__(self) -> int:
        return len(self.items)  # type: ignore[arg-type]


def _type_name(tp: Any) -> str | None:
    if tp is None:
        return None
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")


def _jsonable(value: Any) -> Any:
    """Best-effort conversion of a default value for JSON output."""
    if isinstance(value, Enum):
        return value.name
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)
