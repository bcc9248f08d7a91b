"""
Core introspection engine: discovery, property metadata, coercion and
interface resolution. No rendering or I/O beyond module imports.
"""

from storykit.core.coercion import convert_value, create_instance, parse_bool
from storykit.core.deserializer import StructuredDeserializer, parse_enum, parse_props_json
from storykit.core.errors import (
    DeserializationError,
    ErrorContext,
    MalformedInputError,
    RegistrationError,
    RenderError,
    StorykitError,
    UnresolvedInterfaceError,
)
from storykit.core.models import (
    AtomicLevel,
    ComponentDefinition,
    DiscoveryResult,
    PropertyDescriptor,
    PropertyKind,
    SkipDiagnostic,
    StoryDefinition,
)
from storykit.core.properties import get_default_values, get_properties
from storykit.core.registry import (
    ComponentRegistry,
    bind_interface,
    discover_components,
    discover_stories_for_component,
    get_registry,
    register_module,
    register_package,
    register_stories,
    reset_registry,
)
from storykit.core.resolution import HtmlContent, InterfaceResolver
from storykit.core.schema import Description, DisplayName
from storykit.core.stories import ComponentStories

__all__ = [
    # Models
    "AtomicLevel",
    "ComponentDefinition",
    "DiscoveryResult",
    "PropertyDescriptor",
    "PropertyKind",
    "SkipDiagnostic",
    "StoryDefinition",
    # Schema markers
    "Description",
    "DisplayName",
    "HtmlContent",
    # Registry
    "ComponentRegistry",
    "ComponentStories",
    "bind_interface",
    "discover_components",
    "discover_stories_for_component",
    "get_registry",
    "register_module",
    "register_package",
    "register_stories",
    "reset_registry",
    # Properties and coercion
    "convert_value",
    "create_instance",
    "get_default_values",
    "get_properties",
    "parse_bool",
    # Deserialization
    "InterfaceResolver",
    "StructuredDeserializer",
    "parse_enum",
    "parse_props_json",
    # Errors
    "DeserializationError",
    "ErrorContext",
    "MalformedInputError",
    "RegistrationError",
    "RenderError",
    "StorykitError",
    "UnresolvedInterfaceError",
]
