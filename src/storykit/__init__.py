"""
storykit - component preview and story introspection for Jinja2 component libraries.

Discovers components and their stories from registered Python packages,
describes their props schemas for editor UIs, turns loosely typed input
into typed props instances and renders previews.
"""

from __future__ import annotations

from storykit._version import get_version
from storykit.core import (
    AtomicLevel,
    ComponentDefinition,
    ComponentStories,
    Description,
    DisplayName,
    HtmlContent,
    PropertyDescriptor,
    StoryDefinition,
    StorykitError,
    UnresolvedInterfaceError,
    create_instance,
    discover_components,
    discover_stories_for_component,
    get_default_values,
    get_properties,
    get_registry,
    register_package,
    register_stories,
)

__version__ = get_version()

__all__ = [
    "__version__",
    "AtomicLevel",
    "ComponentDefinition",
    "ComponentStories",
    "Description",
    "DisplayName",
    "HtmlContent",
    "PropertyDescriptor",
    "StoryDefinition",
    "StorykitError",
    "UnresolvedInterfaceError",
    "create_instance",
    "discover_components",
    "discover_stories_for_component",
    "get_default_values",
    "get_properties",
    "get_registry",
    "register_package",
    "register_stories",
]
