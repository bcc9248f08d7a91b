"""
Component registry: discovery of components and story providers.

Component modules are registered explicitly, usually once at host
start-up::

    from storykit import get_registry

    registry = get_registry()
    registry.register_package("myapp.components")

Discovery then walks only what was registered, in registration order:

- classes named ``<Name>Stories`` in a module under a ``components``
  package become components; the package segment after ``components``
  (``atoms``, ``molecules``, ...) is the category;
- concrete ``ComponentStories`` subclasses become story providers.

Discovery is best-effort. Anything that cannot be imported, enumerated or
instantiated is skipped and reported in ``DiscoveryResult.diagnostics``.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import sys
from collections.abc import Iterator
from types import ModuleType

from storykit.core.deserializer import StructuredDeserializer
from storykit.core.errors import RegistrationError
from storykit.core.models import (
    AtomicLevel,
    ComponentDefinition,
    DiscoveryResult,
    SkipDiagnostic,
    StoryDefinition,
)
from storykit.core.resolution import InterfaceResolver
from storykit.core.schema import qualified_name
from storykit.core.stories import STORIES_SUFFIX, ComponentStories

logger = logging.getLogger(__name__)

COMPONENTS_SEGMENT = "components"
PROPS_SUFFIX = "Props"
TEMPLATE_PATTERN = "components/{category}/{name}/{name}.html"


def category_for(module: ModuleType) -> str | None:
    """
    Category of a module under a ``components`` package.

    ``myapp.components.atoms.button`` -> ``atoms``. Returns ``unknown``
    when nothing follows ``components`` and None when the module is not
    under a ``components`` package at all.
    """
    parts = module.__name__.split(".")
    # Only package segments count; a module's own file name is not a category
    package_parts = parts if hasattr(module, "__path__") else parts[:-1]
    for i, part in enumerate(package_parts):
        if part.lower() == COMPONENTS_SEGMENT:
            if i + 1 < len(package_parts):
                return package_parts[i + 1]
            return AtomicLevel.UNKNOWN.value
    return None


class ComponentRegistry:
    """
    Registry of component modules and story providers.

    Supports:
    - Module and package registration (register_module, register_package)
    - Explicit story provider registration (register_stories)
    - Explicit interface bindings for deserialization (bind_interface)

    Owns the interface resolver (and its cache) used to deserialize props.
    """

    def __init__(self) -> None:
        self._entries: list[ModuleType | type] = []
        self._registration_diagnostics: list[SkipDiagnostic] = []
        self.resolver = InterfaceResolver(modules=self.modules)
        self.deserializer = StructuredDeserializer(self.resolver)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_module(self, module: ModuleType | str) -> ModuleType | None:
        """
        Register a module whose classes take part in discovery.

        Args:
            module: Module object or dotted module name to import

        Returns:
            The registered module, or None if it could not be imported
        """
        if isinstance(module, str):
            try:
                module = importlib.import_module(module)
            except Exception as e:
                self._registration_diagnostics.append(SkipDiagnostic(module, "import", str(e)))
                logger.warning(f"Skipping component module {module}: {e}")
                return None

        if not any(entry is module for entry in self._entries):
            self._entries.append(module)
            logger.debug(f"Registered component module {module.__name__}")
        return module

    def register_package(self, package: ModuleType | str) -> list[ModuleType]:
        """
        Register a package and every module below it.

        Submodules are registered in sorted name order. Submodules that
        fail to import are reported as diagnostics.

        Returns:
            Registered modules, package first
        """
        root = self.register_module(package)
        if root is None:
            return []

        registered = [root]
        search_path = getattr(root, "__path__", None)
        if search_path is None:
            return registered

        def on_error(name: str) -> None:
            self._registration_diagnostics.append(
                SkipDiagnostic(name, "import", "package failed to import while walking")
            )
            logger.warning(f"Skipping component package {name}: import failed")

        infos = list(pkgutil.walk_packages(search_path, prefix=f"{root.__name__}.", onerror=on_error))
        for info in sorted(infos, key=lambda i: i.name):
            module = self.register_module(info.name)
            if module is not None:
                registered.append(module)

        logger.info(f"Registered {len(registered)} module(s) from {root.__name__}")
        return registered

    def register_stories(self, provider: type[ComponentStories]) -> type[ComponentStories]:
        """
        Register a story provider class explicitly. Usable as a decorator.

        Raises:
            RegistrationError: If the class is not a concrete ComponentStories
        """
        if not inspect.isclass(provider) or not issubclass(provider, ComponentStories):
            raise RegistrationError(f"Story provider {provider!r} must extend ComponentStories")
        if inspect.isabstract(provider):
            raise RegistrationError(f"Story provider {provider.__name__} is abstract")

        if not any(entry is provider for entry in self._entries):
            self._entries.append(provider)
            logger.debug(f"Registered story provider {qualified_name(provider)}")
        return provider

    def bind_interface(self, interface: type, concrete: type) -> None:
        """Bind an interface to a concrete type for props deserialization."""
        self.resolver.bind(interface, concrete)

    def modules(self) -> list[ModuleType]:
        """Registered modules in registration order."""
        return [entry for entry in self._entries if isinstance(entry, ModuleType)]

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def discover_components(self) -> DiscoveryResult[list[ComponentDefinition]]:
        """
        Discover components from ``<Name>Stories`` classes.

        Returns:
            Components ordered by category order then name, one per
            (category, name); the first registered wins.
        """
        diagnostics = list(self._registration_diagnostics)
        found: list[ComponentDefinition] = []

        for cls, module, explicit in self._candidate_classes(diagnostics):
            name = cls.__name__
            if not name.endswith(STORIES_SUFFIX) or len(name) <= len(STORIES_SUFFIX):
                continue
            category = getattr(cls, "category", None) or category_for(module)
            if category is None:
                if not explicit:
                    continue
                category = AtomicLevel.UNKNOWN.value
            try:
                found.append(self._build_definition(cls, module, category))
            except Exception as e:
                diagnostics.append(SkipDiagnostic(qualified_name(cls), "component", str(e)))
                logger.warning(f"Skipping component {qualified_name(cls)}: {e}")

        components: list[ComponentDefinition] = []
        seen: set[tuple[str, str]] = set()
        # sorted() is stable, so duplicates keep registration order
        for component in sorted(found, key=lambda c: (c.order, c.name.lower())):
            if component.identity in seen:
                continue
            seen.add(component.identity)
            components.append(component)

        logger.debug(f"Discovered {len(components)} component(s)")
        return DiscoveryResult(components, diagnostics)

    def discover_stories(self) -> DiscoveryResult[dict[str, ComponentStories]]:
        """
        Instantiate every concrete story provider.

        Returns:
            Providers keyed by lowercased component name. When two
            providers claim the same component, the first registered wins
            and the other is reported as a ``duplicate`` diagnostic.
        """
        diagnostics = list(self._registration_diagnostics)
        providers: dict[str, ComponentStories] = {}

        for cls, _module, _explicit in self._candidate_classes(diagnostics):
            if not issubclass(cls, ComponentStories) or inspect.isabstract(cls):
                continue
            try:
                instance = cls()
                key = str(instance.component_name).lower()
            except Exception as e:
                diagnostics.append(SkipDiagnostic(qualified_name(cls), "instantiate", str(e)))
                logger.warning(f"Skipping story provider {qualified_name(cls)}: {e}")
                continue

            if not key:
                diagnostics.append(SkipDiagnostic(qualified_name(cls), "instantiate", "no component name"))
                continue
            if key in providers:
                kept = qualified_name(type(providers[key]))
                diagnostics.append(
                    SkipDiagnostic(qualified_name(cls), "duplicate", f"component already provided by {kept}")
                )
                logger.warning(f"Ignoring story provider {qualified_name(cls)}: {key} already provided by {kept}")
                continue
            providers[key] = instance

        return DiscoveryResult(providers, diagnostics)

    def discover_stories_for_component(self, component_name: str) -> list[StoryDefinition]:
        """
        Get all stories for a component (case-insensitive name).

        A provider that raises from ``get_stories()`` yields no stories.
        """
        provider = self.discover_stories().items.get(component_name.lower())
        if provider is None:
            return []

        try:
            stories = list(provider.get_stories())
        except Exception as e:
            logger.warning(f"Error loading stories for {component_name}: {e}")
            return []

        return [
            story if story.component_name else story.model_copy(update={"component_name": provider.component_name})
            for story in stories
        ]

    def find_component(self, component_name: str) -> ComponentDefinition | None:
        """Find a discovered component by name (case-insensitive)."""
        wanted = component_name.lower()
        for component in self.discover_components():
            if component.name.lower() == wanted:
                return component
        return None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _candidate_classes(
        self, diagnostics: list[SkipDiagnostic]
    ) -> Iterator[tuple[type, ModuleType, bool]]:
        """Yield ``(class, module, explicit)`` in registration order, each class once."""
        seen: set[int] = set()
        for entry in list(self._entries):
            if isinstance(entry, ModuleType):
                try:
                    classes = _classes_defined_in(entry)
                except Exception as e:
                    diagnostics.append(SkipDiagnostic(entry.__name__, "enumerate", str(e)))
                    logger.warning(f"Skipping module {entry.__name__}: {e}")
                    continue
                for cls in classes:
                    if id(cls) not in seen:
                        seen.add(id(cls))
                        yield cls, entry, False
            elif id(entry) not in seen:
                seen.add(id(entry))
                module = sys.modules.get(entry.__module__)
                if module is None:
                    diagnostics.append(SkipDiagnostic(qualified_name(entry), "enumerate", "defining module not loaded"))
                    continue
                yield entry, module, True

    def _build_definition(self, cls: type, module: ModuleType, category: str) -> ComponentDefinition:
        name = cls.__name__[: -len(STORIES_SUFFIX)]
        template = getattr(cls, "template", None)
        return ComponentDefinition(
            name=name,
            category=category,
            atomic_level=AtomicLevel.parse(category),
            path=template or TEMPLATE_PATTERN.format(category=category, name=name),
            resource_name=qualified_name(cls),
            model_type=self._find_props_type(cls, module, name),
        )

    def _find_props_type(self, cls: type, module: ModuleType, component_name: str) -> type | None:
        if issubclass(cls, ComponentStories):
            declared = cls.props_type()
            if declared is not None:
                return declared

        wanted = f"{component_name}{PROPS_SUFFIX}".lower()
        # Same module first, then registered siblings in the same package
        parent = module.__name__.rpartition(".")[0]
        candidates = [module] + [
            m for m in self.modules() if m is not module and m.__name__.rpartition(".")[0] == parent
        ]
        for candidate in candidates:
            try:
                classes = _classes_defined_in(candidate)
            except Exception:
                continue
            for klass in classes:
                if klass.__name__.lower() == wanted:
                    return klass
        return None


def _classes_defined_in(module: ModuleType) -> list[type]:
    """Classes defined (not merely imported) in a module, in name order."""
    return [
        obj
        for _name, obj in inspect.getmembers(module, inspect.isclass)
        if obj.__module__ == module.__name__
    ]


# Global registry instance
_registry: ComponentRegistry | None = None


def get_registry() -> ComponentRegistry:
    """
    Get the process-wide component registry.

    Created empty on first use; hosts populate it at start-up.
    """
    global _registry
    if _registry is None:
        _registry = ComponentRegistry()
    return _registry


def reset_registry() -> None:
    """Discard the process-wide registry (and its resolver cache)."""
    global _registry
    _registry = None


def register_package(package: ModuleType | str) -> list[ModuleType]:
    """Register a component package in the global registry."""
    return get_registry().register_package(package)


def register_module(module: ModuleType | str) -> ModuleType | None:
    """Register a component module in the global registry."""
    return get_registry().register_module(module)


def register_stories(provider: type[ComponentStories]) -> type[ComponentStories]:
    """Register a story provider in the global registry. Usable as a decorator."""
    return get_registry().register_stories(provider)


def bind_interface(interface: type, concrete: type) -> None:
    """Bind an interface to a concrete type in the global registry."""
    get_registry().bind_interface(interface, concrete)


def discover_components() -> DiscoveryResult[list[ComponentDefinition]]:
    return get_registry().discover_components()


def discover_stories_for_component(component_name: str) -> list[StoryDefinition]:
    return get_registry().discover_stories_for_component(component_name)
