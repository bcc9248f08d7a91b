"""
Interface-to-concrete type resolution.

The structured deserializer consults an ``InterfaceResolver`` whenever a
declared property type is an interface (a Protocol or an abstract class).
Resolution order:

1. Built-in bindings (``HtmlContent`` -> ``markupsafe.Markup``).
2. Explicit bindings registered by the host with ``bind()``.
3. Naming convention: ``pkg.mod.IWidget`` -> ``pkg.mod.Widget``. The
   concrete type must have exactly that qualified name (nested interfaces
   map to a sibling in the same enclosing class). Registered modules are
   searched only for re-exports of that type; a ``Widget`` defined in any
   other module needs an explicit ``bind()``.

Successful lookups are cached per interface for the lifetime of the
resolver. The cache is never invalidated: component modules are fixed once
the host has registered them. ``scan_count`` counts naming-convention
scans so tests can observe the memoization.
"""

from __future__ import annotations

import inspect
import logging
import sys
import threading
from collections.abc import Callable, Iterable
from types import ModuleType
from typing import Any, Protocol, runtime_checkable

from markupsafe import Markup

from storykit.core.errors import RegistrationError, UnresolvedInterfaceError, make_deserialization_error
from storykit.core.schema import is_interface, qualified_name

logger = logging.getLogger(__name__)


@runtime_checkable
class HtmlContent(Protocol):
    """A renderable HTML fragment: anything implementing ``__html__``."""

    def __html__(self) -> str: ...


BUILTIN_BINDINGS: dict[type, type] = {
    HtmlContent: Markup,
}


def read_html_content(data: Any, path: str = "$") -> Markup:
    """
    Read an ``HtmlContent`` value from a parsed JSON node.

    Strings wrap directly into ``Markup``; ``null`` is an empty fragment.
    """
    if data is None:
        return Markup("")
    if isinstance(data, str):
        return data if isinstance(data, Markup) else Markup(data)
    if hasattr(data, "__html__"):
        return Markup(data)
    raise make_deserialization_error(
        f"Expected string value for HtmlContent, got {type(data).__name__}", path, HtmlContent
    )


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _protocol_members(protocol: type) -> set[str]:
    members: set[str] = set()
    for klass in protocol.__mro__:
        if klass is Protocol or not getattr(klass, "_is_protocol", False):
            continue
        for name, value in vars(klass).items():
            if not name.startswith("_") or (_is_dunder(name) and inspect.isfunction(value)):
                members.add(name)
        members.update(name for name in inspect.get_annotations(klass) if not name.startswith("_"))
    members.discard("__init__")
    return members


def _implements(candidate: Any, interface: type) -> bool:
    if not isinstance(candidate, type) or is_interface(candidate):
        return False
    if interface in candidate.__mro__:
        return True
    if getattr(interface, "_is_protocol", False):
        # Structural check; non-runtime protocols refuse issubclass()
        annotated = {n for klass in candidate.__mro__ for n in inspect.get_annotations(klass)}
        return all(hasattr(candidate, m) or m in annotated for m in _protocol_members(interface))
    try:
        return issubclass(candidate, interface)
    except TypeError:
        return False


class InterfaceResolver:
    """
    Resolves interface types to concrete, instantiable types.

    Owns the resolution cache; one resolver normally lives as long as the
    component registry that created it.
    """

    def __init__(self, modules: Callable[[], Iterable[ModuleType]] | None = None) -> None:
        self._modules = modules
        self._bindings: dict[type, type] = {}
        self._cache: dict[type, type] = {}
        self._lock = threading.Lock()
        self.scan_count = 0

    def bind(self, interface: type, concrete: type) -> None:
        """
        Register an explicit concrete type for an interface.

        Raises:
            RegistrationError: If ``concrete`` is abstract or does not
                implement ``interface``
        """
        if not _implements(concrete, interface):
            raise RegistrationError(
                f"Cannot bind {qualified_name(interface)} to {qualified_name(concrete)}: "
                "type is abstract or does not implement the interface"
            )
        with self._lock:
            self._bindings[interface] = concrete
            self._cache.pop(interface, None)
        logger.debug(f"Bound {qualified_name(interface)} -> {qualified_name(concrete)}")

    def is_builtin(self, tp: Any) -> bool:
        return tp in BUILTIN_BINDINGS

    def resolve(self, interface: type) -> type:
        """
        Get the concrete type for an interface.

        Raises:
            UnresolvedInterfaceError: If no concrete type can be found
        """
        with self._lock:
            cached = self._cache.get(interface)
        if cached is not None:
            return cached

        concrete = self._find_concrete(interface)
        if concrete is None:
            raise UnresolvedInterfaceError(qualified_name(interface))

        with self._lock:
            return self._cache.setdefault(interface, concrete)

    def clear_cache(self) -> None:
        """Drop memoized resolutions. Only meant for tests."""
        with self._lock:
            self._cache.clear()
            self.scan_count = 0

    def _find_concrete(self, interface: type) -> type | None:
        if interface in BUILTIN_BINDINGS:
            return BUILTIN_BINDINGS[interface]
        bound = self._bindings.get(interface)
        if bound is not None:
            return bound
        return self._scan_by_convention(interface)

    def _scan_by_convention(self, interface: type) -> type | None:
        name = interface.__name__
        if not name.startswith("I") or len(name) <= 1:
            return None

        with self._lock:
            self.scan_count += 1
        # Nested interfaces look for a sibling in the same enclosing class
        owner_path = interface.__qualname__.split(".")[:-1]
        expected_qualname = ".".join([*owner_path, name[1:]])

        for module in self._candidate_modules(interface):
            candidate: Any = module
            try:
                for part in expected_qualname.split("."):
                    candidate = getattr(candidate, part)
            except AttributeError:
                continue
            except Exception as e:
                logger.debug(f"Skipping module {module.__name__} while resolving {name}: {e}")
                continue
            if not _same_qualified_name(candidate, interface.__module__, expected_qualname):
                continue
            if _implements(candidate, interface):
                logger.debug(
                    f"Resolved {qualified_name(interface)} -> {qualified_name(candidate)} by convention"
                )
                return candidate
        return None

    def _candidate_modules(self, interface: type) -> list[ModuleType]:
        modules: list[ModuleType] = []
        home = sys.modules.get(interface.__module__)
        if home is not None:
            modules.append(home)
        if self._modules is not None:
            modules.extend(m for m in self._modules() if m is not home)
        return modules


def _same_qualified_name(candidate: Any, module_name: str, qualname: str) -> bool:
    return (
        getattr(candidate, "__module__", None) == module_name
        and getattr(candidate, "__qualname__", None) == qualname
    )
