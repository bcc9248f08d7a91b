"""
Tests for interface-to-concrete type resolution.
"""

import threading
import types
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

import pytest
from markupsafe import Markup

from storykit.core.coercion import create_instance
from storykit.core.errors import RegistrationError, UnresolvedInterfaceError
from storykit.core.registry import ComponentRegistry
from storykit.core.resolution import HtmlContent, InterfaceResolver, read_html_content


class IWidget(ABC):
    @abstractmethod
    def render(self) -> str: ...


@dataclass
class Widget(IWidget):
    label: str = ""
    child: "IWidget | None" = None

    def render(self) -> str:
        return self.label


class IGadget(ABC):
    @abstractmethod
    def spin(self) -> None: ...


class ISpinner(Protocol):
    def spin(self) -> str: ...


@dataclass
class FastSpinner:
    speed: int = 1

    def spin(self) -> str:
        return "fast"


class IShape(ABC):
    @abstractmethod
    def area(self) -> float: ...


class Shape(ABC):
    """Abstract despite the conventional name."""

    @abstractmethod
    def area(self) -> float: ...


class Container:
    class IPart(ABC):
        @abstractmethod
        def fit(self) -> None: ...

    @dataclass
    class Part(IPart):
        size: int = 0

        def fit(self) -> None:
            pass


@dataclass
class DashboardProps:
    title: str = ""
    widget: IWidget | None = None


class TestBuiltinBindings:
    """Tests for the built-in HtmlContent mapping."""

    def test_html_content_resolves_to_markup(self):
        assert InterfaceResolver().resolve(HtmlContent) is Markup

    def test_builtin_does_not_scan(self):
        """Built-in bindings never trigger a convention scan."""
        resolver = InterfaceResolver()
        resolver.resolve(HtmlContent)
        assert resolver.scan_count == 0
        assert resolver.is_builtin(HtmlContent)

    def test_read_html_content(self):
        assert read_html_content("<i>x</i>") == Markup("<i>x</i>")
        assert read_html_content(None) == Markup("")
        assert read_html_content(Markup("<b>")) == Markup("<b>")


class TestConventionResolution:
    """Tests for ``I<Name>`` -> ``<Name>`` resolution."""

    def test_same_module(self):
        """IWidget resolves to Widget in the interface's module."""
        assert InterfaceResolver().resolve(IWidget) is Widget

    def test_nested_class(self):
        """Nested interfaces look for a sibling in the enclosing class."""
        assert InterfaceResolver().resolve(Container.IPart) is Container.Part

    def test_unresolved_names_interface(self):
        """A missing concrete type raises with the qualified interface name."""
        with pytest.raises(UnresolvedInterfaceError) as exc_info:
            InterfaceResolver().resolve(IGadget)
        assert exc_info.value.interface_name == f"{__name__}.IGadget"
        assert "Cannot find concrete type for interface" in str(exc_info.value)

    def test_abstract_candidate_rejected(self):
        """A candidate that is itself abstract does not count."""
        with pytest.raises(UnresolvedInterfaceError):
            InterfaceResolver().resolve(IShape)

    def test_other_module_needs_binding(self):
        """A same-named class in another module is not a convention match."""
        from demo_app.charts import Chart
        from demo_app.contracts import IChart

        registry = ComponentRegistry()
        registry.register_package("demo_app")
        with pytest.raises(UnresolvedInterfaceError):
            registry.resolver.resolve(IChart)

        registry.bind_interface(IChart, Chart)
        assert registry.resolver.resolve(IChart) is Chart

    def test_registered_module_name_clash_ignored(self):
        """Registered modules only count when they hold the exact qualified name."""

        class Gadget(IGadget):
            def spin(self) -> None:
                pass

        Gadget.__module__ = "other_widgets"
        Gadget.__qualname__ = "Gadget"
        other = types.ModuleType("other_widgets")
        other.Gadget = Gadget

        resolver = InterfaceResolver(modules=lambda: [other])
        with pytest.raises(UnresolvedInterfaceError):
            resolver.resolve(IGadget)

    def test_unresolved_not_cached(self):
        """Failed lookups are retried."""
        resolver = InterfaceResolver()
        for _ in range(2):
            with pytest.raises(UnresolvedInterfaceError):
                resolver.resolve(IGadget)
        assert resolver.scan_count == 2


class TestMemoization:
    """Tests for the resolution cache."""

    def test_second_resolve_does_not_scan(self):
        """Resolving twice returns the same type and scans once."""
        resolver = InterfaceResolver()
        first = resolver.resolve(IWidget)
        second = resolver.resolve(IWidget)
        assert first is second is Widget
        assert resolver.scan_count == 1

    def test_clear_cache(self):
        """Clearing the cache forces a new scan."""
        resolver = InterfaceResolver()
        resolver.resolve(IWidget)
        resolver.clear_cache()
        resolver.resolve(IWidget)
        assert resolver.scan_count == 1

    def test_concurrent_resolution(self):
        """Concurrent callers all get the same concrete type."""
        resolver = InterfaceResolver()
        results: list[type] = []

        def worker() -> None:
            results.append(resolver.resolve(IWidget))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [Widget] * 8

    def test_concurrent_scan_count(self):
        """Concurrent scans are all counted."""
        resolver = InterfaceResolver()
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            for _ in range(50):
                with pytest.raises(UnresolvedInterfaceError):
                    resolver.resolve(IGadget)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert resolver.scan_count == 400


class TestExplicitBindings:
    """Tests for bind()."""

    def test_bind_protocol(self):
        """Explicit bindings cover names the convention cannot."""
        resolver = InterfaceResolver()
        resolver.bind(ISpinner, FastSpinner)
        assert resolver.resolve(ISpinner) is FastSpinner
        assert resolver.scan_count == 0

    def test_bind_overrides_convention(self):
        """Explicit bindings win over the naming convention."""

        @dataclass
        class OtherWidget(IWidget):
            def render(self) -> str:
                return "other"

        resolver = InterfaceResolver()
        resolver.resolve(IWidget)
        resolver.bind(IWidget, OtherWidget)
        assert resolver.resolve(IWidget) is OtherWidget

    def test_bind_rejects_non_implementation(self):
        with pytest.raises(RegistrationError):
            InterfaceResolver().bind(IGadget, Widget)

    def test_bind_rejects_abstract(self):
        with pytest.raises(RegistrationError):
            InterfaceResolver().bind(IShape, Shape)

    def test_registry_bind_interface(self):
        """ComponentRegistry.bind_interface() forwards to its resolver."""
        registry = ComponentRegistry()
        registry.bind_interface(ISpinner, FastSpinner)
        assert registry.resolver.resolve(ISpinner) is FastSpinner


class TestResolutionDuringCoercion:
    """Tests for interface-typed properties in create_instance()."""

    def test_interface_property_from_json(self):
        """Interface-typed properties deserialize into the resolved type."""
        registry = ComponentRegistry()
        props = create_instance(
            DashboardProps, {"widget": '{"label": "Clock"}'}, registry.deserializer
        )
        assert props.widget == Widget(label="Clock")

    def test_nested_interface_resolves_again(self):
        """Interface-typed members of the concrete type resolve on their own."""
        registry = ComponentRegistry()
        props = create_instance(
            DashboardProps,
            {"widget": {"label": "outer", "child": {"label": "inner"}}},
            registry.deserializer,
        )
        assert props.widget.child == Widget(label="inner")
        assert registry.resolver.scan_count == 1
