"""Shared pytest fixtures for storykit tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from storykit.core.registry import ComponentRegistry, reset_registry
from storykit.runtime.config import PreviewConfig


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def templates_dir(fixtures_dir: Path) -> Path:
    """Return path to the component template fixtures."""
    return fixtures_dir / "templates"


@pytest.fixture
def registry() -> ComponentRegistry:
    """Return a registry with the demo component library registered."""
    registry = ComponentRegistry()
    registry.register_package("demo_app")
    return registry


@pytest.fixture
def messy_registry() -> ComponentRegistry:
    """Return a registry with the broken/conflicting component library registered."""
    registry = ComponentRegistry()
    registry.register_package("messy_app")
    return registry


@pytest.fixture
def preview_config(templates_dir: Path) -> PreviewConfig:
    """Return a preview config pointing at the fixture templates."""
    return PreviewConfig(component_library="DemoApp.Components", template_dirs=[templates_dir])


@pytest.fixture(autouse=True)
def _fresh_global_registry():
    """Discard the process-wide registry around every test."""
    reset_registry()
    yield
    reset_registry()
