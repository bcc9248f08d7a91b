"""
Component preview orchestration.

Resolves a component by name, chooses its props (posted JSON, a named
story, or the computed defaults), builds the props instance, renders the
component template and wraps the result in the preview shell. Failures
render an in-page message panel instead of raising, so a broken
component never breaks the preview frame around it.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from typing import Any

from markupsafe import escape

from storykit.core.coercion import create_instance
from storykit.core.deserializer import parse_props_json
from storykit.core.errors import MalformedInputError, StorykitError
from storykit.core.models import ComponentDefinition
from storykit.core.properties import get_default_values
from storykit.core.registry import ComponentRegistry, get_registry
from storykit.runtime.config import PreviewConfig
from storykit.runtime.template_renderer import ComponentRenderer, JinjaComponentRenderer, render_shell

logger = logging.getLogger(__name__)


@dataclass
class PreviewResult:
    """Outcome of one preview render."""

    html: str
    component: ComponentDefinition | None = None
    instance: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def message_panel(message: str) -> str:
    return f"<div style='padding: 2rem;'>{escape(message)}</div>"


def error_panel(title: str, message: str, details: str | None = None) -> str:
    html = (
        "<div style='padding: 2rem; color: red;'>"
        f"<p><strong>{escape(title)}</strong></p>"
        f"<p>{escape(message)}</p>"
    )
    if details:
        html += f"<pre style='font-size: 0.75rem; margin-top: 1rem; overflow: auto;'>{escape(details)}</pre>"
    return html + "</div>"


class PreviewService:
    """
    Renders component previews.

    Args:
        registry: Component registry (defaults to the process-wide one)
        renderer: Component template renderer (defaults to Jinja2 over
            ``config.template_dirs``)
        config: Preview configuration (defaults to the environment)
    """

    def __init__(
        self,
        registry: ComponentRegistry | None = None,
        renderer: ComponentRenderer | None = None,
        config: PreviewConfig | None = None,
    ) -> None:
        self.registry = registry or get_registry()
        self.config = config or PreviewConfig.from_env()
        self.renderer = renderer or JinjaComponentRenderer(self.config.template_dirs)

    def resolve_props(
        self,
        component: ComponentDefinition,
        story_name: str | None = None,
        props_json: str | None = None,
    ) -> dict[str, Any]:
        """
        Choose the property values for a preview.

        Posted JSON wins; otherwise the named story's presets when it has
        any; otherwise the computed defaults of the props type.

        Raises:
            MalformedInputError: If ``props_json`` is not a JSON object
        """
        schema_type = component.model_type
        if schema_type is None:
            return {}

        if props_json:
            return parse_props_json(props_json, schema_type, self.registry.deserializer)

        wanted = (story_name or self.config.default_story).lower()
        stories = self.registry.discover_stories_for_component(component.name)
        story = next((s for s in stories if s.name.lower() == wanted), None)
        if story is not None and story.properties:
            return dict(story.properties)

        return get_default_values(schema_type)

    def build_instance(
        self,
        component: ComponentDefinition,
        story_name: str | None = None,
        props_json: str | None = None,
    ) -> Any:
        """Build the props instance a preview would render."""
        if component.model_type is None:
            raise StorykitError(f"Component {component.name} has no props type")
        values = self.resolve_props(component, story_name, props_json)
        return create_instance(component.model_type, values, self.registry.deserializer)

    def render(
        self,
        component_name: str,
        story_name: str | None = None,
        props_json: str | None = None,
    ) -> PreviewResult:
        """
        Render a full preview document for a component.

        Args:
            component_name: Component name (case-insensitive)
            story_name: Story to take presets from (defaults to
                ``config.default_story``)
            props_json: Posted props JSON; overrides the story

        Returns:
            PreviewResult whose ``html`` is always a complete document
        """
        component = self.registry.find_component(component_name)
        if component is None:
            return self._fail("Component not found", message_panel("Component not found"))
        if component.model_type is None:
            return self._fail("Props type not found", message_panel("Props type not found"), component)

        try:
            values = self.resolve_props(component, story_name, props_json)
        except MalformedInputError as e:
            logger.warning(f"Invalid props JSON for {component.name}: {e}")
            return self._fail(str(e), error_panel("Invalid JSON:", e.message), component)

        instance = None
        try:
            instance = create_instance(component.model_type, values, self.registry.deserializer)
            content = self.renderer.render(component.path, instance)
        except StorykitError as e:
            logger.exception(f"Error rendering component {component.name}")
            panel = error_panel("Error rendering component:", str(e), "".join(traceback.format_exception(e)))
            return self._fail(str(e), panel, component, instance)

        return PreviewResult(html=self.build_shell(content), component=component, instance=instance)

    def build_shell(self, content: str) -> str:
        """Wrap HTML in the preview document."""
        return render_shell(content, self.config)

    def _fail(
        self,
        error: str,
        panel: str,
        component: ComponentDefinition | None = None,
        instance: Any = None,
    ) -> PreviewResult:
        return PreviewResult(
            html=self.build_shell(panel),
            component=component,
            instance=instance,
            error=error,
        )
