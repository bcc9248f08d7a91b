"""
Jinja2 renderers for component templates and the preview shell.

Component templates receive the props instance as ``model`` and its
readable values as ``props``::

    <button class="btn btn-{{ model.variant.name | lower }}"
            {% if model.disabled %}disabled{% endif %}>{{ props.text }}</button>
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)
from markupsafe import Markup

from storykit.core.errors import RenderError
from storykit.core.schema import readable_values
from storykit.runtime.config import PreviewConfig

logger = logging.getLogger(__name__)

# Template directory
TEMPLATES_DIR = Path(__file__).parent / "templates"

SHELL_TEMPLATE = "preview_shell.html"


class ComponentRenderer(Protocol):
    """Renders a component template with a props instance."""

    def render(self, path: str, instance: Any) -> str: ...


def create_jinja_env(search_paths: Iterable[Path | str] = ()) -> Environment:
    """Create a Jinja2 environment over the given template directories, in order."""
    loaders = [FileSystemLoader(str(path)) for path in search_paths]
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "htm", "jinja", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def candidate_names(path: str) -> list[str]:
    """
    Template names to try for a component path, most specific first.

    ``~/components/atoms/Button/Button.html`` ->
    the path as given, the path without ``~``/``/`` prefix, the bare file name.
    """
    names = [path]
    clean = path.lstrip("~/")
    if clean not in names:
        names.append(clean)
    file_name = posixpath.basename(clean)
    if file_name and file_name not in names:
        names.append(file_name)
    return names


class JinjaComponentRenderer:
    """
    Component renderer backed by Jinja2.

    Args:
        search_paths: Template directories, searched in order
    """

    def __init__(self, search_paths: Iterable[Path | str] = ()) -> None:
        self.search_paths = [Path(p) for p in search_paths]
        self.env = create_jinja_env(self.search_paths)

    def render(self, path: str, instance: Any) -> str:
        """
        Render the component template at ``path``.

        Raises:
            RenderError: If no template is found or rendering fails
        """
        try:
            template = self.env.select_template(candidate_names(path))
        except TemplateNotFound as e:
            raise RenderError(f"View not found: {path}") from e
        except TemplateError as e:
            raise RenderError(f"Error loading view {path}: {e}") from e

        logger.debug(f"Rendering {template.name} for {type(instance).__name__}")
        try:
            return template.render(model=instance, props=readable_values(instance))
        except Exception as e:
            raise RenderError(f"Error rendering view {template.name}: {e}") from e


# Module-level singleton
_shell_env: Environment | None = None


def get_shell_env() -> Environment:
    """Get the environment for the packaged preview shell."""
    global _shell_env
    if _shell_env is None:
        _shell_env = create_jinja_env([TEMPLATES_DIR])
    return _shell_env


def render_shell(content: str, config: PreviewConfig) -> str:
    """
    Wrap rendered component HTML in the full preview document.

    Args:
        content: Component HTML, inserted unescaped
        config: Supplies the component library stylesheet and script
    """
    template = get_shell_env().get_template(SHELL_TEMPLATE)
    return template.render(
        content=Markup(content),
        css_path=config.css_path,
        js_path=config.js_path,
    )
