"""
Preview runtime: template rendering and preview orchestration.
"""

from storykit.runtime.config import PreviewConfig
from storykit.runtime.preview import PreviewResult, PreviewService
from storykit.runtime.template_renderer import ComponentRenderer, JinjaComponentRenderer, render_shell

__all__ = [
    "ComponentRenderer",
    "JinjaComponentRenderer",
    "PreviewConfig",
    "PreviewResult",
    "PreviewService",
    "render_shell",
]
