"""
Preview configuration from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class PreviewConfig:
    """Configuration for the component preview runtime."""

    component_library: str | None = None
    template_dirs: list[Path] = field(default_factory=list)
    default_story: str = "default"

    @property
    def css_path(self) -> str | None:
        if not self.component_library:
            return None
        return f"/_content/{self.component_library}/css/main.css"

    @property
    def js_path(self) -> str | None:
        if not self.component_library:
            return None
        return f"/_content/{self.component_library}/js/main.js"

    @classmethod
    def from_env(cls) -> PreviewConfig:
        """Load configuration from environment variables."""
        template_dirs = os.environ.get("STORYKIT_TEMPLATE_DIRS", "")
        return cls(
            component_library=os.environ.get("STORYKIT_COMPONENT_LIBRARY") or None,
            template_dirs=[Path(p) for p in template_dirs.split(os.pathsep) if p],
            default_story=os.environ.get("STORYKIT_DEFAULT_STORY") or "default",
        )
