"""
Story providers.

A story provider groups the named variants of one component::

    class ButtonStories(ComponentStories[ButtonProps]):
        component_name = "Button"

        def get_stories(self) -> list[StoryDefinition]:
            return [
                self.create_story("default", "Default", "Plain button", ButtonProps()),
                self.create_story(
                    "danger", "Danger", "Destructive action", ButtonProps(variant=Variant.DANGER)
                ),
            ]

Providers are instantiated with no arguments during story discovery.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar, get_args, get_origin

from storykit.core.models import StoryDefinition
from storykit.core.schema import readable_values

TProps = TypeVar("TProps")

STORIES_SUFFIX = "Stories"


class ComponentStories(ABC, Generic[TProps]):
    """
    Base class for component story providers.

    Class attributes:
        component_name: Component these stories belong to. Derived from
            the class name (``ButtonStories`` -> ``Button``) when omitted.
        category: Overrides the category taken from the module path.
        template: Overrides the template reference of the component.
    """

    component_name: ClassVar[str] = ""
    category: ClassVar[str | None] = None
    template: ClassVar[str | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("component_name"):
            name = cls.__name__
            if name.endswith(STORIES_SUFFIX) and len(name) > len(STORIES_SUFFIX):
                cls.component_name = name[: -len(STORIES_SUFFIX)]

    @abstractmethod
    def get_stories(self) -> list[StoryDefinition]:
        """Get all stories for this component."""

    @classmethod
    def props_type(cls) -> type | None:
        """The ``TProps`` argument this provider was declared with, if any."""
        for klass in cls.__mro__:
            for base in getattr(klass, "__orig_bases__", ()):
                origin = get_origin(base)
                if not (inspect.isclass(origin) and issubclass(origin, ComponentStories)):
                    continue
                args = get_args(base)
                if args and inspect.isclass(args[0]):
                    return args[0]
        return None

    def create_story(
        self,
        name: str,
        display_name: str,
        description: str,
        props: TProps,
    ) -> StoryDefinition:
        """
        Create a story from a typed props instance.

        Every readable property whose value is not None becomes a preset.
        """
        properties = {key: value for key, value in readable_values(props).items() if value is not None}
        return StoryDefinition(
            component_name=self.component_name,
            name=name,
            display_name=display_name,
            description=description,
            properties=properties,
        )
