"""Badge: pydantic props found by name, no typed provider."""

from typing import Literal

from pydantic import BaseModel, Field

from storykit import ComponentStories, StoryDefinition


class BadgeProps(BaseModel):
    label: str = Field(default="New", title="Badge text")
    tone: Literal["info", "success", "warning"] = "info"
    count: int = Field(default=0, description="Number shown next to the label")


class BadgeStories(ComponentStories):
    def get_stories(self) -> list[StoryDefinition]:
        return [
            StoryDefinition(name="default", display_name="Default"),
            StoryDefinition(
                name="warning",
                display_name="Warning",
                properties={"label": "Careful", "tone": "warning", "count": 3},
            ),
        ]
