"""Hero: template override resolved by bare file name."""

from dataclasses import dataclass

from storykit import ComponentStories, StoryDefinition


@dataclass(frozen=True)
class HeroProps:
    heading: str = "Welcome"
    subheading: str | None = None


class HeroStories(ComponentStories[HeroProps]):
    template = "~/views/hero/hero.html"

    def get_stories(self) -> list[StoryDefinition]:
        return [self.create_story("default", "Default", "", HeroProps())]
