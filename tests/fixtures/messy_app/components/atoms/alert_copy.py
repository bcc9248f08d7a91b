from storykit import ComponentStories, StoryDefinition

from messy_app.components.atoms.alert import AlertProps


class AlertStories(ComponentStories[AlertProps]):
    def get_stories(self) -> list[StoryDefinition]:
        return [self.create_story("copy", "Copy", "Second provider", AlertProps(message="Copy"))]
