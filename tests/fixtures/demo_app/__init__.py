"""Demo component library used by the storykit test suite."""
