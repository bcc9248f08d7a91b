"""Version lookup for storykit."""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION = "storykit"

_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def get_version() -> str:
    """
    Get the storykit version.

    The installed distribution's metadata wins; a source checkout that was
    never installed falls back to the ``[project]`` table of its
    pyproject.toml.
    """
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        pass

    if _PYPROJECT.is_file():
        with _PYPROJECT.open("rb") as f:
            project = tomllib.load(f).get("project", {})
        if project.get("name") == DISTRIBUTION and "version" in project:
            return str(project["version"])
    return "0.0.0"
