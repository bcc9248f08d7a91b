"""
Error types for storykit discovery, coercion, and rendering.
"""

from dataclasses import dataclass
from typing import Optional


class StorykitError(Exception):
    """Base exception for all storykit errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class RegistrationError(StorykitError):
    """
    Raised when an explicit registration is invalid.

    Examples:
    - Registering a story provider that is not a ComponentStories subclass
    - Binding an interface to a type that does not implement it
    - Binding an interface to an abstract type
    """

    pass


class DeserializationError(StorykitError):
    """
    Raised when structured (JSON) input cannot be read into a target type.

    Examples:
    - JSON value kind does not fit the declared type
    - Enum member name not found
    - Abstract type reached without an interface resolver
    """

    pass


class UnresolvedInterfaceError(DeserializationError):
    """
    Raised when no concrete type can be found for an interface type.

    Aborts the enclosing deserialization and is never absorbed by
    per-property coercion.
    """

    def __init__(self, interface_name: str, context: Optional["ErrorContext"] = None):
        self.interface_name = interface_name
        super().__init__(f"Cannot find concrete type for interface: {interface_name}", context)


class MalformedInputError(StorykitError):
    """
    Raised when a whole props payload is not valid JSON.

    Examples:
    - Truncated or syntactically invalid JSON text
    - JSON document whose root is not an object
    """

    pass


class RenderError(StorykitError):
    """
    Raised when the template collaborator cannot render a component.

    Examples:
    - Template not found under any search path
    - Template raised while rendering
    """

    pass


@dataclass
class ErrorContext:
    """
    Location of an error inside a structured value.

    Attributes:
        path: JSON-style path to the failing node (e.g. ``$.items[2].label``)
        target: Name of the type being produced at that node
    """

    path: str
    target: str | None = None

    def format(self) -> str:
        """
        Format the context as a human-readable prefix.

        Returns:
            String like ``$.items[2] (Item)``
        """
        if self.target:
            return f"{self.path} ({self.target})"
        return self.path


def make_deserialization_error(
    message: str,
    path: str = "$",
    target: type | None = None,
) -> DeserializationError:
    """
    Helper to create a DeserializationError with location context.

    Args:
        message: Error description
        path: JSON path of the failing node
        target: Type that was being produced

    Returns:
        DeserializationError with context attached
    """
    target_name = getattr(target, "__name__", None) if target is not None else None
    return DeserializationError(message, ErrorContext(path=path, target=target_name))
