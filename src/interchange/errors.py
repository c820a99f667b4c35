"""
Import error hierarchy.

Every failure while reading a project payload raises a ProjectImportError
subclass. Callers catch the base class and leave session state untouched.
"""


class ProjectImportError(Exception):
    """Base class for rejected project payloads."""


class InvalidEnumError(ProjectImportError):
    """A role or band value is not one of the accepted strings."""

    def __init__(self, kind: str, value):
        self.kind = kind
        self.value = value
        super().__init__(f"Unsupported {kind}: {value}")


class MalformedProjectError(ProjectImportError):
    """Payload structure is wrong: missing arrays, bad version, not an object."""
