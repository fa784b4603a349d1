"""
Error taxonomy for refbook.

Input errors (``RefBookInputError`` and subclasses) are recoverable: the
store is left exactly as it was before the failing call. ``ModeConflictError``
signals caller misuse and is usually treated as fatal.
"""


class RefBookError(Exception):
    """Base class for all refbook errors."""
    pass


class RefBookInputError(RefBookError, ValueError):
    """Input could not be ingested; prior content is untouched."""
    pass


class MalformedInputError(RefBookInputError):
    """Input is not valid JSON or elements have the wrong types."""
    pass


class ShapeMismatchError(RefBookInputError):
    """Input is not a collection, or its elements have mixed shapes."""
    pass


class MissingAttributeError(RefBookInputError):
    """A named field is absent from the record shape."""

    def __init__(self, attribute: str):
        super().__init__(f"attribute {attribute} not found")
        self.attribute = attribute


class SerializationError(RefBookError):
    """Content could not be hashed or encoded during optimize."""
    pass


class ModeConflictError(RefBookError, RuntimeError):
    """Single-language items were added to a multi-language book."""
    pass


class ConfigValidationError(RefBookError, ValueError):
    """Configuration validation error."""
    pass
