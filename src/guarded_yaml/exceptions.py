"""
Custom exceptions for guarded YAML resolution.
These exceptions provide specific error information for each way a document can be rejected.
"""

from typing import Any, Optional


def _where(mark: Any) -> str:
    if mark is None:
        return ""
    return f" (line {mark.line + 1}, column {mark.column + 1})"


class GuardedYAMLError(Exception):
    """Base exception for all guarded-yaml errors."""

    def __init__(self, message: str, mark: Any = None):
        self.mark = mark
        super().__init__(message + _where(mark))


class ParseError(GuardedYAMLError):
    """Raised when the underlying YAML parser rejects the document syntax."""
    pass


class ConfigurationError(GuardedYAMLError):
    """Raised when a start-up configuration file is missing or invalid."""
    pass


class InvalidRegistration(GuardedYAMLError):
    """Raised when something that cannot be allowlisted safely is registered."""
    def __init__(self, descriptor: Any, reason: str):
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(f"Cannot register {descriptor!r}: {reason}")


class DisallowedTag(GuardedYAMLError):
    """Raised when a node carries a tag that is neither built-in nor allowlisted."""
    def __init__(self, tag: str, mark: Any = None):
        self.tag = tag
        super().__init__(f"YAML tag not allowed: {tag}", mark)


class DisallowedType(GuardedYAMLError):
    """Raised when a class-construction tag names a class that is not allowlisted."""
    def __init__(self, class_name: str, mark: Any = None):
        self.class_name = class_name
        super().__init__(f"YAML deserialization of class not allowed: {class_name}", mark)


class UnknownAnchor(GuardedYAMLError):
    """Raised when an alias refers to an anchor not seen earlier in the document."""
    def __init__(self, anchor: str, mark: Any = None):
        self.anchor = anchor
        super().__init__(f"Found undefined alias: *{anchor}", mark)


class MalformedScalar(GuardedYAMLError):
    """Raised when a tagged scalar cannot be converted to its declared type."""
    def __init__(self, tag: str, text: str, mark: Any = None):
        self.tag = tag
        self.text = text
        super().__init__(f"Cannot convert {text!r} to {tag}", mark)


class ConstructionFailed(GuardedYAMLError):
    """Raised when an allowlisted class rejects the payload it was given."""
    def __init__(
        self,
        class_name: str,
        payload_shape: str,
        reason: Optional[str] = None,
        mark: Any = None,
    ):
        self.class_name = class_name
        self.payload_shape = payload_shape
        self.reason = reason
        message = f"Cannot construct {class_name} from a {payload_shape}"
        if reason:
            message += f": {reason}"
        super().__init__(message, mark)


class InvalidMergeSource(GuardedYAMLError):
    """Raised when a merge key points at something other than mappings."""
    def __init__(self, found: str, mark: Any = None):
        self.found = found
        super().__init__(f"Merge key expects a mapping or a list of mappings, found {found}", mark)


class ResolutionLimitExceeded(GuardedYAMLError):
    """Raised when a document exceeds a configured depth, size or alias limit."""
    def __init__(self, limit: str, value: int, mark: Any = None):
        self.limit = limit
        self.value = value
        super().__init__(f"Document exceeds {limit}={value}", mark)
