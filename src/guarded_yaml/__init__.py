"""
guarded-yaml: allowlist-based safe YAML deserialization.

Documents are parsed by PyYAML, composed into nodes that keep their tags,
anchors and aliases, and resolved by a ``SafeResolver`` that only
materializes core YAML types plus the tags and classes an application
registered at start-up.
"""

from .allowlist import Allowlist, ClassEntry
from .composer import compose, compose_all
from .exceptions import (
    ConfigurationError,
    ConstructionFailed,
    DisallowedTag,
    DisallowedType,
    GuardedYAMLError,
    InvalidMergeSource,
    InvalidRegistration,
    MalformedScalar,
    ParseError,
    ResolutionLimitExceeded,
    UnknownAnchor,
)
from .loader import DEFAULT_MAX_BYTES, load, load_all, resolve_document
from .resolver import BaseResolver, ResolverLimits, SafeResolver
from .revival import RevivalPolicy, Singleton
from .scalars import coerce

__version__ = "0.1.0"

__all__ = [
    "Allowlist",
    "ClassEntry",
    "BaseResolver",
    "SafeResolver",
    "ResolverLimits",
    "RevivalPolicy",
    "Singleton",
    "coerce",
    "compose",
    "compose_all",
    "load",
    "load_all",
    "resolve_document",
    "DEFAULT_MAX_BYTES",
    "GuardedYAMLError",
    "ParseError",
    "ConfigurationError",
    "InvalidRegistration",
    "DisallowedTag",
    "DisallowedType",
    "UnknownAnchor",
    "MalformedScalar",
    "ConstructionFailed",
    "InvalidMergeSource",
    "ResolutionLimitExceeded",
]
