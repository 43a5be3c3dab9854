"""
Entry points: parse, compose and resolve YAML text in one call.
"""

import logging
import sys
from typing import Any, Iterator, Optional, Union

from .allowlist import Allowlist
from .composer import compose, compose_all
from .exceptions import ResolutionLimitExceeded
from .nodes import Node
from .resolver import ResolverLimits, SafeResolver

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB

Stream = Union[str, bytes, Any]


def _read(stream: Stream, max_bytes: Optional[int]) -> Union[str, bytes]:
    """Read ``stream`` into memory, refusing anything over ``max_bytes``.

    Text is measured by its UTF-8 encoding, not its character count.
    """
    if hasattr(stream, "read"):
        if max_bytes is None:
            data = stream.read()
        else:
            data = stream.read(max_bytes + 1)
    else:
        data = stream
    if max_bytes is not None:
        size = len(data.encode("utf-8")) if isinstance(data, str) else len(data)
        if size > max_bytes:
            raise ResolutionLimitExceeded("max_bytes", max_bytes)
    return data


def _recursion_limit() -> ResolutionLimitExceeded:
    limit = sys.getrecursionlimit()
    logger.warning(f"Document nesting exceeded the interpreter recursion limit ({limit})")
    return ResolutionLimitExceeded("recursion_limit", limit)


def resolve_document(
    root: Optional[Node],
    allowlist: Optional[Allowlist] = None,
    limits: Optional[ResolverLimits] = None,
) -> Any:
    """
    Resolve an already composed node tree.

    Args:
        root: Root node, or None for an empty document
        allowlist: Permitted tags and classes; only core YAML types if omitted
        limits: Resource limits for the pass

    Returns:
        Any: The resolved value
    """
    resolver = SafeResolver(allowlist if allowlist is not None else Allowlist(), limits)
    return resolver.resolve_document(root)


def load(
    stream: Stream,
    allowlist: Optional[Allowlist] = None,
    limits: Optional[ResolverLimits] = None,
    max_bytes: Optional[int] = DEFAULT_MAX_BYTES,
) -> Any:
    """
    Safely load a single YAML document.

    Args:
        stream: YAML text, bytes or a file object
        allowlist: Permitted tags and classes; only core YAML types if omitted
        limits: Resource limits for the pass
        max_bytes: Maximum input size in bytes, None to disable

    Returns:
        Any: The resolved value, None for an empty document

    Raises:
        GuardedYAMLError: If the document is rejected for any reason
    """
    limits = limits or ResolverLimits()
    try:
        root = compose(_read(stream, max_bytes), max_depth=limits.max_depth)
        return resolve_document(root, allowlist, limits)
    except RecursionError as e:
        raise _recursion_limit() from e


def load_all(
    stream: Stream,
    allowlist: Optional[Allowlist] = None,
    limits: Optional[ResolverLimits] = None,
    max_bytes: Optional[int] = DEFAULT_MAX_BYTES,
) -> Iterator[Any]:
    """
    Safely load every document of a YAML stream.

    Each document is resolved with its own anchor table; an alias cannot
    refer to an anchor from a previous document.
    """
    limits = limits or ResolverLimits()
    resolver = SafeResolver(allowlist if allowlist is not None else Allowlist(), limits)
    documents = compose_all(_read(stream, max_bytes), max_depth=limits.max_depth)
    try:
        for index, root in enumerate(documents):
            logger.debug(f"Resolving document {index}")
            yield resolver.resolve_document(root)
    except RecursionError as e:
        raise _recursion_limit() from e
