"""
Scalar coercion: turns scalar text into typed Python values.

Guessing and conversion are PyYAML's own YAML 1.1 rules: the implicit resolver
picks a type for untagged plain text and ``SafeConstructor`` converts it. Two
YAML 1.1 number forms PyYAML leaves as strings are added on top (comma digit
grouping and exponents without a dot), and a guessed value that fails to
convert falls back to the original text.

Quoted scalars are never guessed, and a value tag cannot override quoting. A
scalar with an explicit tag must convert to that tag's type or the whole
document fails.
"""

import re
import sys
from typing import Any, Callable, Dict, Optional

import yaml
from yaml.constructor import ConstructorError, SafeConstructor
from yaml.resolver import Resolver

from .exceptions import MalformedScalar
from .tags import (
    BINARY_TAG,
    BOOL_TAG,
    FLOAT_TAG,
    INT_TAG,
    NULL_TAG,
    STR_TAG,
    TIMESTAMP_TAG,
    scalar_kind,
)

# Both are only read after construction, so one instance serves every thread
_resolver = Resolver()
_constructor = SafeConstructor()

# ``1e5`` and ``1.5e3``: PyYAML's float pattern needs a dot and a signed exponent
EXPONENT_FLOAT = re.compile(
    r"^[-+]?(?:[0-9][0-9_]*(?:\.[0-9_]*)?|\.[0-9][0-9_]*)[eE][-+]?[0-9]+$"
)

# Tags a quoted scalar keeps: they describe how to read text, not a value type
QUOTED_KINDS = frozenset(["str", "symbol", "binary"])


def implicit_tag(text: str) -> str:
    """Return the tag PyYAML's implicit resolver gives plain ``text``."""
    return _resolver.resolve(yaml.ScalarNode, text, (True, False))


def _construct(tag: str, text: str) -> Any:
    # The per-tag functions keep no state, unlike ``construct_object``
    return SafeConstructor.yaml_constructors[tag](_constructor, yaml.ScalarNode(tag, text))


def number_tag(text: str) -> Optional[tuple]:
    """
    Classify ``text`` as an int or float literal.

    Returns:
        Optional[tuple]: ``(tag, text to convert)``, or None if not a number
    """
    candidate = text.replace(",", "")
    if not candidate:
        return None
    tag = implicit_tag(candidate)
    if tag in (INT_TAG, FLOAT_TAG):
        return tag, candidate
    if EXPONENT_FLOAT.match(candidate):
        return FLOAT_TAG, candidate
    return None


def _parse_int(text: str) -> int:
    number = number_tag(text)
    if number is None or number[0] != INT_TAG:
        raise ValueError(f"not an integer: {text!r}")
    return _construct(INT_TAG, number[1])


def _parse_float(text: str) -> float:
    number = number_tag(text)
    if number is None:
        raise ValueError(f"not a float: {text!r}")
    return _construct(FLOAT_TAG, number[1])


def _strict(tag: str) -> Callable[[str], Any]:
    def parse(text: str) -> Any:
        if implicit_tag(text) != tag:
            raise ValueError(f"{text!r} does not match {tag}")
        return _construct(tag, text)
    return parse


TAGGED_PARSERS: Dict[str, Callable[[str], Any]] = {
    "str": str,
    "symbol": sys.intern,
    "int": _parse_int,
    "float": _parse_float,
    "bool": _strict(BOOL_TAG),
    "null": _strict(NULL_TAG),
    "timestamp": _strict(TIMESTAMP_TAG),
    "binary": lambda text: _construct(BINARY_TAG, text),
}


def guess_type(text: str) -> Any:
    """
    Guess the type of an unquoted, untagged scalar.

    Args:
        text: Raw scalar text

    Returns:
        Any: None, bool, int, float, date/datetime or the text itself
    """
    tag = implicit_tag(text)
    if tag not in (NULL_TAG, BOOL_TAG, INT_TAG, FLOAT_TAG, TIMESTAMP_TAG):
        number = number_tag(text) if tag == STR_TAG else None
        if number is None:
            return text
        tag, text_to_convert = number
    else:
        text_to_convert = text
    try:
        return _construct(tag, text_to_convert)
    except (ValueError, OverflowError):
        # ``0x_`` and ``2001-13-45`` pass the pattern but do not convert
        return text


def coerce(text: str, tag: Optional[str] = None, quoted: bool = False, mark: Any = None) -> Any:
    """
    Convert scalar text into a typed value.

    Args:
        text: Raw scalar text
        tag: Explicit tag on the scalar, if any
        quoted: Whether the scalar was written in a non-plain style
        mark: Source position used in error messages

    Returns:
        Any: The typed value

    Raises:
        MalformedScalar: If an explicitly tagged scalar does not fit its tag
    """
    kind = scalar_kind(tag)
    if quoted and kind not in QUOTED_KINDS:
        return text
    if tag is not None:
        if kind is None:
            return text
        try:
            return TAGGED_PARSERS[kind](text)
        except (ValueError, OverflowError, ConstructorError) as e:
            raise MalformedScalar(tag, text, mark) from e
    return guess_type(text)
