"""
Tag vocabulary understood by the resolver.
"""

from typing import Optional

YAML_PREFIX = "tag:yaml.org,2002:"

NULL_TAG = YAML_PREFIX + "null"
BOOL_TAG = YAML_PREFIX + "bool"
INT_TAG = YAML_PREFIX + "int"
FLOAT_TAG = YAML_PREFIX + "float"
STR_TAG = YAML_PREFIX + "str"
BINARY_TAG = YAML_PREFIX + "binary"
TIMESTAMP_TAG = YAML_PREFIX + "timestamp"
SEQ_TAG = YAML_PREFIX + "seq"
MAP_TAG = YAML_PREFIX + "map"
MERGE_TAG = YAML_PREFIX + "merge"
NON_SPECIFIC_TAG = "!"

# Class-construction tags
CLASS_TAG = "!class"
OBJECT_TAG_PREFIX = "!object:"

# Always recognized, never need registering
BUILTIN_TAGS = frozenset([
    NULL_TAG, BOOL_TAG, INT_TAG, FLOAT_TAG, STR_TAG, BINARY_TAG,
    TIMESTAMP_TAG, SEQ_TAG, MAP_TAG, MERGE_TAG, NON_SPECIFIC_TAG,
])

# Scalar tag -> coercion kind. Local short forms only apply once registered.
SCALAR_KINDS = {
    NON_SPECIFIC_TAG: "str",
    STR_TAG: "str",
    "!str": "str",
    INT_TAG: "int",
    "!int": "int",
    FLOAT_TAG: "float",
    "!float": "float",
    "!float#exp": "float",
    "!float#inf": "float",
    BOOL_TAG: "bool",
    NULL_TAG: "null",
    BINARY_TAG: "binary",
    "!binary": "binary",
    TIMESTAMP_TAG: "timestamp",
    "!timestamp": "timestamp",
    "!timestamp#iso8601": "timestamp",
    "!timestamp#spaced": "timestamp",
    "!sym": "symbol",
    "!symbol": "symbol",
}


def is_builtin(tag: Optional[str]) -> bool:
    return tag is None or tag in BUILTIN_TAGS


def scalar_kind(tag: Optional[str]) -> Optional[str]:
    """Return the coercion kind for a scalar tag, or None if it has none."""
    if tag is None:
        return None
    return SCALAR_KINDS.get(tag)


def class_name_from_tag(tag: Optional[str]) -> Optional[str]:
    """Extract the class name embedded in an ``!object:<name>`` tag."""
    if tag and tag.startswith(OBJECT_TAG_PREFIX):
        return tag[len(OBJECT_TAG_PREFIX):]
    return None
