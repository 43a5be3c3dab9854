"""
Anchor bookkeeping and merge-key handling for a single resolution pass.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List

from .exceptions import ConstructionFailed, InvalidMergeSource, UnknownAnchor
from .nodes import Node, ScalarNode
from .tags import MERGE_TAG

MERGE_KEY = "<<"

_MISSING = object()


class AnchorTable:
    """Anchors and resolved values seen during one resolution pass.

    A new table is created for every document, so nothing recorded here is
    visible to any other pass.
    """

    def __init__(self) -> None:
        self._anchors: Dict[str, Node] = {}
        # id(node) -> (node, value); the node is kept so its id stays unique
        self._values: Dict[int, tuple] = {}

    def __contains__(self, anchor: str) -> bool:
        return anchor in self._anchors

    def __len__(self) -> int:
        return len(self._anchors)

    def record_anchor(self, anchor: str, node: Node) -> None:
        """Record ``node`` under ``anchor``. Call before visiting its children."""
        self._anchors[anchor] = node

    def resolve_alias(self, anchor: str, mark: Any = None) -> Node:
        """
        Get the node an alias refers to.

        Raises:
            UnknownAnchor: If ``anchor`` was not recorded earlier in this pass
        """
        try:
            return self._anchors[anchor]
        except KeyError:
            raise UnknownAnchor(anchor, mark) from None

    def store(self, node: Node, value: Any) -> None:
        """Remember the value built for an anchored node."""
        if node.anchor is None:
            return
        self._values[id(node)] = (node, value)

    def value_of(self, node: Node, mark: Any = None) -> Any:
        """
        Get the value already built for an anchored node.

        Raises:
            ConstructionFailed: If the node is still being built and has no placeholder
        """
        entry = self._values.get(id(node))
        if entry is not None:
            return entry[1]
        raise ConstructionFailed(
            node.tag or node.id, node.id,
            f"alias *{node.anchor} refers to a value that contains itself", mark
        )

    def lookup(self, node: Node) -> Any:
        if node.anchor is None:
            return _MISSING
        entry = self._values.get(id(node))
        return _MISSING if entry is None else entry[1]


def is_missing(value: Any) -> bool:
    return value is _MISSING


def is_merge_key(node: Node) -> bool:
    """Check whether a mapping key node is the ``<<`` merge key."""
    if not isinstance(node, ScalarNode):
        return False
    if node.tag == MERGE_TAG:
        return True
    return node.tag is None and not node.quoted and node.value == MERGE_KEY


def merge_sources(values: Iterable[Any], mark: Any = None) -> List[Mapping]:
    """
    Flatten resolved merge-key values into mappings, in the order to apply them.

    Earlier sources take precedence, so the returned list is reversed and the
    caller can simply update with each in turn. A null value merges nothing.

    Args:
        values: Resolved values of every merge key in one mapping
        mark: Source position used in error messages

    Returns:
        List[Mapping]: Mappings to apply, lowest precedence first

    Raises:
        InvalidMergeSource: If a value is not null, a mapping or a list of those
    """
    sources: List[Mapping] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, Mapping):
            sources.append(value)
        elif isinstance(value, list):
            for item in value:
                if item is None:
                    continue
                if not isinstance(item, Mapping):
                    raise InvalidMergeSource(f"a list containing {type(item).__name__}", mark)
                sources.append(item)
        else:
            raise InvalidMergeSource(type(value).__name__, mark)
    sources.reverse()
    return sources
