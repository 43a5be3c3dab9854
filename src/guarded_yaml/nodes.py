"""Document node classes.

The composer builds these from the parser's event stream. Unlike PyYAML's own
node tree, aliases stay as explicit ``AliasNode`` objects so the resolver can
track anchors itself.
"""

from typing import Any, List, Optional, Tuple


class Node:
    """Base class for document nodes."""

    id = "node"

    def __init__(self, value: Any, tag: Optional[str] = None,
                 anchor: Optional[str] = None, start_mark: Any = None):
        self.value = value
        self.tag = tag
        self.anchor = anchor
        self.start_mark = start_mark

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tag={self.tag!r}, value={self.value!r})"


class ScalarNode(Node):
    """Scalar node. ``style`` is None for plain scalars."""

    id = "scalar"

    def __init__(self, value: str, tag: Optional[str] = None, style: Optional[str] = None,
                 anchor: Optional[str] = None, start_mark: Any = None):
        super().__init__(value, tag, anchor, start_mark)
        self.style = style

    @property
    def quoted(self) -> bool:
        return self.style is not None


class SequenceNode(Node):
    """Sequence node holding a list of child nodes."""

    id = "sequence"

    def __init__(self, value: Optional[List[Node]] = None, tag: Optional[str] = None,
                 anchor: Optional[str] = None, start_mark: Any = None):
        super().__init__(value if value is not None else [], tag, anchor, start_mark)


class MappingNode(Node):
    """Mapping node holding an ordered list of (key, value) node pairs."""

    id = "mapping"

    def __init__(self, value: Optional[List[Tuple[Node, Node]]] = None,
                 tag: Optional[str] = None, anchor: Optional[str] = None,
                 start_mark: Any = None):
        super().__init__(value if value is not None else [], tag, anchor, start_mark)


class AliasNode(Node):
    """Reference to a previously anchored node."""

    id = "alias"

    def __init__(self, anchor: str, start_mark: Any = None):
        super().__init__(None, None, None, start_mark)
        self.ref = anchor

    def __repr__(self) -> str:
        return f"AliasNode(*{self.ref})"
