"""
Node resolution: turns a composed node tree into Python values.

``BaseResolver`` is a plain traversal with hook methods that subclasses may
override (``construct_scalar``, ``construct_sequence``, ``construct_mapping``,
``construct_alias``, ``revive``). ``SafeResolver`` wraps that traversal with the
allowlist checks, which run on every node before any hook sees it.
"""

import logging
from typing import Any, Dict, List, Optional

from .allowlist import Allowlist
from .anchors import AnchorTable, is_merge_key, is_missing, merge_sources
from .exceptions import (
    ConstructionFailed,
    DisallowedTag,
    DisallowedType,
    ResolutionLimitExceeded,
)
from .nodes import AliasNode, MappingNode, Node, ScalarNode, SequenceNode
from .revival import RevivalPolicy
from .scalars import coerce
from .tags import (
    CLASS_TAG,
    MAP_TAG,
    SEQ_TAG,
    class_name_from_tag,
    is_builtin,
    scalar_kind,
)

logger = logging.getLogger(__name__)


class ResolverLimits:
    """Per-document resource limits. ``None`` disables a limit."""

    def __init__(
        self,
        max_depth: Optional[int] = 100,
        max_nodes: Optional[int] = 100_000,
        max_aliases: Optional[int] = 1_000,
    ):
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.max_aliases = max_aliases

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolverLimits":
        return cls(**data)

    def __repr__(self) -> str:
        return (
            f"ResolverLimits(max_depth={self.max_depth}, max_nodes={self.max_nodes}, "
            f"max_aliases={self.max_aliases})"
        )


class ResolutionContext:
    """State of one resolution pass: its anchor table and limit counters."""

    def __init__(self, limits: ResolverLimits):
        self.limits = limits
        self.anchors = AnchorTable()
        self.depth = 0
        self.nodes = 0
        self.aliases = 0

    def enter(self, node: Node) -> None:
        self.depth += 1
        self.nodes += 1
        if self.limits.max_depth is not None and self.depth > self.limits.max_depth:
            raise ResolutionLimitExceeded("max_depth", self.limits.max_depth, node.start_mark)
        if self.limits.max_nodes is not None and self.nodes > self.limits.max_nodes:
            raise ResolutionLimitExceeded("max_nodes", self.limits.max_nodes, node.start_mark)

    def leave(self) -> None:
        self.depth -= 1

    def count_alias(self, node: AliasNode) -> None:
        self.aliases += 1
        if self.limits.max_aliases is not None and self.aliases > self.limits.max_aliases:
            raise ResolutionLimitExceeded("max_aliases", self.limits.max_aliases, node.start_mark)


class BaseResolver:
    """Traversal of a node tree with overridable construction hooks.

    A resolver keeps no per-document state; everything a pass needs lives in
    the ``ResolutionContext`` created by ``resolve_document``, so one resolver
    may be shared between threads.
    """

    def __init__(self, limits: Optional[ResolverLimits] = None):
        self.limits = limits or ResolverLimits()

    def resolve_document(self, root: Optional[Node]) -> Any:
        """
        Resolve a whole document with a fresh anchor table.

        Args:
            root: Root node from the composer, or None for an empty document

        Returns:
            Any: The resolved value
        """
        if root is None:
            return None
        ctx = ResolutionContext(self.limits)
        value = self.resolve(root, ctx)
        logger.debug(
            f"Resolved document: {ctx.nodes} nodes, {ctx.aliases} aliases, {len(ctx.anchors)} anchors"
        )
        return value

    def resolve(self, node: Node, ctx: ResolutionContext) -> Any:
        if isinstance(node, AliasNode):
            return self.construct_alias(node, ctx)
        cached = ctx.anchors.lookup(node)
        if not is_missing(cached):
            return cached
        ctx.enter(node)
        try:
            if node.anchor is not None:
                ctx.anchors.record_anchor(node.anchor, node)
            value = self.construct(node, ctx)
            ctx.anchors.store(node, value)
        finally:
            ctx.leave()
        return value

    def construct(self, node: Node, ctx: ResolutionContext) -> Any:
        self.check_kind(node)
        if isinstance(node, ScalarNode):
            return self.construct_scalar(node, ctx)
        if isinstance(node, SequenceNode):
            return self.construct_sequence(node, ctx)
        if isinstance(node, MappingNode):
            return self.construct_mapping(node, ctx)
        raise ConstructionFailed(node.tag or "value", node.id, "unknown node type", node.start_mark)

    def check_kind(self, node: Node) -> None:
        """Reject built-in tags written on the wrong kind of node (``!!seq {a: 1}``)."""
        tag = node.tag
        if tag == SEQ_TAG and not isinstance(node, SequenceNode):
            raise ConstructionFailed("list", node.id, f"{tag} needs a sequence", node.start_mark)
        if tag == MAP_TAG and not isinstance(node, MappingNode):
            raise ConstructionFailed("dict", node.id, f"{tag} needs a mapping", node.start_mark)
        if scalar_kind(tag) is not None and not isinstance(node, ScalarNode):
            raise ConstructionFailed(tag, node.id, f"{tag} needs a scalar", node.start_mark)

    # Hooks

    def construct_scalar(self, node: ScalarNode, ctx: ResolutionContext) -> Any:
        return coerce(node.value, node.tag, node.quoted, node.start_mark)

    def construct_sequence(self, node: SequenceNode, ctx: ResolutionContext) -> List[Any]:
        data: List[Any] = []
        # Registered before the children so ``&a [*a]`` resolves to itself
        ctx.anchors.store(node, data)
        for child in node.value:
            data.append(self.resolve(child, ctx))
        return data

    def construct_mapping(self, node: MappingNode, ctx: ResolutionContext) -> Dict[Any, Any]:
        data: Dict[Any, Any] = {}
        ctx.anchors.store(node, data)
        self.fill_mapping(data, node, ctx)
        return data

    def construct_alias(self, node: AliasNode, ctx: ResolutionContext) -> Any:
        ctx.count_alias(node)
        target = ctx.anchors.resolve_alias(node.ref, node.start_mark)
        return ctx.anchors.value_of(target, node.start_mark)

    def fill_mapping(self, data: Dict[Any, Any], node: MappingNode, ctx: ResolutionContext) -> None:
        """
        Resolve a mapping's entries into ``data``.

        Merged entries go in first so the mapping's own entries override them.
        Keys resolve before their values; a repeated key keeps its last value.
        """
        merges = []
        entries = []
        for key_node, value_node in node.value:
            if is_merge_key(key_node):
                merges.append(self.resolve(value_node, ctx))
                continue
            key = self.resolve(key_node, ctx)
            value = self.resolve(value_node, ctx)
            entries.append((key_node, key, value))

        for source in merge_sources(merges, node.start_mark):
            data.update(source)
        for key_node, key, value in entries:
            try:
                data[key] = value
            except TypeError as e:
                raise ConstructionFailed(
                    "dict", node.id, f"found unhashable key of type {type(key).__name__}",
                    key_node.start_mark,
                ) from e

    def construct_payload(self, node: Node, ctx: ResolutionContext) -> Any:
        """Resolve a class node's payload without registering it as the node's value."""
        if isinstance(node, ScalarNode):
            return node.value
        if isinstance(node, SequenceNode):
            return [self.resolve(child, ctx) for child in node.value]
        data: Dict[Any, Any] = {}
        self.fill_mapping(data, node, ctx)
        return data


class SafeResolver(BaseResolver):
    """Resolver that only materializes allowlisted tags and classes.

    Core YAML tags are always accepted. Every other tag must be registered,
    and class-construction tags (``!class``, ``!object:<name>``) must name a
    registered class. Subclasses customize the hooks; ``resolve`` itself is
    where the checks live and should not be overridden.
    """

    def __init__(
        self,
        allowlist: Allowlist,
        limits: Optional[ResolverLimits] = None,
        revival: Optional[RevivalPolicy] = None,
    ):
        super().__init__(limits)
        self.allowlist = allowlist.freeze()
        self.revival = revival or RevivalPolicy()

    def resolve(self, node: Node, ctx: ResolutionContext) -> Any:
        if not isinstance(node, AliasNode):
            self.check_tag(node)
        return super().resolve(node, ctx)

    def class_name(self, node: Node) -> Optional[str]:
        """Class name named by a class-construction node, or None for other nodes."""
        if node.tag == CLASS_TAG:
            if not isinstance(node, ScalarNode):
                raise ConstructionFailed(
                    CLASS_TAG, node.id, "expected a scalar class name", node.start_mark
                )
            return node.value
        return class_name_from_tag(node.tag)

    def check_tag(self, node: Node) -> None:
        """
        Enforce the allowlist for one node.

        Raises:
            DisallowedType: If a class-construction tag names an unregistered class
            DisallowedTag: If the tag is neither built-in nor registered
        """
        name = self.class_name(node)
        if name is not None:
            if not self.allowlist.is_class_permitted(name):
                logger.warning(f"Rejected class '{name}' in tag {node.tag}")
                raise DisallowedType(name, node.start_mark)
            return
        if is_builtin(node.tag) or self.allowlist.is_tag_permitted(node.tag):
            return
        logger.warning(f"Rejected tag {node.tag}")
        raise DisallowedTag(node.tag, node.start_mark)

    def construct(self, node: Node, ctx: ResolutionContext) -> Any:
        name = self.class_name(node)
        if name is not None:
            return self.revive(name, node, ctx)
        return super().construct(node, ctx)

    def revive(self, name: str, node: Node, ctx: ResolutionContext) -> Any:
        entry = self.allowlist.get_class(name)
        if entry is None:
            # check_tag has already run; this guards subclasses that skip it
            raise DisallowedType(name, node.start_mark)
        return self.revival.revive(entry, node, self, ctx)
