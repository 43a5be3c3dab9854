"""
Composer that turns PyYAML's event stream into guarded-yaml document nodes.

PyYAML's parser does the tokenizing and syntax checks. Its own composer is
bypassed because it resolves aliases and implicit tags itself, which would
hide exactly the information the resolver has to inspect.
"""

import logging
from typing import Iterator, Optional

import yaml
from yaml import events

from .exceptions import ParseError, ResolutionLimitExceeded
from .nodes import AliasNode, MappingNode, Node, ScalarNode, SequenceNode

logger = logging.getLogger(__name__)


class Composer:
    """Builds one node tree per document from a parser event iterator."""

    def __init__(self, event_stream: Iterator[events.Event], max_depth: Optional[int] = None):
        self._events = event_stream
        self._peeked: Optional[events.Event] = None
        self.max_depth = max_depth

    def peek_event(self) -> events.Event:
        if self._peeked is None:
            self._peeked = next(self._events)
        return self._peeked

    def get_event(self) -> events.Event:
        event = self.peek_event()
        self._peeked = None
        return event

    def check_event(self, *choices: type) -> bool:
        return isinstance(self.peek_event(), choices)

    def compose_documents(self) -> Iterator[Optional[Node]]:
        """Yield the root node of every document in the stream."""
        # Drop StreamStartEvent
        self.get_event()
        while not self.check_event(events.StreamEndEvent):
            # Drop DocumentStartEvent
            self.get_event()
            node = self.compose_node(1)
            # Drop DocumentEndEvent
            self.get_event()
            yield node
        self.get_event()

    def compose_node(self, depth: int) -> Node:
        event = self.get_event()
        if isinstance(event, events.AliasEvent):
            return AliasNode(event.anchor, start_mark=event.start_mark)
        if self.max_depth is not None and depth > self.max_depth:
            raise ResolutionLimitExceeded("max_depth", self.max_depth, event.start_mark)
        if isinstance(event, events.ScalarEvent):
            return ScalarNode(
                event.value,
                tag=event.tag,
                style=event.style or None,
                anchor=event.anchor,
                start_mark=event.start_mark,
            )
        if isinstance(event, events.SequenceStartEvent):
            node = SequenceNode(tag=event.tag, anchor=event.anchor,
                                start_mark=event.start_mark)
            while not self.check_event(events.SequenceEndEvent):
                node.value.append(self.compose_node(depth + 1))
            self.get_event()
            return node
        if isinstance(event, events.MappingStartEvent):
            node = MappingNode(tag=event.tag, anchor=event.anchor,
                               start_mark=event.start_mark)
            while not self.check_event(events.MappingEndEvent):
                key = self.compose_node(depth + 1)
                value = self.compose_node(depth + 1)
                node.value.append((key, value))
            self.get_event()
            return node
        raise ParseError(f"Unexpected event {event.__class__.__name__}",
                         event.start_mark)


def _events(stream) -> Iterator[events.Event]:
    try:
        yield from yaml.parse(stream, Loader=yaml.SafeLoader)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}") from e


def compose_all(stream, max_depth: Optional[int] = None) -> Iterator[Optional[Node]]:
    """
    Compose every document in ``stream`` (str, bytes or file object).

    Nesting deeper than ``max_depth`` raises ``ResolutionLimitExceeded`` before
    the rest of the document is read.
    """
    return Composer(_events(stream), max_depth).compose_documents()


def compose(stream, max_depth: Optional[int] = None) -> Optional[Node]:
    """Compose a single-document stream. Returns None for an empty stream."""
    documents = list(compose_all(stream, max_depth))
    if not documents:
        return None
    if len(documents) > 1:
        raise ParseError(f"Expected a single document, found {len(documents)}")
    logger.debug(f"Composed document rooted at {documents[0]!r}")
    return documents[0]
