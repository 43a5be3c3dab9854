"""
Revival of allowlisted classes.

The resolver only calls into this module after the class name has been found
in the allowlist.
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Mapping, Set
from typing import Any, Callable, Dict

from .allowlist import ClassEntry
from .exceptions import ConstructionFailed
from .nodes import MappingNode, Node
from .tags import CLASS_TAG

logger = logging.getLogger(__name__)

BUILTIN_SINGLETONS: Dict[Any, Any] = {
    type(None): None,
    type(Ellipsis): Ellipsis,
    type(NotImplemented): NotImplemented,
}

_shared_instances: Dict[Callable[..., Any], Any] = {}
_shared_lock = threading.Lock()


def shared_instance(factory: Callable[..., Any]) -> Any:
    """Return the one process-wide instance made by ``factory``."""
    if factory in BUILTIN_SINGLETONS:
        return BUILTIN_SINGLETONS[factory]
    with _shared_lock:
        if factory not in _shared_instances:
            _shared_instances[factory] = factory()
        return _shared_instances[factory]


class Singleton:
    """Mixin for classes with exactly one instance per process.

    Documents naming a ``Singleton`` subclass always resolve to
    ``cls.instance()``, whatever payload they carry.
    """

    @classmethod
    def instance(cls):
        return shared_instance(cls)


def is_singleton(entry: ClassEntry) -> bool:
    factory = entry.factory
    if entry.singleton or factory in BUILTIN_SINGLETONS:
        return True
    return isinstance(factory, type) and issubclass(factory, Singleton)


class AbsentByDefault(defaultdict):
    """A defaultdict that reports a missing key as False without storing it."""

    def __missing__(self, key: Any) -> bool:
        return False


def fix_membership_default(collection: Any) -> None:
    """
    Make a set-like object's backing defaultdicts report unseen keys as absent.

    Each defaultdict attribute is replaced by an ``AbsentByDefault`` copy, so
    membership checks for unseen items neither succeed nor grow the storage.
    """
    try:
        attributes = vars(collection)
    except TypeError:
        return
    for name, value in list(attributes.items()):
        if isinstance(value, defaultdict) and not isinstance(value, AbsentByDefault):
            setattr(collection, name, AbsentByDefault(bool, value))


class RevivalPolicy:
    """Builds values for class-construction nodes."""

    def revive(self, entry: ClassEntry, node: Node, resolver: Any, ctx: Any) -> Any:
        """
        Build the value for an allowlisted class node.

        Args:
            entry: Registry entry of the allowlisted class
            node: The ``!class`` or ``!object:<name>`` node
            resolver: Resolver used to resolve the payload's children
            ctx: Current resolution pass

        Returns:
            Any: The class itself, its shared instance, or a new instance

        Raises:
            ConstructionFailed: If the class rejects the payload
        """
        if node.tag == CLASS_TAG:
            return entry.factory
        # Resolved even when it is ignored, so every tag inside is checked
        payload = resolver.construct_payload(node, ctx)
        if is_singleton(entry):
            logger.debug(f"Reviving shared instance of '{entry.name}'")
            try:
                return shared_instance(entry.factory)
            except (TypeError, ValueError, ArithmeticError) as e:
                raise ConstructionFailed(entry.name, node.id, str(e), node.start_mark) from e

        value = self.construct(entry, node, payload)
        if isinstance(value, Set):
            fix_membership_default(value)
        return value

    def construct(self, entry: ClassEntry, node: Node, payload: Any) -> Any:
        factory = entry.factory
        try:
            if isinstance(node, MappingNode) and not (
                isinstance(factory, type) and issubclass(factory, Mapping)
            ):
                non_str = [k for k in payload if not isinstance(k, str)]
                if non_str:
                    raise TypeError(f"keyword names must be strings, got {non_str[0]!r}")
                return factory(**payload)
            return factory(payload)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise ConstructionFailed(entry.name, node.id, str(e), node.start_mark) from e
