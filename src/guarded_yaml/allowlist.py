"""
Tag and class allowlist.

An ``Allowlist`` is built once at start-up, frozen, and then shared read-only
by every resolver. Classes are held in a registry of name -> factory filled at
configuration time; nothing is ever looked up from document text.
"""

import importlib
import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from .exceptions import ConfigurationError, InvalidRegistration

logger = logging.getLogger(__name__)

ClassSpec = Union[Callable[..., Any], Tuple[str, Callable[..., Any]]]


class ClassEntry:
    """A registered class: the name documents use and the factory behind it."""

    def __init__(self, name: str, factory: Callable[..., Any], singleton: bool = False):
        self.name = name
        self.factory = factory
        self.singleton = singleton

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassEntry):
            return NotImplemented
        return (self.name, self.factory, self.singleton) == (
            other.name, other.factory, other.singleton
        )

    def __hash__(self) -> int:
        return hash((self.name, id(self.factory)))

    def __repr__(self) -> str:
        return f"ClassEntry({self.name!r})"


def class_name_for(obj: Any) -> str:
    """
    Get the stable name of a type or factory.

    Args:
        obj: Type or callable being registered

    Returns:
        str: ``module.QualName``, or just the name for builtins

    Raises:
        InvalidRegistration: If the object has no stable name
    """
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if not isinstance(name, str) or not name:
        raise InvalidRegistration(obj, "anonymous types cannot be allowlisted")
    if "<" in name:
        raise InvalidRegistration(obj, f"'{name}' is not addressable by name")
    module = getattr(obj, "__module__", None)
    if module and module != "builtins":
        return f"{module}.{name}"
    return name


def _check_name(descriptor: Any, name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidRegistration(descriptor, "class name must be a non-empty string")
    if "<" in name or any(c.isspace() for c in name):
        raise InvalidRegistration(descriptor, f"'{name}' is not a valid class name")
    return name


def make_entry(spec: Any, name: Optional[str] = None, singleton: bool = False) -> ClassEntry:
    """Build a ``ClassEntry`` from a type, a callable, or a ``(name, factory)`` pair."""
    if isinstance(spec, tuple):
        if len(spec) != 2:
            raise InvalidRegistration(spec, "expected a (name, factory) pair")
        name, spec = spec
    if not callable(spec):
        raise InvalidRegistration(spec, "only types and callables can be allowlisted")
    if name is None:
        name = class_name_for(spec)
    return ClassEntry(_check_name(spec, name), spec, singleton)


class Allowlist:
    """Permitted tags and permitted classes."""

    def __init__(self, tags: Iterable[str] = (), classes: Iterable[ClassSpec] = ()):
        self._tags = set()
        self._classes: Dict[str, ClassEntry] = {}
        self._frozen = False
        self._lock = threading.Lock()
        self.register_tags(tags)
        self.register_classes(classes)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _ensure_mutable(self, descriptor: Any) -> None:
        if self._frozen:
            raise InvalidRegistration(
                descriptor, "allowlist is frozen; register everything before resolving"
            )

    def register_tags(self, tags: Iterable[str]) -> None:
        """
        Add tags to the permitted set.

        Args:
            tags: Tags exactly as they appear after parsing (e.g. ``!binary``)

        Raises:
            InvalidRegistration: If a tag is not a non-empty string or the allowlist is frozen
        """
        if isinstance(tags, str):
            tags = [tags]
        tags = list(tags)
        for tag in tags:
            if not isinstance(tag, str) or not tag:
                raise InvalidRegistration(tag, "tags must be non-empty strings")
        with self._lock:
            if tags:
                self._ensure_mutable(tags)
            self._tags.update(tags)
        for tag in tags:
            logger.debug(f"Allowlisted tag '{tag}'")

    def register_classes(self, classes: Iterable[ClassSpec]) -> None:
        """
        Add classes to the permitted set.

        Either every entry is registered or, if one is invalid, none is.

        Args:
            classes: Types, callables or ``(name, factory)`` pairs

        Raises:
            InvalidRegistration: For anonymous types, name clashes, or a frozen allowlist
        """
        entries = [c if isinstance(c, ClassEntry) else make_entry(c) for c in classes]
        with self._lock:
            if entries:
                self._ensure_mutable(entries)
            staged = dict(self._classes)
            for entry in entries:
                existing = staged.get(entry.name)
                if existing is not None and existing != entry:
                    raise InvalidRegistration(
                        entry.factory, f"'{entry.name}' is already registered to {existing.factory!r}"
                    )
                staged[entry.name] = entry
            self._classes = staged
        for entry in entries:
            logger.debug(f"Allowlisted class '{entry.name}'")

    def register_class(self, cls: Optional[Callable[..., Any]] = None, *,
                       name: Optional[str] = None, singleton: bool = False):
        """Register one class. Without ``cls`` this returns a decorator."""

        def register(target: Callable[..., Any]) -> Callable[..., Any]:
            self.register_classes([make_entry(target, name=name, singleton=singleton)])
            return target

        if cls is None:
            return register
        return register(cls)

    def freeze(self) -> "Allowlist":
        """Make the allowlist read-only. Further registration raises."""
        with self._lock:
            if not self._frozen:
                self._tags = frozenset(self._tags)
                self._classes = MappingProxyType(dict(self._classes))
                self._frozen = True
                logger.info(
                    f"Allowlist frozen with {len(self._tags)} tags and {len(self._classes)} classes"
                )
        return self

    def is_tag_permitted(self, tag: str) -> bool:
        return tag in self._tags

    def is_class_permitted(self, class_name: str) -> bool:
        return class_name in self._classes

    def get_class(self, class_name: str) -> Optional[ClassEntry]:
        return self._classes.get(class_name)

    @property
    def tags(self) -> frozenset:
        return frozenset(self._tags)

    @property
    def class_names(self) -> frozenset:
        return frozenset(self._classes)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Allowlist":
        """
        Build an allowlist from a configuration mapping.

        Args:
            config: Mapping with optional ``tags`` (list of str) and ``classes``
                (list of import paths or ``{path, name, singleton}`` mappings)

        Returns:
            Allowlist: A new, unfrozen allowlist

        Raises:
            ConfigurationError: If the mapping is malformed or a class cannot be imported
        """
        tags = config.get("tags") or []
        classes = config.get("classes") or []
        if not isinstance(tags, list) or not isinstance(classes, list):
            raise ConfigurationError("'tags' and 'classes' must be lists")

        entries = []
        for item in classes:
            if isinstance(item, str):
                entries.append(make_entry(import_object(item)))
            elif isinstance(item, dict) and "path" in item:
                entries.append(make_entry(
                    import_object(item["path"]),
                    name=item.get("name"),
                    singleton=bool(item.get("singleton", False)),
                ))
            else:
                raise ConfigurationError(f"Invalid class entry: {item!r}")
        return cls(tags=tags, classes=entries)


def import_object(path: str) -> Any:
    """
    Import an object from a ``module:attr`` or ``module.attr`` path.

    Only ever called on operator configuration, never on document content.
    """
    if not isinstance(path, str) or not path:
        raise ConfigurationError(f"Invalid import path: {path!r}")
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise ConfigurationError(f"Invalid import path: {path!r}")
    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import module '{module_name}': {e}") from e
    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise ConfigurationError(f"'{module_name}' has no attribute '{attr_path}'") from e
    return obj
