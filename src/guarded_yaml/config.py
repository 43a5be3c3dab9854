"""
Start-up configuration: builds the allowlist and limits from an operator file.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .allowlist import Allowlist
from .exceptions import ConfigurationError
from .loader import DEFAULT_MAX_BYTES
from .resolver import ResolverLimits

logger = logging.getLogger(__name__)


class LoaderConfig:
    """Everything a loader needs, read once at start-up."""

    def __init__(
        self,
        allowlist: Optional[Allowlist] = None,
        limits: Optional[ResolverLimits] = None,
        max_bytes: Optional[int] = DEFAULT_MAX_BYTES,
    ):
        self.allowlist = allowlist if allowlist is not None else Allowlist()
        self.limits = limits or ResolverLimits()
        self.max_bytes = max_bytes

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoaderConfig":
        """
        Build a configuration from a parsed mapping.

        Args:
            data: Mapping with optional ``tags``, ``classes``, ``limits`` and ``max_bytes``

        Returns:
            LoaderConfig: The configuration, allowlist frozen

        Raises:
            ConfigurationError: If any section is malformed
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Invalid configuration format: root must be a mapping")

        unknown = set(data) - {"tags", "classes", "limits", "max_bytes"}
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        limits_data = data.get("limits") or {}
        if not isinstance(limits_data, dict):
            raise ConfigurationError("Invalid configuration format: limits must be a mapping")
        try:
            limits = ResolverLimits.from_dict(limits_data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid limits: {str(e)}") from e
        for name in ("max_depth", "max_nodes", "max_aliases"):
            value = getattr(limits, name)
            if value is not None and (
                not isinstance(value, int) or isinstance(value, bool) or value < 1
            ):
                raise ConfigurationError(f"Invalid limit {name}: {value!r}")

        max_bytes = data.get("max_bytes", DEFAULT_MAX_BYTES)
        if max_bytes is not None and (
            not isinstance(max_bytes, int) or isinstance(max_bytes, bool) or max_bytes < 1
        ):
            raise ConfigurationError(f"Invalid max_bytes: {max_bytes!r}")

        allowlist = Allowlist.from_config(data).freeze()
        return cls(allowlist, limits, max_bytes)


def load_config(path: Union[str, Path]) -> LoaderConfig:
    """
    Load a configuration file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        LoaderConfig: Parsed configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(config_file) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {str(e)}") from e

    config = LoaderConfig.from_dict(data if data is not None else {})
    logger.info(f"Loaded configuration from {config_file}")
    return config
