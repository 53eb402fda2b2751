"""Holds several named filter groups loaded from one configuration."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from noether.filtering.base import MESH_FILTER_BASE, ConfigurationError, class_name
from noether.filtering.group import GROUP_NAME, FilterGroup

_log = logging.getLogger(__name__)

FILTER_GROUPS = "filter_groups"
DEFAULT_FILTER_GROUP = "Default"


class FilterManager:
    """Loads filter groups of one base class and looks them up by name."""

    def __init__(self, base_class_name: str) -> None:
        self.base_class_name = base_class_name
        self._groups: dict[str, FilterGroup] = {}

    def init(self, config: Any) -> None:
        """Replace all groups with those in ``config``; raise ConfigurationError on failure."""
        self._groups.clear()
        if not isinstance(config, Mapping) or FILTER_GROUPS not in config:
            raise ConfigurationError(
                f"The '{FILTER_GROUPS}' field was not found, "
                f"{class_name(self)} failed to load configuration"
            )

        groups_config = config[FILTER_GROUPS]
        if not isinstance(groups_config, (list, tuple)):
            raise ConfigurationError(
                f"The '{FILTER_GROUPS}' field is not an array, "
                f"{class_name(self)} failed to load configuration"
            )

        for group_config in groups_config:
            group = FilterGroup(self.base_class_name)
            if not isinstance(group_config, Mapping) or GROUP_NAME not in group_config:
                raise ConfigurationError(
                    f"A filter group in the {class_name(self)} configuration has no "
                    f"'{GROUP_NAME}' field"
                )
            group_name = group_config[GROUP_NAME]
            if not isinstance(group_name, str):
                raise ConfigurationError(f"'{GROUP_NAME}' must be a string, got {group_name!r}")
            if group_name in self._groups:
                raise ConfigurationError(
                    f"The filter group '{group_name}' already exists in {class_name(self)}"
                )
            try:
                group.init(group_config)
            except ConfigurationError as exc:
                raise ConfigurationError(
                    f"Failed to initialize filter group '{group_name}': {exc}"
                ) from exc
            self._groups[group_name] = group
            _log.info("%s loaded filter group '%s'", class_name(self), group_name)

    def filter_group(self, name: str = "") -> FilterGroup:
        """Return the named group; an empty name selects the default group."""
        key = name or DEFAULT_FILTER_GROUP
        try:
            return self._groups[key]
        except KeyError:
            _log.error("Filter group '%s' was not found", key)
            raise KeyError(f"Filter group '{key}' was not found") from None


class MeshFilterManager(FilterManager):
    """A filter manager for filters that operate on polygon meshes."""

    def __init__(self) -> None:
        super().__init__(MESH_FILTER_BASE)