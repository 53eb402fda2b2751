"""A named chain of configured filters applied one after another."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from noether.filtering.base import (
    ConfigurationError,
    FilterBase,
    FilterError,
    class_name,
    create_filter,
    declared_filters,
)

_log = logging.getLogger(__name__)

TYPE_NAME = "type"
NAME = "name"
CONFIG = "config"

GROUP_NAME = "group_name"
CONTINUE_ON_FAILURE = "continue_on_failure"
VERBOSITY_ON = "verbosity_on"
FILTERS = "filters"


@dataclasses.dataclass
class FilterInfo:
    """One entry of a group's filter list."""

    type_name: str
    name: str
    config: Any = None


def load_filter_infos(filter_configs: Any) -> list[FilterInfo]:
    """Parse a list of filter entries; raise ConfigurationError if malformed or empty."""
    if not isinstance(filter_configs, (list, tuple)):
        raise ConfigurationError("The filter group configuration is not an array of filters")

    infos = []
    for entry in filter_configs:
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"filter entry {entry!r} is not a mapping")
        try:
            type_name = entry[TYPE_NAME]
            name = entry[NAME]
        except KeyError as exc:
            raise ConfigurationError(
                f"filter entry is missing the '{exc.args[0]}' field"
            ) from None
        if not isinstance(type_name, str) or not isinstance(name, str):
            raise ConfigurationError(
                f"the '{TYPE_NAME}' and '{NAME}' fields of a filter entry must be strings"
            )
        infos.append(FilterInfo(type_name, name, entry.get(CONFIG)))

    if not infos:
        raise ConfigurationError("The filter group configuration lists no filters")
    return infos


def _as_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{field}' must be a boolean, got {value!r}")
    return value


class FilterGroup:
    """Loads filters of one base class from configuration and applies them in order.

    With ``continue_on_failure`` set, a pass succeeds when at least one filter
    succeeds; otherwise the first failing filter aborts the pass.
    """

    def __init__(self, base_class_name: str) -> None:
        self.base_class_name = base_class_name
        self.continue_on_failure = False
        self.verbosity_on = False
        self._filters_loaded: list[str] = []
        self._filters: dict[str, FilterBase] = {}
        available = "".join(f"\n\t\t{n}" for n in declared_filters(base_class_name))
        _log.info("Available plugins for base class '%s' :%s", base_class_name, available)

    def init(self, config: Any) -> None:
        """Create and configure the group's filters; raise ConfigurationError on failure."""
        if not isinstance(config, Mapping):
            raise ConfigurationError(f"the {class_name(self)} config must be a mapping")
        for field in (CONTINUE_ON_FAILURE, VERBOSITY_ON, FILTERS):
            if field not in config:
                raise ConfigurationError(
                    f"The '{field}' field was not found in the {class_name(self)} config"
                )

        try:
            self.continue_on_failure = _as_bool(config[CONTINUE_ON_FAILURE], CONTINUE_ON_FAILURE)
            self.verbosity_on = _as_bool(config[VERBOSITY_ON], VERBOSITY_ON)
        except ConfigurationError as exc:
            _log.warning("Failed to parse '%s' parameter: '%s'", CONTINUE_ON_FAILURE, exc)
            self.continue_on_failure = False

        try:
            infos = load_filter_infos(config[FILTERS])
        except ConfigurationError as exc:
            raise ConfigurationError(f"Failed to load filters: {exc}") from exc

        for info in infos:
            if info.name in self._filters:
                raise ConfigurationError(f"The filter '{info.name}' has already been added")
            try:
                plugin = create_filter(self.base_class_name, info.type_name)
            except FilterError as exc:
                raise ConfigurationError(f"Filter '{info.name}' could not be created: {exc}") from exc
            try:
                plugin.configure(info.config)
            except ConfigurationError as exc:
                raise ConfigurationError(
                    f"Filter '{info.name}' failed to load configuration: {exc}"
                ) from exc
            self._filters_loaded.append(info.name)
            self._filters[info.name] = plugin

    def apply_filters(self, data: Any, filters: Iterable[str] | None = None) -> Any:
        """Run the named filters (all loaded ones by default) and return the result.

        Raises FilterError when a named filter is unknown, when a filter fails
        and ``continue_on_failure`` is off, or when no filter succeeded.
        """
        requested = list(self._filters_loaded if filters is None else filters)
        selected = requested
        if not requested:
            _log.warning(
                "%s received empty list of filters, using all filters loaded", class_name(self)
            )
            selected = list(self._filters_loaded)

        for name in requested:
            if name not in self._filters:
                message = f"The filter {name} was not found"
                _log.error("%s", message)
                raise FilterError(message)

        current = data
        succeeded = False
        last_error = "No filters were applied"
        for name in selected:
            start = time.perf_counter()
            try:
                output = self._filters[name].filter(current)
            except FilterError as exc:
                if self.verbosity_on:
                    _log.info("Filter '%s' took %f seconds", name, time.perf_counter() - start)
                last_error = f"The filter {name} failed"
                _log.error("%s: %s", last_error, exc)
                if not self.continue_on_failure:
                    raise FilterError(last_error) from exc
                continue
            if self.verbosity_on:
                _log.info("Filter '%s' took %f seconds", name, time.perf_counter() - start)
            current = output
            succeeded = True

        if not succeeded:
            raise FilterError(last_error)
        return current