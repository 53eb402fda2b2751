"""The filter interface and the registry that creates filters by type name."""

from __future__ import annotations

import abc
from collections.abc import Callable
from typing import Any

MESH_FILTER_BASE = "noether.filtering.MeshFilterBase"
CLOUD_FILTER_BASE = "noether.filtering.CloudFilterBase"


class FilterError(Exception):
    """A filter could not be created or failed to process its input."""


class ConfigurationError(FilterError):
    """A filter, group or manager configuration is missing or malformed."""


class FilterBase(abc.ABC):
    """A configurable operation that turns one data object into another."""

    @abc.abstractmethod
    def configure(self, config: Any) -> None:
        """Load parameters from a configuration mapping; raise ConfigurationError."""

    @abc.abstractmethod
    def filter(self, data: Any) -> Any:
        """Return the filtered data; raise FilterError on failure."""

    @property
    def name(self) -> str:
        return class_name(self)


_registry: dict[str, dict[str, type[FilterBase]]] = {}


def class_name(obj: Any) -> str:
    """Return the fully qualified name of a class or of an instance's class."""
    cls = obj if isinstance(obj, type) else type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


def register_filter(
    base_name: str, type_name: str | None = None
) -> Callable[[type[FilterBase]], type[FilterBase]]:
    """Return a class decorator declaring a filter type under ``base_name``.

    The type name defaults to the class's qualified name.
    """

    def decorator(cls: type[FilterBase]) -> type[FilterBase]:
        if not (isinstance(cls, type) and issubclass(cls, FilterBase)):
            raise TypeError(f"{cls!r} is not a FilterBase subclass")
        key = type_name or class_name(cls)
        classes = _registry.setdefault(base_name, {})
        existing = classes.get(key)
        if existing is not None and existing is not cls:
            raise ValueError(f"filter type {key!r} is already declared for {base_name!r}")
        classes[key] = cls
        return cls

    return decorator


def create_filter(base_name: str, type_name: str) -> FilterBase:
    """Create a new, unconfigured filter of a declared type."""
    try:
        cls = _registry[base_name][type_name]
    except KeyError:
        raise FilterError(
            f"no filter type {type_name!r} is declared for base class {base_name!r}"
        ) from None
    return cls()


def declared_filters(base_name: str) -> list[str]:
    """Return the sorted type names declared under ``base_name``."""
    return sorted(_registry.get(base_name, {}))