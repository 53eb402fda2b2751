"""Removal of points whose chosen field lies outside (or inside) a range."""

from __future__ import annotations

import dataclasses
import logging
import numbers
from collections.abc import Mapping
from typing import Any

import numpy as np

from noether.filtering.base import (
    CLOUD_FILTER_BASE,
    ConfigurationError,
    FilterBase,
    FilterError,
    register_filter,
)
from noether.filtering.data import PointCloud

_log = logging.getLogger(__name__)

_FLOAT_MAX = float(np.finfo(np.float32).max)

FILTER_FIELD_NAME = "filter_field_name"
MIN_LIMIT = "min_limit"
MAX_LIMIT = "max_limit"
NEGATIVE = "negative"


@dataclasses.dataclass
class PassThroughParams:
    """Parameters of the pass-through filter."""

    filter_field_name: str = "x"
    min_limit: float = -_FLOAT_MAX
    max_limit: float = _FLOAT_MAX
    negative: bool = False


def _number(config: Mapping, key: str) -> float:
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")
    return float(value)


@register_filter(CLOUD_FILTER_BASE)
class PassThroughFilter(FilterBase):
    """Keeps the points whose field value lies in ``[min_limit, max_limit]``.

    With ``negative`` set, the points inside the range are removed instead.
    Points with non-finite coordinates or field values are always removed.
    """

    def __init__(self, params: PassThroughParams | None = None) -> None:
        self.params = params if params is not None else PassThroughParams()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        missing = [key for key in (FILTER_FIELD_NAME, MIN_LIMIT, MAX_LIMIT) if key not in present]
        if missing:
            raise ConfigurationError(
                "Pass through filter configuration missing required parameters: "
                + ", ".join(missing)
            )

        try:
            field_name = present[FILTER_FIELD_NAME]
            if not isinstance(field_name, str):
                raise ConfigurationError(
                    f"'{FILTER_FIELD_NAME}' must be a string, got {field_name!r}"
                )
            min_limit = _number(present, MIN_LIMIT)
            max_limit = _number(present, MAX_LIMIT)
        except ConfigurationError as exc:
            raise ConfigurationError(
                f"Failed to load required parameter(s) for pass through filter: '{exc}'"
            ) from exc
        self.params.filter_field_name = field_name
        self.params.min_limit = min_limit
        self.params.max_limit = max_limit

        if NEGATIVE in present:
            value = present[NEGATIVE]
            if isinstance(value, bool):
                self.params.negative = value
            else:
                _log.warning(
                    "Failed to load optional parameter(s) for pass through filter: "
                    "'%s' must be a boolean, got %r",
                    NEGATIVE,
                    value,
                )

    def filter(self, data: PointCloud) -> PointCloud:
        name = self.params.filter_field_name
        if not name:
            raise FilterError("No filter field name set for pass through filter")
        try:
            values = np.asarray(data.field(name), dtype=float)
        except KeyError as exc:
            raise FilterError(f"Unable to find field name '{name}' in the point cloud") from exc
        if values.ndim != 1:
            raise FilterError(f"Field '{name}' does not hold one scalar per point")

        finite = np.isfinite(data.points).all(axis=1) & np.isfinite(values)
        inside = (values >= self.params.min_limit) & (values <= self.params.max_limit)
        keep = finite & (inside != self.params.negative)
        return data.select(np.flatnonzero(keep))