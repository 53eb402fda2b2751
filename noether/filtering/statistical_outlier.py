"""Removal of points whose mean neighbour distance is statistically large."""

from __future__ import annotations

import dataclasses
import logging
import numbers
from collections.abc import Mapping
from typing import Any

import numpy as np
from scipy.spatial import cKDTree

from noether.filtering.base import (
    CLOUD_FILTER_BASE,
    ConfigurationError,
    FilterBase,
    FilterError,
    register_filter,
)
from noether.filtering.data import PointCloud

_log = logging.getLogger(__name__)

MEAN_K = "mean_k"
STD_DEV_MULT = "std_dev_mult"


@dataclasses.dataclass
class StatisticalOutlierParams:
    """Parameters of the statistical outlier filter."""

    mean_k: int = 10
    std_dev_mult: float = 1.0


@register_filter(CLOUD_FILTER_BASE)
class StatisticalOutlierFilter(FilterBase):
    """Keeps points whose mean distance to their ``mean_k`` nearest neighbours
    is at most the global mean plus ``std_dev_mult`` standard deviations."""

    def __init__(self, params: StatisticalOutlierParams | None = None) -> None:
        self.params = params if params is not None else StatisticalOutlierParams()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        missing = [key for key in (MEAN_K, STD_DEV_MULT) if key not in present]
        if missing:
            raise ConfigurationError(
                "Statistical outlier filter missing required parameters: " + ", ".join(missing)
            )

        mean_k = present[MEAN_K]
        std_dev_mult = present[STD_DEV_MULT]
        if isinstance(mean_k, bool) or not isinstance(mean_k, numbers.Integral):
            raise ConfigurationError(
                f"Error configuring statistical outlier filter: '{MEAN_K}' must be an integer"
            )
        if isinstance(std_dev_mult, bool) or not isinstance(std_dev_mult, numbers.Real):
            raise ConfigurationError(
                f"Error configuring statistical outlier filter: '{STD_DEV_MULT}' must be a number"
            )
        self.params.mean_k = int(mean_k)
        self.params.std_dev_mult = float(std_dev_mult)

    def filter(self, data: PointCloud) -> PointCloud:
        mean_k = self.params.mean_k
        if mean_k <= 0:
            raise FilterError(f"The number of neighbours must be positive, got {mean_k}")

        valid = np.flatnonzero(np.isfinite(data.points).all(axis=1))
        if valid.size == 0:
            return data.select([])

        points = data.points[valid]
        count = len(points)
        k = min(mean_k + 1, count)
        distances, _ = cKDTree(points).query(points, k=k)
        distances = np.asarray(distances, dtype=float).reshape(count, -1)
        # the first neighbour is the query point itself
        mean_distances = distances[:, 1:].sum(axis=1) / mean_k

        total = np.float64(mean_distances.sum())
        n = np.float64(count)
        with np.errstate(divide="ignore", invalid="ignore"):
            mean = total / n
            variance = (np.square(mean_distances).sum() - total * total / n) / (n - 1)
            threshold = mean + self.params.std_dev_mult * np.sqrt(variance)
            keep = ~(mean_distances > threshold)

        _log.debug("Statistical outlier filter kept %d of %d points", keep.sum(), len(data))
        return data.select(valid[keep])