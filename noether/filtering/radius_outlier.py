"""Removal of points with too few neighbours within a radius."""

from __future__ import annotations

import dataclasses
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

RADIUS = "radius"
MIN_PTS = "min_pts"


@dataclasses.dataclass
class RadiusOutlierParams:
    """Parameters of the radius outlier filter."""

    radius: float = 0.1
    min_pts: int = 10


@register_filter(CLOUD_FILTER_BASE)
class RadiusOutlierFilter(FilterBase):
    """Keeps the points that have at least ``min_pts`` other points within ``radius``."""

    def __init__(self, params: RadiusOutlierParams | None = None) -> None:
        self.params = params if params is not None else RadiusOutlierParams()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        missing = [key for key in (RADIUS, MIN_PTS) if key not in present]
        if missing:
            raise ConfigurationError(
                "Radius outlier filter configuration missing parameters: " + ", ".join(missing)
            )

        radius = present[RADIUS]
        min_pts = present[MIN_PTS]
        if isinstance(radius, bool) or not isinstance(radius, numbers.Real):
            raise ConfigurationError(
                f"Error configuring radius outlier filter: '{RADIUS}' must be a number"
            )
        if isinstance(min_pts, bool) or not isinstance(min_pts, numbers.Integral):
            raise ConfigurationError(
                f"Error configuring radius outlier filter: '{MIN_PTS}' must be an integer"
            )
        self.params.radius = float(radius)
        self.params.min_pts = int(min_pts)

    def filter(self, data: PointCloud) -> PointCloud:
        radius = self.params.radius
        if not radius > 0:
            raise FilterError(f"No valid search radius defined, got {radius}")

        valid = np.flatnonzero(np.isfinite(data.points).all(axis=1))
        if valid.size == 0:
            return data.select([])

        points = data.points[valid]
        # the count includes the query point itself
        counts = np.asarray(
            cKDTree(points).query_ball_point(points, radius, return_length=True)
        )
        keep = counts > self.params.min_pts
        return data.select(valid[keep])