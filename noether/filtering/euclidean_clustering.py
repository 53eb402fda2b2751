"""Removal of mesh regions that do not belong to a large enough point cluster."""

from __future__ import annotations

import dataclasses
import logging
import numbers
from collections import deque
from collections.abc import Mapping
from itertools import chain
from typing import Any

import numpy as np
from scipy.spatial import cKDTree

from noether.filtering.base import (
    MESH_FILTER_BASE,
    ConfigurationError,
    FilterBase,
    FilterError,
    register_filter,
)
from noether.filtering.data import PolygonMesh

_log = logging.getLogger(__name__)

TOLERANCE = "tolerance"
MIN_CLUSTER_SIZE = "min_cluster_size"
MAX_CLUSTER_SIZE = "max_cluster_size"


@dataclasses.dataclass
class EuclideanClusteringParams:
    """Parameters of the Euclidean clustering filter."""

    tolerance: float = 0.02
    min_cluster_size: int = 100
    max_cluster_size: int = -1  # the input point count is used when not positive


def extract_clusters(
    points: Any,
    tolerance: float,
    min_cluster_size: int = 1,
    max_cluster_size: int | None = None,
) -> list[list[int]]:
    """Group points connected by hops of at most ``tolerance``.

    Only clusters whose size lies in ``[min_cluster_size, max_cluster_size]``
    are returned, largest first, each as sorted point indices. A missing or
    non-positive ``max_cluster_size`` means the number of points. Points with
    non-finite coordinates belong to no cluster.
    """
    if tolerance < 0:
        raise ValueError(f"cluster tolerance must not be negative, got {tolerance}")
    array = np.asarray(points, dtype=float).reshape(-1, 3)
    upper = len(array) if max_cluster_size is None or max_cluster_size <= 0 else max_cluster_size

    valid = np.flatnonzero(np.isfinite(array).all(axis=1))
    if valid.size == 0:
        return []
    neighbours = cKDTree(array[valid]).query_ball_point(array[valid], tolerance)

    processed = np.zeros(len(valid), dtype=bool)
    clusters: list[list[int]] = []
    for seed in range(len(valid)):
        if processed[seed]:
            continue
        processed[seed] = True
        members = [seed]
        queue = deque([seed])
        while queue:
            for other in neighbours[queue.popleft()]:
                if not processed[other]:
                    processed[other] = True
                    members.append(other)
                    queue.append(other)
        if min_cluster_size <= len(members) <= upper:
            clusters.append(sorted(int(i) for i in valid[members]))

    clusters.sort(key=len, reverse=True)
    return clusters


def _is_valid_polygon(points: np.ndarray, polygon: tuple[int, ...]) -> bool:
    if len(polygon) < 3:
        return False
    a, b, c = (points[v] for v in polygon[:3])
    with np.errstate(invalid="ignore", over="ignore"):
        normal = np.cross(b - a, c - a)
    return bool(np.isfinite(normal).all())


@register_filter(MESH_FILTER_BASE)
class EuclideanClustering(FilterBase):
    """Keeps the polygons whose vertices lie in the retained clusters.

    Removed vertices are those falling in the gaps between retained cluster
    indices; polygons with non-finite normals are dropped as well.
    """

    def __init__(self, params: EuclideanClusteringParams | None = None) -> None:
        self.params = params if params is not None else EuclideanClusteringParams()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        for key in (TOLERANCE, MIN_CLUSTER_SIZE, MAX_CLUSTER_SIZE):
            if key not in present:
                raise ConfigurationError(
                    f"{self.name} did not find the {key} field in the configuration"
                )

        tolerance = present[TOLERANCE]
        if isinstance(tolerance, bool) or not isinstance(tolerance, numbers.Real):
            raise ConfigurationError(
                f"{self.name} Failed to cast a configuration field, '{TOLERANCE}' must be a number"
            )
        sizes = {}
        for key in (MIN_CLUSTER_SIZE, MAX_CLUSTER_SIZE):
            value = present[key]
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigurationError(
                    f"{self.name} Failed to cast a configuration field, '{key}' must be an integer"
                )
            sizes[key] = int(value)

        self.params.tolerance = float(tolerance)
        self.params.min_cluster_size = sizes[MIN_CLUSTER_SIZE]
        self.params.max_cluster_size = sizes[MAX_CLUSTER_SIZE]

    def filter(self, data: PolygonMesh) -> PolygonMesh:
        points = data.cloud.points
        clusters = extract_clusters(
            points,
            self.params.tolerance,
            self.params.min_cluster_size,
            self.params.max_cluster_size,
        )
        if not clusters:
            raise FilterError(f"{self.name} found no clusters")

        _log.info("%s found %d clusters", self.name, len(clusters))
        for index, cluster in enumerate(clusters):
            _log.info("\t cluster[%d] -> %d points ", index, len(cluster))

        combined = sorted(set(chain.from_iterable(clusters)))
        _log.info(
            "%s clusters contain %d unique points out of %d input points",
            self.name,
            len(combined),
            len(points),
        )

        removed: set[int] = set()
        for low, high in zip(combined, combined[1:]):
            removed.update(range(low + 1, high))

        remaining = [
            polygon
            for polygon in data.polygons
            if _is_valid_polygon(points, polygon) and removed.isdisjoint(polygon)
        ]
        if not remaining:
            raise FilterError(f"{self.name} found no remaining polygons")

        _log.info(
            "New mesh contains %d polygons out of %d in the input mesh",
            len(remaining),
            len(data.polygons),
        )
        return PolygonMesh(data.cloud.copy(), remaining).remove_unused_vertices()