"""Moving least squares smoothing of point clouds."""

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

POLYNOMIAL_ORDER = "polynomial_order"
SEARCH_RADIUS = "search_radius"

_NORMALS = "normals"


@dataclasses.dataclass
class MLSSmoothingParams:
    """Parameters of the moving least squares smoothing filter."""

    polynomial_order: int = 2
    search_radius: float = 0.1


def _unit_orthogonal(vector: np.ndarray) -> np.ndarray:
    x, y, z = vector
    precision = 1e-12
    if not (abs(x) <= precision * abs(z) and abs(y) <= precision * abs(z)):
        norm = np.hypot(x, y)
        return np.array([-y / norm, x / norm, 0.0])
    norm = np.hypot(y, z)
    return np.array([0.0, -z / norm, y / norm])


def _exponents(order: int) -> list[tuple[int, int]]:
    return [(i, j) for i in range(order + 1) for j in range(order + 1 - i)]


def _project(
    query: np.ndarray,
    neighbours: np.ndarray,
    sqr_dists: np.ndarray,
    order: int,
    sqr_gauss: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Project ``query`` onto the local MLS surface; return the point and normal."""
    if len(neighbours) < 3:
        return query.copy(), np.full(3, np.nan)

    mean = neighbours.mean(axis=0)
    centred = neighbours - mean
    covariance = centred.T @ centred / len(neighbours)
    _, vectors = np.linalg.eigh(covariance)
    normal = vectors[:, 0]
    u_axis = _unit_orthogonal(normal)
    v_axis = np.cross(normal, u_axis)

    offset = query - mean
    u0, v0 = float(offset @ u_axis), float(offset @ v_axis)
    exponents = _exponents(order)

    if order > 1 and len(neighbours) >= len(exponents):
        us = centred @ u_axis
        vs = centred @ v_axis
        ws = centred @ normal
        design = np.column_stack([us**i * vs**j for i, j in exponents])
        weights = np.sqrt(np.exp(-sqr_dists / sqr_gauss))
        coeffs, *_ = np.linalg.lstsq(design * weights[:, None], ws * weights, rcond=None)
        if np.all(np.isfinite(coeffs)):
            w = sum(c * u0**i * v0**j for c, (i, j) in zip(coeffs, exponents))
            du = sum(c * i * u0 ** (i - 1) * v0**j for c, (i, j) in zip(coeffs, exponents) if i)
            dv = sum(c * j * u0**i * v0 ** (j - 1) for c, (i, j) in zip(coeffs, exponents) if j)
            point = mean + u0 * u_axis + v0 * v_axis + w * normal
            surface_normal = normal - du * u_axis - dv * v_axis
            return point, surface_normal / np.linalg.norm(surface_normal)

    return mean + u0 * u_axis + v0 * v_axis, normal


@register_filter(CLOUD_FILTER_BASE)
class MLSSmoothingFilter(FilterBase):
    """Moves each point onto a polynomial surface fitted to its neighbourhood.

    Neighbours within ``search_radius`` are weighted with a Gaussian whose
    squared width is the squared search radius. Points with fewer than three
    neighbours are kept where they are. When the cloud carries a ``normals``
    field it is replaced by the normals of the fitted surfaces; other fields
    are carried over unchanged. Points with non-finite coordinates are dropped.
    """

    def __init__(self, params: MLSSmoothingParams | None = None) -> None:
        self.params = params if params is not None else MLSSmoothingParams()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        missing = [key for key in (SEARCH_RADIUS, POLYNOMIAL_ORDER) if key not in present]
        if missing:
            raise ConfigurationError(
                "Failed to find required configuration parameters: " + ", ".join(missing)
            )

        radius = present[SEARCH_RADIUS]
        order = present[POLYNOMIAL_ORDER]
        if isinstance(radius, bool) or not isinstance(radius, numbers.Real):
            raise ConfigurationError(
                f"Error configuring MLS Smoothing Filter: '{SEARCH_RADIUS}' must be a number"
            )
        if isinstance(order, bool) or not isinstance(order, numbers.Integral):
            raise ConfigurationError(
                f"Error configuring MLS Smoothing Filter: '{POLYNOMIAL_ORDER}' must be an integer"
            )
        self.params.search_radius = float(radius)
        self.params.polynomial_order = int(order)

    def filter(self, data: PointCloud) -> PointCloud:
        radius = self.params.search_radius
        if not radius > 0:
            raise FilterError(f"Invalid search radius {radius}")

        valid = np.flatnonzero(np.isfinite(data.points).all(axis=1))
        result = data.select(valid)
        if len(result) == 0:
            return result

        points = result.points
        tree = cKDTree(points)
        sqr_gauss = radius * radius
        projected = np.empty_like(points)
        normals = np.empty_like(points)
        for row, (query, neighbour_ids) in enumerate(
            zip(points, tree.query_ball_point(points, radius))
        ):
            neighbours = points[neighbour_ids]
            sqr_dists = np.square(neighbours - query).sum(axis=1)
            projected[row], normals[row] = _project(
                query, neighbours, sqr_dists, self.params.polynomial_order, sqr_gauss
            )

        fields = dict(result.fields)
        if _NORMALS in fields:
            fields[_NORMALS] = normals
        return PointCloud(projected, fields)