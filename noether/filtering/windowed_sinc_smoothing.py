"""Windowed sinc (Chebyshev low-pass) smoothing of polygon meshes."""

from __future__ import annotations

import dataclasses
import enum
import logging
import math
import numbers
from collections import defaultdict
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import numpy as np
from scipy import sparse

from noether.filtering.base import (
    MESH_FILTER_BASE,
    ConfigurationError,
    FilterBase,
    FilterError,
    register_filter,
)
from noether.filtering.data import PointCloud, PolygonMesh

_log = logging.getLogger(__name__)

NUM_ITER = "num_iter"
ENABLE_BOUNDARY_SMOOTHING = "enable_boundary_smoothing"
ENABLE_FEATURE_EDGE_SMOOTHING = "enable_feature_edge_smoothing"
ENABLE_NON_MANIFOLD_SMOOTHING = "enable_non_manifold_smoothing"
ENABLE_NORMALIZE_COORDINATES = "enable_normalize_coordinates"
FEATURE_ANGLE = "feature_angle"
EDGE_ANGLE = "edge_angle"
PASS_BAND = "pass_band"


@dataclasses.dataclass
class WindowedSincConfig:
    """Parameters of the windowed sinc smoothing filter; angles are in degrees."""

    num_iter: int = 100
    enable_boundary_smoothing: bool = True
    enable_feature_edge_smoothing: bool = False
    enable_non_manifold_smoothing: bool = True
    enable_normalize_coordinates: bool = True
    feature_angle: float = 10.0
    edge_angle: float = 150.0
    pass_band: float = 0.01


def _count(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 0:
        raise ConfigurationError(f"'{key}' must be a non-negative integer, got {value!r}")
    return int(value)


def _flag(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a boolean, got {value!r}")
    return value


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")
    return float(value)


_CONVERTERS = {
    NUM_ITER: _count,
    ENABLE_BOUNDARY_SMOOTHING: _flag,
    ENABLE_FEATURE_EDGE_SMOOTHING: _flag,
    ENABLE_NON_MANIFOLD_SMOOTHING: _flag,
    ENABLE_NORMALIZE_COORDINATES: _flag,
    FEATURE_ANGLE: _number,
    EDGE_ANGLE: _number,
    PASS_BAND: _number,
}


class _EdgeKind(enum.Enum):
    BOUNDARY = "boundary"
    NON_MANIFOLD = "non_manifold"
    FEATURE = "feature"


def _edges(polygon: Sequence[int]) -> Iterator[tuple[int, int]]:
    for a, b in zip(polygon, list(polygon[1:]) + [polygon[0]]):
        if a != b:
            yield a, b


def _face_normal(points: np.ndarray, polygon: Sequence[int]) -> np.ndarray:
    corners = points[list(polygon)]
    normal = np.cross(corners, np.roll(corners, -1, axis=0)).sum(axis=0)
    length = float(np.linalg.norm(normal))
    if length > 0 and math.isfinite(length):
        return normal / length
    return np.zeros(3)


def _unit(vector: np.ndarray) -> np.ndarray | None:
    length = float(np.linalg.norm(vector))
    if length > 0 and math.isfinite(length):
        return vector / length
    return None


def _smoothing_neighbours(
    points: np.ndarray, polygons: Sequence[Sequence[int]], config: WindowedSincConfig
) -> list[list[int]]:
    """Return, for each vertex, the vertices it is averaged with (empty when fixed)."""
    faces = [tuple(polygon) for polygon in polygons if len(set(polygon)) >= 3]
    edge_faces: dict[frozenset, list[int]] = defaultdict(list)
    for index, face in enumerate(faces):
        for a, b in _edges(face):
            edge_faces[frozenset((a, b))].append(index)

    normals = [_face_normal(points, face) for face in faces]
    cos_feature = math.cos(math.radians(config.feature_angle))

    adjacency: dict[int, set[int]] = defaultdict(set)
    special: dict[int, list[tuple[int, _EdgeKind]]] = defaultdict(list)
    for edge, owners in edge_faces.items():
        a, b = tuple(edge)
        adjacency[a].add(b)
        adjacency[b].add(a)
        if len(owners) == 1:
            kind = _EdgeKind.BOUNDARY
        elif len(owners) > 2:
            kind = _EdgeKind.NON_MANIFOLD
        elif (
            config.enable_feature_edge_smoothing
            and float(normals[owners[0]] @ normals[owners[1]]) < cos_feature
        ):
            kind = _EdgeKind.FEATURE
        else:
            continue
        special[a].append((b, kind))
        special[b].append((a, kind))

    cos_edge = math.cos(math.radians(config.edge_angle))
    neighbours: list[list[int]] = [[] for _ in range(len(points))]
    for vertex, adjacent in adjacency.items():
        edges = special.get(vertex, [])
        if not edges:
            neighbours[vertex] = sorted(adjacent)
            continue
        kinds = {kind for _, kind in edges}
        if _EdgeKind.BOUNDARY in kinds and not config.enable_boundary_smoothing:
            continue
        if _EdgeKind.NON_MANIFOLD in kinds and not config.enable_non_manifold_smoothing:
            continue
        if len(edges) != 2:
            continue
        (first, _), (second, _) = edges
        incoming = _unit(points[first] - points[vertex])
        outgoing = _unit(points[vertex] - points[second])
        if incoming is None or outgoing is None:
            continue
        # the vertex is a sharp corner when the edge direction turns by more than edge_angle
        if float(incoming @ outgoing) < cos_edge:
            continue
        neighbours[vertex] = [first, second]
    return neighbours


def _laplacian(neighbours: list[list[int]]) -> sparse.csr_matrix:
    rows: list[int] = []
    cols: list[int] = []
    values: list[float] = []
    for vertex, adjacent in enumerate(neighbours):
        if not adjacent:
            continue
        weight = 1.0 / len(adjacent)
        rows.extend([vertex] * len(adjacent))
        cols.extend(adjacent)
        values.extend([weight] * len(adjacent))
        rows.append(vertex)
        cols.append(vertex)
        values.append(-1.0)
    size = len(neighbours)
    return sparse.csr_matrix((values, (rows, cols)), shape=(size, size))


def _coefficients(num_iter: int, pass_band: float) -> np.ndarray:
    """Hamming-windowed Chebyshev coefficients of an ideal low-pass filter."""
    pass_band = min(max(pass_band, 0.0), 2.0)
    theta = math.acos(1.0 - 0.5 * pass_band)
    coefficients = [theta / math.pi]
    for i in range(1, num_iter + 1):
        window = 0.54 + 0.46 * math.cos(i * math.pi / (num_iter + 1))
        coefficients.append(window * 2.0 * math.sin(i * theta) / (i * math.pi))
    total = sum(coefficients)
    if abs(total) < 1e-12:
        raise FilterError(f"The pass band {pass_band} yields no usable smoothing filter")
    # unit gain at zero frequency keeps flat regions in place
    return np.asarray(coefficients) / total


def _chebyshev(points: np.ndarray, laplacian: sparse.csr_matrix, coefficients: np.ndarray) -> np.ndarray:
    previous = points
    result = coefficients[0] * previous
    if len(coefficients) == 1:
        return result
    current = previous + 0.5 * (laplacian @ previous)
    result = result + coefficients[1] * current
    for coefficient in coefficients[2:]:
        previous, current = current, 2.0 * (current + 0.5 * (laplacian @ current)) - previous
        result = result + coefficient * current
    return result


@register_filter(MESH_FILTER_BASE)
class WindowedSincSmoothing(FilterBase):
    """Smooths mesh vertices with a windowed sinc low-pass filter.

    Interior vertices are averaged with all their neighbours. Vertices on
    boundary, non-manifold or (when enabled) feature edges are smoothed only
    along those edges, and are fixed when they touch other than two such
    edges or when the edges turn by more than ``edge_angle``. Polygons and
    per-point fields are carried over unchanged.
    """

    def __init__(self, config: WindowedSincConfig | None = None) -> None:
        self.config = config if config is not None else WindowedSincConfig()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        for key in _CONVERTERS:
            if key not in present:
                raise ConfigurationError(f"The {self.name} config field {key} was not found")
        values = {key: convert(present[key], key) for key, convert in _CONVERTERS.items()}
        self.config = WindowedSincConfig(**values)

    def filter(self, data: PolygonMesh) -> PolygonMesh:
        config = self.config
        cloud = data.cloud.copy()
        points = cloud.points
        coefficients = _coefficients(config.num_iter, config.pass_band)
        if len(points) == 0:
            return PolygonMesh(cloud, list(data.polygons))

        center = np.zeros(3)
        scale = 1.0
        if config.enable_normalize_coordinates:
            low, high = points.min(axis=0), points.max(axis=0)
            length = float((high - low).max())
            if length > 0 and math.isfinite(length):
                center = (low + high) / 2.0
                scale = length
        work = (points - center) / scale

        neighbours = _smoothing_neighbours(work, data.polygons, config)
        smoothed = _chebyshev(work, _laplacian(neighbours), coefficients)
        _log.debug("Smoothed %d points over %d iterations", len(points), config.num_iter)
        return PolygonMesh(PointCloud(smoothed * scale + center, cloud.fields), list(data.polygons))