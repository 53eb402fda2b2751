"""Filling of small holes in polygon meshes."""

from __future__ import annotations

import logging
import numbers
from collections import Counter, defaultdict, deque
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

import numpy as np

from noether.filtering.base import (
    MESH_FILTER_BASE,
    ConfigurationError,
    FilterBase,
    register_filter,
)
from noether.filtering.data import PointCloud, PolygonMesh

_log = logging.getLogger(__name__)

HOLE_SIZE = "hole_size"
_NORMALS = "normals"


def _edges(polygon: Sequence[int]) -> Iterator[tuple[int, int]]:
    if len(polygon) < 3:
        return
    for a, b in zip(polygon, list(polygon[1:]) + [polygon[0]]):
        if a != b:
            yield a, b


def boundary_loops(polygons: Iterable[Sequence[int]]) -> list[list[int]]:
    """Return the closed loops of edges used by exactly one polygon.

    Each loop lists its vertices in the direction the polygons traverse the
    boundary edges. Open boundary chains are left out.
    """
    polygons = list(polygons)
    counts = Counter(frozenset(edge) for polygon in polygons for edge in _edges(polygon))

    outgoing: dict[int, list[int]] = defaultdict(list)
    order: list[tuple[int, int]] = []
    for polygon in polygons:
        for a, b in _edges(polygon):
            if counts[frozenset((a, b))] == 1:
                outgoing[a].append(b)
                order.append((a, b))

    used: set[tuple[int, int]] = set()
    loops = []
    for start in order:
        if start in used:
            continue
        used.add(start)
        loop = [start[0]]
        current = start[1]
        while current != loop[0]:
            step = next(((current, b) for b in outgoing[current] if (current, b) not in used), None)
            if step is None:
                break
            used.add(step)
            loop.append(current)
            current = step[1]
        else:
            loops.append(loop)
    return loops


def _bounding_sphere(points: np.ndarray) -> tuple[np.ndarray, float]:
    """Approximate the smallest sphere holding ``points`` (Ritter's method)."""
    extremes = [points[np.argmin(points[:, axis])] for axis in range(3)]
    extremes += [points[np.argmax(points[:, axis])] for axis in range(3)]
    pairs = [(extremes[axis], extremes[axis + 3]) for axis in range(3)]
    low, high = max(pairs, key=lambda pair: float(np.square(pair[1] - pair[0]).sum()))
    center = (low + high) / 2.0
    radius = float(np.linalg.norm(high - low)) / 2.0
    for point in points:
        distance = float(np.linalg.norm(point - center))
        if distance > radius:
            new_radius = (radius + distance) / 2.0
            center = center + (point - center) * ((distance - new_radius) / distance)
            radius = new_radius
    return center, radius


def _flip(polygon: Sequence[int]) -> tuple[int, ...]:
    return (polygon[0],) + tuple(reversed(polygon[1:]))


def _orient_consistently(polygons: list[tuple[int, ...]]) -> list[tuple[int, ...]]:
    """Flip polygons so that neighbours traverse shared edges in opposite directions."""
    edge_faces: dict[frozenset, list[int]] = defaultdict(list)
    for index, polygon in enumerate(polygons):
        for edge in _edges(polygon):
            edge_faces[frozenset(edge)].append(index)

    oriented = list(polygons)
    visited = [False] * len(oriented)
    for seed in range(len(oriented)):
        if visited[seed]:
            continue
        visited[seed] = True
        queue = deque([seed])
        while queue:
            current = queue.popleft()
            for a, b in _edges(oriented[current]):
                for other in edge_faces[frozenset((a, b))]:
                    if visited[other]:
                        continue
                    if (a, b) in set(_edges(oriented[other])):
                        oriented[other] = _flip(oriented[other])
                    visited[other] = True
                    queue.append(other)
    return oriented


def _unit_rows(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    return np.divide(vectors, norms, out=np.zeros_like(vectors), where=norms > 0)


def _point_normals(points: np.ndarray, polygons: list[tuple[int, ...]]) -> np.ndarray:
    """Average the unit polygon normals at each vertex."""
    normals = np.zeros_like(points, dtype=float)
    for polygon in polygons:
        corners = points[list(polygon)]
        face = np.cross(corners, np.roll(corners, -1, axis=0)).sum(axis=0)
        length = np.linalg.norm(face)
        if length > 0 and np.isfinite(length):
            normals[list(polygon)] += face / length
    return _unit_rows(normals)


@register_filter(MESH_FILTER_BASE)
class FillHoles(FilterBase):
    """Closes boundary loops whose bounding sphere radius is at most ``hole_size``.

    Each hole is closed with one polygon; the polygons are then oriented
    consistently and the output cloud carries averaged point ``normals``.
    """

    def __init__(self, hole_size: float = 1.0) -> None:
        self.hole_size = hole_size

    def configure(self, config: Any) -> None:
        if not isinstance(config, Mapping) or HOLE_SIZE not in config:
            raise ConfigurationError(f"The {self.name} config field {HOLE_SIZE} was not found")
        value = config[HOLE_SIZE]
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ConfigurationError(f"'{HOLE_SIZE}' must be a number, got {value!r}")
        self.hole_size = float(value)

    def filter(self, data: PolygonMesh) -> PolygonMesh:
        points = data.cloud.points
        fills = []
        for loop in boundary_loops(data.polygons):
            _, radius = _bounding_sphere(points[loop])
            if radius <= self.hole_size:
                fills.append(tuple(reversed(loop)))

        polygons = _orient_consistently(list(data.polygons) + fills)
        fields = dict(data.cloud.fields)
        fields[_NORMALS] = _point_normals(points, polygons)
        _log.info("Filled %d holes", len(fills))
        return PolygonMesh(PointCloud(points.copy(), fields), polygons)