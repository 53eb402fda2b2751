"""Point cloud and polygon mesh containers that the filters operate on."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

import numpy as np

_XYZ = {"x": 0, "y": 1, "z": 2}
_NORMAL_COMPONENTS = {"normal_x": 0, "normal_y": 1, "normal_z": 2}


def _empty_points() -> np.ndarray:
    return np.empty((0, 3), dtype=float)


@dataclasses.dataclass(eq=False)
class PointCloud:
    """An ordered set of 3D points with optional per-point fields.

    ``points`` is an ``(N, 3)`` array of coordinates. ``fields`` maps a field
    name (for example ``"normals"``, ``"rgb"`` or ``"intensity"``) to an array
    whose first dimension is ``N``.
    """

    points: np.ndarray = dataclasses.field(default_factory=_empty_points)
    fields: dict[str, np.ndarray] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        points = np.asarray(self.points, dtype=float)
        if points.size == 0:
            points = points.reshape(0, 3)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"points must have shape (N, 3), got {points.shape}")
        self.points = points

        fields: dict[str, np.ndarray] = {}
        for name, values in self.fields.items():
            array = np.asarray(values)
            if array.ndim == 0 or len(array) != len(points):
                raise ValueError(
                    f"field {name!r} must hold one entry per point ({len(points)})"
                )
            fields[name] = array
        self.fields = fields

    def __len__(self) -> int:
        return len(self.points)

    def field(self, name: str) -> np.ndarray:
        """Return the values of one named field, one entry per point."""
        if name in _XYZ:
            return self.points[:, _XYZ[name]]
        if name in self.fields:
            return self.fields[name]
        if name in _NORMAL_COMPONENTS and "normals" in self.fields:
            return self.fields["normals"][:, _NORMAL_COMPONENTS[name]]
        raise KeyError(f"point cloud has no field {name!r}")

    def select(self, indices: Iterable[int] | np.ndarray) -> PointCloud:
        """Return a new cloud holding the points at ``indices`` (or a boolean mask)."""
        index = np.asarray(indices if isinstance(indices, np.ndarray) else list(indices))
        if index.dtype != bool:
            index = index.astype(int).reshape(-1)
        return PointCloud(
            self.points[index].copy(),
            {name: values[index].copy() for name, values in self.fields.items()},
        )

    def copy(self) -> PointCloud:
        """Return an independent copy of the cloud."""
        return PointCloud(
            self.points.copy(),
            {name: values.copy() for name, values in self.fields.items()},
        )


@dataclasses.dataclass(eq=False)
class PolygonMesh:
    """A mesh made of a vertex cloud and polygons given as vertex indices."""

    cloud: PointCloud = dataclasses.field(default_factory=PointCloud)
    polygons: list[tuple[int, ...]] = dataclasses.field(default_factory=list)

    def __post_init__(self) -> None:
        polygons = [tuple(int(v) for v in polygon) for polygon in self.polygons]
        count = len(self.cloud)
        for polygon in polygons:
            for vertex in polygon:
                if not 0 <= vertex < count:
                    raise ValueError(
                        f"polygon {polygon} refers to vertex {vertex} "
                        f"outside of a cloud of {count} points"
                    )
        self.polygons = polygons

    def to_cloud(self) -> PointCloud:
        """Return the mesh vertices as an independent point cloud."""
        return self.cloud.copy()

    def remove_unused_vertices(self) -> PolygonMesh:
        """Return a mesh without the vertices that no polygon refers to."""
        used = sorted({vertex for polygon in self.polygons for vertex in polygon})
        remap = {old: new for new, old in enumerate(used)}
        return PolygonMesh(
            self.cloud.select(used),
            [tuple(remap[v] for v in polygon) for polygon in self.polygons],
        )

    def copy(self) -> PolygonMesh:
        """Return an independent copy of the mesh."""
        return PolygonMesh(self.cloud.copy(), list(self.polygons))