"""Merging of duplicate mesh vertices and removal of degenerate polygons."""

from __future__ import annotations

import logging
from typing import Any

from noether.filtering.base import MESH_FILTER_BASE, FilterBase, register_filter
from noether.filtering.data import PolygonMesh

_log = logging.getLogger(__name__)


def _merge_polygon(polygon: tuple[int, ...], new_ids: list[int]) -> list[int]:
    """Map a polygon onto merged ids, dropping repeated consecutive vertices."""
    merged: list[int] = []
    for vertex in polygon:
        new = new_ids[vertex]
        if not merged or merged[-1] != new:
            merged.append(new)
    if len(merged) > 2 and merged[0] == merged[-1]:
        merged.pop()
    return merged


@register_filter(MESH_FILTER_BASE)
class CleanData(FilterBase):
    """Merges points with identical coordinates, removes unused points and
    drops polygons that collapse to fewer than three distinct vertices.

    Output points keep the order in which the polygons first use them; the
    per-point fields of a merged point come from its first occurrence.
    """

    def configure(self, config: Any) -> None:
        """Accept any configuration; this filter has no parameters."""

    def filter(self, data: PolygonMesh) -> PolygonMesh:
        cloud = data.cloud
        ids: dict[tuple[float, ...], int] = {}
        sources: list[int] = []
        new_ids: dict[int, int] = {}

        for polygon in data.polygons:
            for vertex in polygon:
                if vertex in new_ids:
                    continue
                key = tuple(cloud.points[vertex].tolist())
                new = ids.get(key)
                if new is None:
                    new = ids[key] = len(sources)
                    sources.append(vertex)
                new_ids[vertex] = new

        polygons = []
        for polygon in data.polygons:
            merged = _merge_polygon(polygon, new_ids)  # type: ignore[arg-type]
            if len(merged) >= 3:
                polygons.append(tuple(merged))

        cleaned = PolygonMesh(cloud.select(sources), polygons).remove_unused_vertices()
        _log.info(
            "Removed duplicate points, retained %d points from %d", len(cleaned.cloud), len(cloud)
        )
        return cleaned