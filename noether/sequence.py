"""Ordering of tool paths into one continuous sequence."""

from __future__ import annotations

import abc
import math
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

Pose = Any
ToolPathSegment = list
ToolPath = list
ToolPaths = list


def _position(pose: Pose) -> np.ndarray:
    """Return the translation of a 4x4 transform or a 3-vector position."""
    array = np.asarray(pose, dtype=float)
    if array.shape == (4, 4):
        return array[:3, 3]
    if array.shape == (3,):
        return array
    raise ValueError(f"a pose must be a 4x4 transform or a 3-vector, got shape {array.shape}")


def _start(path: ToolPath) -> np.ndarray:
    return _position(path[0][0])


def _end(path: ToolPath) -> np.ndarray:
    return _position(path[-1][-1])


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a - b))


def flip_path(path: ToolPath) -> ToolPath:
    """Return the path run backwards: segments and their poses in reverse order."""
    return [list(reversed(segment)) for segment in reversed(path)]


def find_next_nearest_path(
    paths: Sequence[ToolPath],
    used_indices: Iterable[int],
    last_path: int,
    front: bool,
) -> int | None:
    """Return the unused path with an end point nearest to an end of ``last_path``.

    The start of ``last_path`` is used when ``front`` is set, its end otherwise.
    Ties go to the lower index; ``None`` means every path is used.
    """
    last_pt = _start(paths[last_path]) if front else _end(paths[last_path])
    used = set(used_indices)
    best: int | None = None
    best_dist = math.inf
    for index, path in enumerate(paths):
        if index in used:
            continue
        to_start = _distance(_start(path), last_pt)
        to_end = _distance(_end(path), last_pt)
        if to_start < best_dist or to_end < best_dist:
            best = index
            best_dist = min(to_start, to_end)
    return best


class PathSequencePlanner(abc.ABC):
    """Links a set of tool paths into one execution order."""

    @abc.abstractmethod
    def link_paths(self) -> None:
        """Order the paths, flipping them as needed."""

    @abc.abstractmethod
    def set_paths(self, paths: ToolPaths) -> None:
        """Set the paths to link."""

    @property
    @abc.abstractmethod
    def paths(self) -> ToolPaths:
        """The stored paths; some may be flipped after linking."""

    @property
    @abc.abstractmethod
    def indices(self) -> list[int]:
        """Path indices in the order the paths should be executed."""


class SimplePathSequencePlanner(PathSequencePlanner):
    """Greedy nearest-neighbour sequencing that grows the order from both ends.

    The order starts from the second path (the only one when there is just
    one) and each nearest remaining path is added to whichever end of the
    order it lies closer to, flipped so that it continues from that end.
    """

    def __init__(self) -> None:
        self._paths: ToolPaths = []
        self._indices: list[int] = []

    def set_paths(self, paths: ToolPaths) -> None:
        copied = [[list(segment) for segment in path] for path in paths]
        for path in copied:
            if not path or not path[0] or not path[-1]:
                raise ValueError("every tool path needs poses in its first and last segment")
            _start(path)
            _end(path)
        self._paths = copied
        self._indices = []

    @property
    def paths(self) -> ToolPaths:
        return [[list(segment) for segment in path] for path in self._paths]

    @property
    def indices(self) -> list[int]:
        return list(self._indices)

    def link_paths(self) -> None:
        paths = self._paths
        indices = self._indices
        insert_front = False

        while len(indices) != len(paths):
            if not indices:
                indices.append(min(1, len(paths) - 1))
                continue

            last_index = indices[0] if insert_front else indices[-1]
            next_index = find_next_nearest_path(paths, indices, last_index, insert_front)
            if next_index is None:
                return

            if len(indices) > 1:
                front_pt = _start(paths[indices[0]])
                end_pt = _end(paths[indices[-1]])
                candidate_end = _end(paths[next_index])
                candidate_start = _start(paths[next_index])
                to_front = min(_distance(candidate_end, front_pt), _distance(candidate_start, front_pt))
                to_back = min(_distance(candidate_end, end_pt), _distance(candidate_start, end_pt))
                # grow the order from whichever end the candidate lies closer to
                flip = to_front < to_back
                if flip != insert_front:
                    insert_front = flip
                    continue

            if insert_front:
                indices.insert(0, next_index)
                last_pt = _start(paths[last_index])
            else:
                indices.append(next_index)
                last_pt = _end(paths[last_index])

            to_start = _distance(_start(paths[next_index]), last_pt)
            to_end = _distance(_end(paths[next_index]), last_pt)
            if (to_end < to_start and not insert_front) or (to_start < to_end and insert_front):
                paths[next_index] = flip_path(paths[next_index])