"""Down-sampling of point clouds onto a regular voxel grid."""

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
_INT32_MAX = int(np.iinfo(np.int32).max)

LEAF_SIZE = "leaf_size"
FILTER_FIELD_NAME = "filter_field_name"
MIN_LIMIT = "min_limit"
MAX_LIMIT = "max_limit"
FILTER_LIMITS_NEGATIVE = "filter_limits_negative"
MIN_PTS_PER_VOXEL = "min_pts_per_voxel"

_OPTIONAL_FIELDS = (
    FILTER_FIELD_NAME,
    MIN_LIMIT,
    MAX_LIMIT,
    FILTER_LIMITS_NEGATIVE,
    MIN_PTS_PER_VOXEL,
)


def _number(config: Mapping, key: str) -> float:
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")
    return float(value)


def _count(config: Mapping, key: str) -> int:
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 0:
        raise ConfigurationError(f"'{key}' must be a non-negative integer, got {value!r}")
    return int(value)


def _flag(config: Mapping, key: str) -> bool:
    value = config[key]
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a boolean, got {value!r}")
    return value


def _text(config: Mapping, key: str) -> str:
    value = config[key]
    if not isinstance(value, str):
        raise ConfigurationError(f"'{key}' must be a string, got {value!r}")
    return value


@dataclasses.dataclass
class VoxelGridParams:
    """Parameters of the voxel grid filter."""

    leaf_size: float = 0.01
    min_limit: float = -_FLOAT_MAX
    max_limit: float = _FLOAT_MAX
    filter_limits_negative: bool = False
    min_pts_per_voxel: int = 1
    filter_field_name: str = ""


def _voxel_average(
    values: np.ndarray, inverse: np.ndarray, first: np.ndarray, counts: np.ndarray
) -> np.ndarray:
    """Average per-point values over the voxel each point falls into."""
    array = np.asarray(values)
    if array.dtype.kind not in "biuf":
        return array[first].copy()
    flat = array.reshape(len(array), -1).astype(float)
    sums = np.zeros((len(counts), flat.shape[1]))
    np.add.at(sums, inverse, flat)
    mean = (sums / counts[:, None]).reshape((len(counts),) + array.shape[1:])
    if array.dtype.kind == "f":
        return mean.astype(array.dtype)
    if array.dtype.kind == "b":
        return mean >= 0.5
    return np.rint(mean).astype(array.dtype)


@register_filter(CLOUD_FILTER_BASE)
class VoxelGridFilter(FilterBase):
    """Replaces the points in each occupied voxel by their centroid.

    Configuration keys: ``leaf_size`` (required) and, only when all of them
    are present, ``filter_field_name``, ``min_limit``, ``max_limit``,
    ``filter_limits_negative`` and ``min_pts_per_voxel``.
    """

    def __init__(self, params: VoxelGridParams | None = None) -> None:
        self.params = params if params is not None else VoxelGridParams()

    def configure(self, config: Any) -> None:
        if not isinstance(config, Mapping) or LEAF_SIZE not in config:
            raise ConfigurationError(
                f"Voxel grid filter missing required configuration parameter: {LEAF_SIZE}"
            )
        try:
            self.params.leaf_size = _number(config, LEAF_SIZE)
        except ConfigurationError as exc:
            raise ConfigurationError(
                f"Failed to load required parameter(s) for voxel grid filter: '{exc}'"
            ) from exc

        if all(field in config for field in _OPTIONAL_FIELDS):
            try:
                self.params.filter_field_name = _text(config, FILTER_FIELD_NAME)
                self.params.min_limit = _number(config, MIN_LIMIT)
                self.params.max_limit = _number(config, MAX_LIMIT)
                self.params.filter_limits_negative = _flag(config, FILTER_LIMITS_NEGATIVE)
                self.params.min_pts_per_voxel = _count(config, MIN_PTS_PER_VOXEL)
            except ConfigurationError as exc:
                _log.warning(
                    "Failed to load optional parameter(s) for voxel grid filter: '%s'", exc
                )

    def _limit_mask(self, data: PointCloud) -> np.ndarray:
        name = self.params.filter_field_name
        try:
            values = np.asarray(data.field(name), dtype=float)
        except KeyError as exc:
            raise FilterError(f"Unable to find field name '{name}' in the point cloud") from exc
        low, high = self.params.min_limit, self.params.max_limit
        if self.params.filter_limits_negative:
            excluded = (values < high) & (values > low)
        else:
            excluded = (values > high) | (values < low)
        return np.isfinite(values) & ~excluded

    def filter(self, data: PointCloud) -> PointCloud:
        leaf = self.params.leaf_size
        if not leaf > 0:
            raise FilterError(f"Voxel grid leaf size must be positive, got {leaf}")

        mask = np.isfinite(data.points).all(axis=1)
        if self.params.filter_field_name:
            mask &= self._limit_mask(data)
        cloud = data.select(np.flatnonzero(mask))
        if len(cloud) == 0:
            return cloud

        voxels = np.floor(cloud.points / leaf).astype(np.int64)
        low = voxels.min(axis=0)
        dims = [int(d) for d in voxels.max(axis=0) - low + 1]
        if dims[0] * dims[1] * dims[2] > _INT32_MAX:
            _log.warning("Leaf size is too small for the input cloud, integer indices would overflow")
            return data.copy()

        relative = voxels - low
        linear = relative[:, 0] + relative[:, 1] * dims[0] + relative[:, 2] * dims[0] * dims[1]
        _, first, inverse, counts = np.unique(
            linear, return_index=True, return_inverse=True, return_counts=True
        )
        inverse = inverse.reshape(-1)
        keep = counts >= self.params.min_pts_per_voxel

        points = _voxel_average(cloud.points, inverse, first, counts)[keep]
        fields = {
            name: _voxel_average(values, inverse, first, counts)[keep]
            for name, values in cloud.fields.items()
        }
        return PointCloud(points, fields)