"""Cropping of point clouds to an axis-aligned box in a transformed frame."""

from __future__ import annotations

import dataclasses
import logging
import math
import numbers
from collections.abc import Mapping
from typing import Any

import numpy as np

from noether.filtering.base import (
    CLOUD_FILTER_BASE,
    ConfigurationError,
    FilterBase,
    register_filter,
)
from noether.filtering.data import PointCloud

_log = logging.getLogger(__name__)

MAX = "max"
MIN = "min"
TRANSFORM = "transform"
CROP_OUTSIDE = "crop_outside"


def _number(value: Any, key: str) -> float:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"expected a mapping holding '{key}', got {value!r}")
    try:
        item = value[key]
    except KeyError:
        raise ConfigurationError(f"the '{key}' field was not found") from None
    if isinstance(item, bool) or not isinstance(item, numbers.Real):
        raise ConfigurationError(f"'{key}' must be a number, got {item!r}")
    return float(item)


def _axis_rotation(axis: int, angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    i, j = [a for a in range(3) if a != axis]
    rotation = np.eye(3)
    rotation[i, i] = c
    rotation[j, j] = c
    rotation[i, j] = -s
    rotation[j, i] = s
    return rotation


def _corner_from_config(value: Any, current: np.ndarray) -> np.ndarray:
    corner = np.array(current, dtype=float)
    corner[:3] = [_number(value, key) for key in ("x", "y", "z")]
    return corner


def transform_from_config(value: Any) -> np.ndarray:
    """Build a 4x4 transform from ``x, y, z`` and rotations ``rx, ry, rz`` (radians).

    The rotation is ``Rx(rx) @ Ry(ry) @ Rz(rz)``, applied after the translation
    is set, so the translation is not rotated.
    """
    x, y, z, rx, ry, rz = (_number(value, key) for key in ("x", "y", "z", "rx", "ry", "rz"))
    matrix = np.eye(4)
    matrix[:3, :3] = _axis_rotation(0, rx) @ _axis_rotation(1, ry) @ _axis_rotation(2, rz)
    matrix[:3, 3] = (x, y, z)
    return matrix


def _default_min() -> np.ndarray:
    return -np.ones(4)


def _default_max() -> np.ndarray:
    return np.ones(4)


def _identity() -> np.ndarray:
    return np.eye(4)


@dataclasses.dataclass
class CropBoxParams:
    """Parameters of the crop box filter; corners are homogeneous 4-vectors."""

    min_pt: np.ndarray = dataclasses.field(default_factory=_default_min)
    max_pt: np.ndarray = dataclasses.field(default_factory=_default_max)
    transform: np.ndarray = dataclasses.field(default_factory=_identity)
    crop_outside: bool = False


@register_filter(CLOUD_FILTER_BASE)
class CropBoxFilter(FilterBase):
    """Keeps the points that, once moved by ``transform``, lie within the box.

    The box bounds are inclusive. ``crop_outside`` is kept in the parameters
    but does not change which points are retained.
    """

    def __init__(self, params: CropBoxParams | None = None) -> None:
        self.params = params if params is not None else CropBoxParams()

    def configure(self, config: Any) -> None:
        present = config if isinstance(config, Mapping) else {}
        missing = [key for key in (MIN, MAX, TRANSFORM) if key not in present]
        if missing:
            raise ConfigurationError(
                "Filter configuration missing required parameters: " + ", ".join(missing)
            )

        try:
            min_pt = _corner_from_config(present[MIN], self.params.min_pt)
            max_pt = _corner_from_config(present[MAX], self.params.max_pt)
            transform = transform_from_config(present[TRANSFORM])
        except ConfigurationError as exc:
            raise ConfigurationError(
                f"Failed to load required parameter(s) for crop box filter: '{exc}'"
            ) from exc
        self.params.min_pt = min_pt
        self.params.max_pt = max_pt
        self.params.transform = transform

        if CROP_OUTSIDE in present:
            value = present[CROP_OUTSIDE]
            if isinstance(value, bool):
                self.params.crop_outside = value
            else:
                _log.warning(
                    "Failed to load optional parameter(s) for crop box filter: "
                    "'%s' must be a boolean, got %r",
                    CROP_OUTSIDE,
                    value,
                )

    def filter(self, data: PointCloud) -> PointCloud:
        transform = np.asarray(self.params.transform, dtype=float)
        local = data.points @ transform[:3, :3].T + transform[:3, 3]
        low = np.asarray(self.params.min_pt, dtype=float)[:3]
        high = np.asarray(self.params.max_pt, dtype=float)[:3]
        inside = (
            np.isfinite(data.points).all(axis=1)
            & (local >= low).all(axis=1)
            & (local <= high).all(axis=1)
        )
        return data.select(np.flatnonzero(inside))