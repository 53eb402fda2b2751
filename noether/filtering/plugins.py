"""Declares every filter shipped with the package under its base class."""

from __future__ import annotations

from noether.filtering import (
    clean_data,
    crop_box,
    euclidean_clustering,
    fill_holes,
    mls_smoothing,
    pass_through,
    radius_outlier,
    statistical_outlier,
    voxel_grid,
    windowed_sinc_smoothing,
)
from noether.filtering.base import CLOUD_FILTER_BASE, MESH_FILTER_BASE, declared_filters

CLOUD_FILTERS = (
    voxel_grid.VoxelGridFilter,
    statistical_outlier.StatisticalOutlierFilter,
    crop_box.CropBoxFilter,
    pass_through.PassThroughFilter,
    radius_outlier.RadiusOutlierFilter,
    mls_smoothing.MLSSmoothingFilter,
)

MESH_FILTERS = (
    euclidean_clustering.EuclideanClustering,
    clean_data.CleanData,
    windowed_sinc_smoothing.WindowedSincSmoothing,
    fill_holes.FillHoles,
)


def load_plugins() -> dict[str, list[str]]:
    """Make sure all filters are declared; return the type names per base class."""
    return {base: declared_filters(base) for base in (CLOUD_FILTER_BASE, MESH_FILTER_BASE)}